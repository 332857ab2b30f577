"""Telegram MarkdownV2 rendering of workflow notifications."""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import quote

from workflow_notifier.schemas import JOB_RESULTS, Job, WorkflowEvent

GITHUB_BASE_URL = "https://github.com"
MAX_JOBS = 10  # Show up to ten job lines; totals still count every job.
SHORT_SHA_LENGTH = 7
MAX_MESSAGE_LENGTH = 4096  # Telegram sendMessage text limit
TRUNCATION_MARK = "…"

MARKDOWN_SPECIAL_CHARS = "_*[]()~`>#+=|{}.!-"
# the backslash is reserved too, so a literal one must be doubled
_MARKDOWN_ESCAPE_RE = re.compile("([" + re.escape("\\" + MARKDOWN_SPECIAL_CHARS) + "])")

DEFAULT_EMOJI = "🔵"
STATUS_EMOJI: dict[str, str] = {
    "success": "✅",
    "failure": "❌",
    "cancelled": "⚠️",
    "skipped": "⏭️",
    "in_progress": "🔄",
}


def escape_markdown(text: Optional[str]) -> str:
    """Backslash-escape every MarkdownV2 special character in ``text``."""
    return _MARKDOWN_ESCAPE_RE.sub(r"\\\1", text or "")


def status_emoji(status: str) -> str:
    return STATUS_EMOJI.get((status or "").lower(), DEFAULT_EMOJI)


def result_label(result: str) -> str:
    return (result or "").upper().replace("_", " ")


def format_status(status: str) -> str:
    return f"{status_emoji(status)} *{escape_markdown(result_label(status))}*"


def summarize_jobs(jobs: Iterable[Job]) -> dict[str, int]:
    """Per-result counts for every job plus a ``total`` key."""
    counts = {result: 0 for result in JOB_RESULTS}
    total = 0
    for job in jobs:
        counts[job.result] = counts.get(job.result, 0) + 1
        total += 1
    counts["total"] = total
    return counts


def _link(text: str, url: str) -> str:
    return f"[{text}]({url})"


def _job_line(job: Job) -> str:
    return (
        f"  • {status_emoji(job.result)} {_link(escape_markdown(job.name), job.url)}"
        f" • {escape_markdown(result_label(job.result))}"
    )


def format_jobs_section(jobs: tuple[Job, ...] | list[Job]) -> str:
    if not jobs:
        return ""
    counts = summarize_jobs(jobs)
    lines = [f"*Jobs \\({len(jobs)}\\):*"]
    lines.extend(_job_line(job) for job in jobs[:MAX_JOBS])
    lines.append(
        "Totals: "
        f"✅ {counts['success']} • ❌ {counts['failure']} • 🔄 {counts['in_progress']}"
        f" • ⚠️ {counts['cancelled']} • ⏭️ {counts['skipped']}"
    )
    if len(jobs) > MAX_JOBS:
        lines.append(f"  …and {len(jobs) - MAX_JOBS} more")
    return "\n".join(lines)


def truncate_escaped(text: Optional[str], budget: int) -> str:
    """
    Escape ``text`` and shorten it to at most ``budget`` characters.

    Cuts only between escaped characters, so no escape sequence is split, and
    marks a cut with a trailing ellipsis.
    """
    escaped = escape_markdown(text)
    if len(escaped) <= budget:
        return escaped
    room = budget - len(TRUNCATION_MARK)
    if room < 0:
        return ""
    pieces: list[str] = []
    used = 0
    for ch in text or "":
        piece = escape_markdown(ch)
        if used + len(piece) > room:
            break
        pieces.append(piece)
        used += len(piece)
    return "".join(pieces) + TRUNCATION_MARK


def _message_line(escaped: str) -> str:
    return f'• *Message:* _"{escaped}"_'


def format_notification(event: WorkflowEvent, project_name: str) -> str:
    """
    Render the notification body sent to every recipient of ``event``.

    Free text (workflow, project, actor, commit message, job names, link labels)
    is escaped; URLs and the short commit SHA are inserted verbatim, except the
    branch which is percent-encoded into its URL. The commit message is
    shortened when needed so the body fits in one Telegram message.
    """
    repo_url = f"{GITHUB_BASE_URL}/{event.repository}"
    branch_url = f"{repo_url}/tree/{quote(event.branch, safe='/')}"
    actor_url = f"{GITHUB_BASE_URL}/{event.actor}"
    short_sha = event.commit_sha[:SHORT_SHA_LENGTH]

    lines = [
        f"{status_emoji(event.status)} *CI/CD Notification*",
        f"*Workflow:* {escape_markdown(event.workflow_name)}",
        f"*Project:* {escape_markdown(project_name)}",
        f"*Status:* {format_status(event.status)}",
        "",
        f"• *Repository:* {_link(escape_markdown(event.repository), repo_url)}",
        f"• *Branch:* {_link(escape_markdown(event.branch), branch_url)}",
        f"• *Actor:* {_link(escape_markdown(event.actor), actor_url)}",
        f"• *Commit:* `{short_sha}`",
        _message_line(""),
    ]
    message_index = len(lines) - 1

    jobs_section = format_jobs_section(event.jobs)
    if jobs_section:
        lines.extend(["", jobs_section])

    lines.extend(["", _link("View Workflow Run", event.run_url)])

    budget = MAX_MESSAGE_LENGTH - len("\n".join(lines))
    lines[message_index] = _message_line(truncate_escaped(event.commit_message, budget))
    return "\n".join(lines)
