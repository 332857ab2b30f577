"""Validation and canonicalisation of inbound workflow events."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from workflow_notifier.errors import PayloadValidationError, ValidationIssue
from workflow_notifier.schemas import (
    Job,
    JobIn,
    JobResult,
    UpstreamJob,
    WorkflowEvent,
    WorkflowEventIn,
)
from workflow_notifier.timezone import parse_instant

# GitHub check-run conclusions folded into the five results we display.
CONCLUSION_RESULTS: dict[str, JobResult] = {
    "success": "success",
    "failure": "failure",
    "cancelled": "cancelled",
    "skipped": "skipped",
    "neutral": "success",
    "timed_out": "failure",
    "action_required": "failure",
    "startup_failure": "failure",
    "stale": "failure",
}


def map_job_api_to_result(status: Optional[str], conclusion: Optional[str]) -> JobResult:
    """
    Map a GitHub Jobs API ``(status, conclusion)`` pair to a job result.

    A job that has not completed and carries no conclusion is ``in_progress``.
    Known conclusions map through :data:`CONCLUSION_RESULTS`; an unknown
    conclusion counts as a failure and a missing one as still running.
    """
    st = (status or "").strip().lower()
    conc = (conclusion or "").strip().lower()

    if st and st != "completed" and not conc:
        return "in_progress"
    if conc in CONCLUSION_RESULTS:
        return CONCLUSION_RESULTS[conc]
    return "failure" if conc else "in_progress"


def duration_ms(started_at: Optional[str], completed_at: Optional[str]) -> Optional[int]:
    start = parse_instant(started_at)
    end = parse_instant(completed_at)
    if start is None or end is None or end < start:
        return None
    delta = end - start
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


def job_from_upstream(job: UpstreamJob, run_url: str) -> Job:
    started_at = job.started_at or None
    completed_at = job.completed_at or None
    return Job(
        id=job.id,
        name=job.name or f"Job {job.id}",
        result=map_job_api_to_result(job.status, job.conclusion),
        url=job.html_url or job.url or run_url,
        started_at=started_at,
        completed_at=completed_at,
        duration_ms=duration_ms(started_at, completed_at),
    )


def _job_from_lightweight(job: JobIn) -> Job:
    derived = job.duration_ms
    if derived is None:
        derived = duration_ms(job.started_at, job.completed_at)
    return Job(
        id=job.id,
        name=job.name,
        result=job.result,
        url=job.url,
        started_at=job.started_at,
        completed_at=job.completed_at,
        duration_ms=derived,
    )


def _issues_from(exc: ValidationError) -> list[ValidationIssue]:
    issues = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ()))
        message = err.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        issues.append(ValidationIssue(path=path, message=message))
    return issues


def normalize_event(raw: Mapping[str, Any] | Any) -> WorkflowEvent:
    """
    Validate an inbound payload and return it with a single canonical job list.

    ``jobs`` wins whenever it is non-empty; otherwise jobs are derived from
    ``jobs_full``. Raises :class:`PayloadValidationError` listing every problem.
    """
    if not isinstance(raw, Mapping):
        raise PayloadValidationError(
            [ValidationIssue(path="", message="payload must be a JSON object")]
        )
    try:
        payload = WorkflowEventIn.model_validate(dict(raw))
    except ValidationError as exc:
        raise PayloadValidationError(_issues_from(exc)) from exc

    if payload.jobs:
        jobs = tuple(_job_from_lightweight(job) for job in payload.jobs)
    elif payload.jobs_full is not None:
        jobs = tuple(job_from_upstream(job, payload.run_url) for job in payload.jobs_full.jobs)
    else:
        jobs = ()

    return WorkflowEvent(
        workflow_name=payload.workflow_name,
        repository=payload.repository,
        run_id=payload.run_id,
        run_url=payload.run_url,
        status=payload.status,
        branch=payload.branch,
        commit_sha=payload.commit_sha,
        commit_message=payload.commit_message,
        actor=payload.actor,
        jobs=jobs,
        workflow_duration_ms=payload.workflow_duration_ms,
    )
