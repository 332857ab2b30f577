"""Timezone helpers."""

from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from workflow_notifier.config import settings

DEFAULT_TIMEZONE = "UTC"


def _load_timezone(name: str, fallback: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return a ``ZoneInfo`` instance, falling back when the name is unknown."""

    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return ZoneInfo(fallback)


TZ = _load_timezone(settings.timezone or DEFAULT_TIMEZONE)


def now_local() -> dt.datetime:
    """Current timezone-aware datetime in the configured timezone."""
    return dt.datetime.now(TZ)


def parse_instant(value: str | None) -> dt.datetime | None:
    """
    Parse an ISO-8601 timestamp as emitted by the GitHub API.

    Returns ``None`` for empty or unparseable values. Naive values are taken as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed
