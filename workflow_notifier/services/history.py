"""Queries over processed webhook records."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from workflow_notifier.models import WebhookRecord


def list_records(
    session: Session,
    *,
    project_id: Optional[int] = None,
    status: Optional[str] = None,
    branch: Optional[str] = None,
    actor: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[WebhookRecord], int]:
    """Return one page of records, newest first, and the unpaged total."""
    q = session.query(WebhookRecord)
    if project_id is not None:
        q = q.filter(WebhookRecord.project_id == project_id)
    if status:
        q = q.filter(WebhookRecord.status == status)
    if branch:
        q = q.filter(WebhookRecord.branch == branch)
    if actor:
        q = q.filter(WebhookRecord.actor == actor)
    total = q.count()
    records = (
        q.order_by(WebhookRecord.created_at.desc(), WebhookRecord.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return records, total
