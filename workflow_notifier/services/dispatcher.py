"""Turns one inbound workflow event into Telegram messages and an audit row."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from fastapi.concurrency import run_in_threadpool

from workflow_notifier.errors import StoreError
from workflow_notifier.logger import get_logger
from workflow_notifier.models import WebhookRecord
from workflow_notifier.services.delivery import DeliveryChannel, DeliveryOutcome
from workflow_notifier.services.filters import select_subscribers
from workflow_notifier.services.formatter import format_notification, summarize_jobs
from workflow_notifier.services.normalizer import normalize_event
from workflow_notifier.services.stores import AuditStore, ProjectStore, SubscriberStore
from workflow_notifier.schemas import WorkflowEvent

logger = get_logger(__name__)

DEFAULT_DELIVERY_TIMEOUT = 10.0

SKIP_PROJECT_NOT_FOUND = "project_not_found"
SKIP_PROJECT_INACTIVE = "project_inactive"
SKIP_NO_SUBSCRIBERS = "no_subscribers"


@dataclass
class DispatchResult:
    repository: str
    project_id: Optional[int] = None
    jobs: list[dict[str, Any]] = field(default_factory=list)
    jobs_summary: dict[str, int] = field(default_factory=dict)
    recipients: list[DeliveryOutcome] = field(default_factory=list)
    audit_recorded: bool = False
    skipped_reason: Optional[str] = None

    @property
    def jobs_count(self) -> int:
        return len(self.jobs)

    @property
    def sent_count(self) -> int:
        return sum(1 for r in self.recipients if r.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.recipients if not r.ok)

    @property
    def notified(self) -> bool:
        return self.skipped_reason is None


class Dispatcher:
    """
    Orchestrates normalization, filtering, formatting, delivery and auditing.

    Stores and the delivery channel are injected so that the owning process
    (or a test) decides what backs them.
    """

    def __init__(
        self,
        projects: ProjectStore,
        subscribers: SubscriberStore,
        audit: AuditStore,
        channel: DeliveryChannel,
        *,
        delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT,
    ):
        self.projects = projects
        self.subscribers = subscribers
        self.audit = audit
        self.channel = channel
        self.delivery_timeout = delivery_timeout

    async def dispatch(self, raw: Mapping[str, Any]) -> DispatchResult:
        event = normalize_event(raw)
        log = logger.bind(
            repository=event.repository,
            workflow=event.workflow_name,
            run_id=event.run_id,
        )
        log.info(
            "webhook_received",
            status=event.status,
            branch=event.branch,
            actor=event.actor,
            jobs=len(event.jobs),
        )

        result = DispatchResult(
            repository=event.repository,
            jobs=[job.model_dump() for job in event.jobs],
            jobs_summary=summarize_jobs(event.jobs),
        )

        # stores are synchronous; keep them off the event loop
        project = await run_in_threadpool(self.projects.find_by_repository, event.repository)
        if project is None:
            log.info(SKIP_PROJECT_NOT_FOUND)
            result.skipped_reason = SKIP_PROJECT_NOT_FOUND
            return result
        result.project_id = project.id
        if not project.is_active:
            log.info(SKIP_PROJECT_INACTIVE, project_id=project.id)
            result.skipped_reason = SKIP_PROJECT_INACTIVE
            return result

        registered = await run_in_threadpool(
            self.subscribers.list_active, event.repository, project.id
        )
        if not registered:
            log.info(SKIP_NO_SUBSCRIBERS, project_id=project.id)
            result.skipped_reason = SKIP_NO_SUBSCRIBERS
            return result

        selected = select_subscribers(event, registered)
        log.info("notifications_selected", registered=len(registered), selected=len(selected))

        if selected:
            text = format_notification(event, project.name)
            result.recipients = list(
                await asyncio.gather(*(self._deliver(s.chat_id, text, log) for s in selected))
            )

        result.audit_recorded = await self._record(event, project.id, log)
        return result

    async def _deliver(self, chat_id: str, text: str, log: Any) -> DeliveryOutcome:
        chat_id = str(chat_id)
        try:
            outcome = await asyncio.wait_for(
                self.channel.send(chat_id, text), timeout=self.delivery_timeout
            )
        except asyncio.TimeoutError:
            outcome = DeliveryOutcome(
                chat_id=chat_id,
                ok=False,
                error=f"delivery timed out after {self.delivery_timeout:g}s",
            )
        except Exception as exc:  # channel bugs count as a failed delivery
            outcome = DeliveryOutcome(chat_id=chat_id, ok=False, error=str(exc) or type(exc).__name__)

        if outcome.ok:
            log.info("notification_sent", chat_id=chat_id)
        else:
            log.warning("notification_failed", chat_id=chat_id, error=outcome.error)
        return outcome

    async def _record(self, event: WorkflowEvent, project_id: int, log: Any) -> bool:
        record = WebhookRecord(
            project_id=project_id,
            workflow_name=event.workflow_name,
            run_id=event.run_id,
            run_url=event.run_url,
            status=event.status,
            branch=event.branch,
            commit_sha=event.commit_sha,
            commit_message=event.commit_message,
            actor=event.actor,
        )
        try:
            await run_in_threadpool(self.audit.append, record)
        except StoreError as exc:
            log.error("audit_write_failed", project_id=project_id, error=str(exc))
            return False
        return True
