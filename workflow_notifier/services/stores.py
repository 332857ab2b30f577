"""Storage collaborators used by the dispatcher, backed by SQLAlchemy."""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from workflow_notifier.db import Database
from workflow_notifier.errors import StoreError
from workflow_notifier.models import NotificationSettings, Project, WebhookRecord


class ProjectStore(Protocol):
    def find_by_repository(self, repository: str) -> Optional[Project]: ...

    def create(self, name: str, repository: str, description: Optional[str]) -> Project: ...


class SubscriberStore(Protocol):
    def list_active(
        self, repository: str, project_id: Optional[int] = None
    ) -> list[NotificationSettings]: ...


class AuditStore(Protocol):
    def append(self, record: WebhookRecord) -> None: ...


class SqlProjectStore:
    def __init__(self, database: Database):
        self.database = database

    def find_by_repository(self, repository: str) -> Optional[Project]:
        try:
            with self.database.session() as db:
                return db.query(Project).filter_by(repository=repository).first()
        except SQLAlchemyError as exc:
            raise StoreError(f"project lookup failed for {repository}: {exc}") from exc

    def create(self, name: str, repository: str, description: Optional[str]) -> Project:
        try:
            with self.database.session() as db:
                project = Project(name=name, repository=repository, description=description)
                db.add(project)
                db.commit()
                db.refresh(project)
                return project
        except SQLAlchemyError as exc:
            raise StoreError(f"project create failed for {repository}: {exc}") from exc


class SqlSubscriberStore:
    def __init__(self, database: Database):
        self.database = database

    def list_active(
        self, repository: str, project_id: Optional[int] = None
    ) -> list[NotificationSettings]:
        try:
            with self.database.session() as db:
                q = db.query(NotificationSettings).filter(
                    NotificationSettings.repository == repository,
                    NotificationSettings.is_active.is_(True),
                )
                if project_id is not None:
                    q = q.filter(NotificationSettings.project_id == project_id)
                return q.order_by(NotificationSettings.id).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"subscriber lookup failed for {repository}: {exc}") from exc


class SqlAuditStore:
    def __init__(self, database: Database):
        self.database = database

    def append(self, record: WebhookRecord) -> None:
        try:
            with self.database.session() as db:
                db.add(record)
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"webhook record write failed: {exc}") from exc
