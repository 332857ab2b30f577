"""Chat registrations and their notification preferences."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from workflow_notifier.errors import SubscriptionNotFoundError
from workflow_notifier.logger import get_logger
from workflow_notifier.models import NotificationSettings
from workflow_notifier.services.filters import NotifyToggle, get_flag, set_flag
from workflow_notifier.services.projects import ensure_project

logger = get_logger(__name__)


def get_settings(session: Session, chat_id: str, repository: str) -> NotificationSettings:
    settings = (
        session.query(NotificationSettings)
        .filter_by(chat_id=str(chat_id), repository=repository)
        .first()
    )
    if settings is None:
        raise SubscriptionNotFoundError(f"{chat_id} is not registered for {repository}")
    return settings


def register(
    session: Session,
    chat_id: str,
    repository: str,
    *,
    username: Optional[str] = None,
    github_username: Optional[str] = None,
) -> NotificationSettings:
    """
    Register ``chat_id`` for ``repository``, creating the project if needed.

    Re-registering overwrites the display names and re-activates the row;
    preference flags are left as they were.
    """
    project = ensure_project(session, repository)
    chat_id = str(chat_id)
    settings = (
        session.query(NotificationSettings)
        .filter_by(chat_id=chat_id, repository=repository)
        .first()
    )
    if settings is None:
        settings = NotificationSettings(
            chat_id=chat_id,
            repository=repository,
            username=username,
            github_username=github_username,
            project_id=project.id,
            is_active=True,
        )
        session.add(settings)
    else:
        settings.username = username
        settings.github_username = github_username
        settings.project_id = project.id
        settings.is_active = True
    session.commit()
    session.refresh(settings)
    logger.info("chat_registered", chat_id=chat_id, repository=repository)
    return settings


def unregister(session: Session, chat_id: str, repository: str) -> bool:
    deleted = (
        session.query(NotificationSettings)
        .filter_by(chat_id=str(chat_id), repository=repository)
        .delete(synchronize_session=False)
    )
    session.commit()
    return deleted > 0


def unregister_chat(session: Session, chat_id: str) -> int:
    deleted = (
        session.query(NotificationSettings)
        .filter_by(chat_id=str(chat_id))
        .delete(synchronize_session=False)
    )
    session.commit()
    if deleted:
        logger.info("chat_unregistered", chat_id=str(chat_id), count=deleted)
    return deleted


def list_for_chat(session: Session, chat_id: str) -> list[NotificationSettings]:
    return (
        session.query(NotificationSettings)
        .filter_by(chat_id=str(chat_id))
        .order_by(NotificationSettings.created_at.desc(), NotificationSettings.id.desc())
        .all()
    )


def list_all(session: Session) -> list[NotificationSettings]:
    return (
        session.query(NotificationSettings)
        .order_by(NotificationSettings.chat_id, NotificationSettings.repository)
        .all()
    )


def toggle(session: Session, chat_id: str, repository: str, which: NotifyToggle) -> bool:
    """Flip one preference flag and return its new value."""
    settings = get_settings(session, chat_id, repository)
    new_value = not get_flag(settings, which)
    set_flag(settings, which, new_value)
    session.commit()
    return new_value


def update_preferences(
    session: Session,
    chat_id: str,
    repository: str,
    changes: dict[NotifyToggle, bool],
) -> NotificationSettings:
    settings = get_settings(session, chat_id, repository)
    for which, value in changes.items():
        set_flag(settings, which, value)
    session.commit()
    session.refresh(settings)
    return settings
