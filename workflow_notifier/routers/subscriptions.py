"""Chat subscription administration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from workflow_notifier.errors import SubscriptionNotFoundError
from workflow_notifier.models import NotificationSettings
from workflow_notifier.routers.deps import get_db, require_admin
from workflow_notifier.schemas import PreferencesUpdate, SubscriptionRequest
from workflow_notifier.services import subscriptions as subscription_service
from workflow_notifier.services.filters import NotifyToggle, describe_preferences

router = APIRouter(
    prefix="/api/subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(require_admin)],
)


def settings_dict(s: NotificationSettings) -> dict:
    return {
        "id": s.id,
        "chat_id": s.chat_id,
        "repository": s.repository,
        "username": s.username,
        "github_username": s.github_username,
        "project_id": s.project_id,
        "is_active": s.is_active,
        "preferences": describe_preferences(s),
    }


@router.post("", status_code=201)
def register(body: SubscriptionRequest, db: Session = Depends(get_db)):
    settings = subscription_service.register(
        db,
        body.chat_id,
        body.repository,
        username=body.username,
        github_username=body.github_username,
    )
    return {"message": "Registered", "subscription": settings_dict(settings)}


@router.get("")
def list_subscriptions(
    chat_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    if chat_id:
        rows = subscription_service.list_for_chat(db, chat_id)
    else:
        rows = subscription_service.list_all(db)
    return {"subscriptions": [settings_dict(s) for s in rows]}


@router.delete("")
def unregister(
    chat_id: str = Query(...),
    repository: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Remove one (chat, repository) registration, or every registration of the chat."""
    if repository:
        if not subscription_service.unregister(db, chat_id, repository):
            raise HTTPException(404, f"{chat_id} is not registered for {repository}")
        return {"message": "Unregistered", "deleted": 1}
    deleted = subscription_service.unregister_chat(db, chat_id)
    if not deleted:
        raise HTTPException(404, f"No registrations found for {chat_id}")
    return {"message": "Unregistered", "deleted": deleted}


@router.post("/toggle/{which}")
def toggle(
    which: NotifyToggle,
    chat_id: str = Query(...),
    repository: str = Query(...),
    db: Session = Depends(get_db),
):
    try:
        value = subscription_service.toggle(db, chat_id, repository, which)
    except SubscriptionNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"setting": which.value, "enabled": value}


@router.patch("/preferences")
def update_preferences(
    body: PreferencesUpdate,
    chat_id: str = Query(...),
    repository: str = Query(...),
    db: Session = Depends(get_db),
):
    changes = {
        toggle: value
        for toggle, value in (
            (NotifyToggle.SUCCESS, body.notify_on_success),
            (NotifyToggle.FAILURE, body.notify_on_failure),
            (NotifyToggle.BUILD, body.notify_on_build),
            (NotifyToggle.DEPLOY, body.notify_on_deploy),
            (NotifyToggle.TEST, body.notify_on_test),
        )
        if value is not None
    }
    try:
        settings = subscription_service.update_preferences(db, chat_id, repository, changes)
    except SubscriptionNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"subscription": settings_dict(settings)}
