"""CI webhook endpoint and processed-event history."""

from __future__ import annotations

import hmac
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from workflow_notifier.errors import PayloadValidationError, StoreError
from workflow_notifier.logger import get_logger
from workflow_notifier.routers.deps import get_db, get_dispatcher, get_settings, require_admin
from workflow_notifier.schemas import WorkflowStatus
from workflow_notifier.services.history import list_records

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhook", tags=["webhook"])


def _check_webhook_secret(request: Request, provided: Optional[str]) -> None:
    expected = get_settings(request).webhook_secret
    if not provided:
        raise HTTPException(401, "Webhook secret required")
    if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(403, "Invalid webhook secret")


@router.post("/github")
async def github_webhook(
    request: Request,
    x_webhook_secret: Optional[str] = Header(None),
):
    """
    Workflow-completion endpoint called from a CI job.

    The shared secret travels in ``X-Webhook-Secret``. The body is the workflow
    event; it is validated as a whole and rejected with 400 if any field is bad.
    """
    _check_webhook_secret(request, x_webhook_secret)
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(
            {"success": False, "error": "Invalid webhook payload", "message": "body is not valid JSON"},
            status_code=400,
        )

    dispatcher = get_dispatcher(request)
    try:
        result = await dispatcher.dispatch(payload)
    except PayloadValidationError as exc:
        logger.info("webhook_rejected", issues=[str(i) for i in exc.issues])
        return JSONResponse(
            {"success": False, "error": "Invalid webhook payload", "message": exc.message},
            status_code=400,
        )
    except StoreError as exc:
        logger.error("webhook_store_failure", error=str(exc))
        raise HTTPException(503, "Storage unavailable") from exc

    return {
        "message": "Webhook processed successfully",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "notified": result.notified,
        "skipped_reason": result.skipped_reason,
        "sent": result.sent_count,
        "failed": result.failed_count,
        "jobs": [
            {"id": j["id"], "name": j["name"], "result": j["result"], "url": j["url"]}
            for j in result.jobs
        ],
        "jobs_summary": result.jobs_summary,
    }


@router.get("/history", dependencies=[Depends(require_admin)])
def webhook_history(
    project_id: Optional[int] = Query(None),
    status: Optional[WorkflowStatus] = Query(None),
    branch: Optional[str] = Query(None),
    actor: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    records, total = list_records(
        db,
        project_id=project_id,
        status=status,
        branch=branch,
        actor=actor,
        limit=limit,
        offset=offset,
    )
    return {
        "webhooks": [
            {
                "id": r.id,
                "project_id": r.project_id,
                "project": r.project.name if r.project else None,
                "workflow_name": r.workflow_name,
                "run_id": r.run_id,
                "run_url": r.run_url,
                "status": r.status,
                "branch": r.branch,
                "commit_sha": r.commit_sha,
                "commit_message": r.commit_message,
                "actor": r.actor,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in records
        ],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }
