"""Ruter Ingfo?"""

from __future__ import annotations

from textwrap import dedent

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from workflow_notifier import __version__
from workflow_notifier.routers.deps import get_database

router = APIRouter(tags=["info"])

HTTP_HELP_TEXT = dedent(
    """
CI/CD Workflow → Telegram Notifier

Endpoints
---------
- GET    /                          : This help text
- GET    /health                    : Liveness and database check
- POST   /api/webhook/github        : Workflow event (X-Webhook-Secret)
- GET    /api/webhook/history       : Processed events (admin key)
- *      /api/projects[...]         : Project administration (admin key)
- *      /api/subscriptions[...]    : Chat registrations (admin key)
"""
).strip()


@router.get("/", response_class=PlainTextResponse)
def root():
    return HTTP_HELP_TEXT


@router.get("/health")
def health(request: Request):
    db_ok = get_database(request).health_check()
    return JSONResponse(
        {"status": "ok" if db_ok else "degraded", "database": db_ok, "version": __version__},
        status_code=200 if db_ok else 503,
    )
