"""Shared FastAPI dependencies."""

from __future__ import annotations

import hmac
from typing import Iterator, Optional

from fastapi import Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from workflow_notifier.config import Settings
from workflow_notifier.db import Database
from workflow_notifier.services.dispatcher import Dispatcher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_db(request: Request) -> Iterator[Session]:
    yield from get_database(request).iter_session()


def _check_admin_key(expected: str, key_from_request: Optional[str]) -> bool:
    if not expected:
        return True
    return hmac.compare_digest((key_from_request or "").encode(), expected.encode())


def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(None),
    key: Optional[str] = Query(None, alias="key"),
) -> None:
    """Admin endpoints accept the key as ``X-Admin-Key`` or ``?key=``."""
    if not _check_admin_key(get_settings(request).admin_http_key, x_admin_key or key):
        raise HTTPException(403, "Invalid admin key")
