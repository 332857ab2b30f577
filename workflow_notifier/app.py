"""the beautiful world start from here."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from workflow_notifier.config import Settings, settings as default_settings
from workflow_notifier.db import Database
from workflow_notifier.logger import get_logger, setup_logging
from workflow_notifier.routers import info, projects, subscriptions, webhook
from workflow_notifier.services.delivery import DeliveryChannel
from workflow_notifier.services.dispatcher import Dispatcher
from workflow_notifier.services.stores import SqlAuditStore, SqlProjectStore, SqlSubscriberStore
from workflow_notifier.services.telegram import TelegramChannel

logger = get_logger(__name__)


def build_dispatcher(
    database: Database, channel: DeliveryChannel, settings: Settings
) -> Dispatcher:
    return Dispatcher(
        SqlProjectStore(database),
        SqlSubscriberStore(database),
        SqlAuditStore(database),
        channel,
        delivery_timeout=settings.delivery_timeout_seconds,
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    channel: Optional[DeliveryChannel] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI app with its database and delivery channel wired in.

    Tests pass their own ``database`` / ``channel``; production uses the
    environment-driven defaults.
    """
    settings = settings or default_settings
    if configure_logging:
        setup_logging(settings.debug)

    database = database or Database(settings.db_url)
    channel = channel or TelegramChannel(
        settings.telegram_bot_token, timeout=settings.delivery_timeout_seconds
    )
    if not settings.telegram_bot_token and isinstance(channel, TelegramChannel):
        logger.warning("telegram_token_missing")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        try:
            yield
        finally:
            database.disconnect()

    app = FastAPI(title="CI/CD Workflow → Telegram Notifier", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.dispatcher = build_dispatcher(database, channel, settings)

    app.include_router(info.router)
    app.include_router(webhook.router)
    app.include_router(projects.router)
    app.include_router(subscriptions.router)
    return app


app = create_app()
