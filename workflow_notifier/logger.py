"""structlog setup shared by the app and its services."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from workflow_notifier.config import settings


def setup_logging(debug: bool | None = None) -> None:
    debug = settings.debug if debug is None else debug
    log_level = logging.DEBUG if debug else logging.INFO

    logging.root.handlers = []

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processor=renderer,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "fastapi", "httpx"]:
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        logger.handlers = []
        logger.addHandler(handler)
        # httpx logs every request URL, which embeds the bot token
        if logger_name == "httpx":
            logger.setLevel(logging.WARNING)
        else:
            logger.setLevel(log_level)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
