"""Runtime settings, read once from the environment (and ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """App Settings"""

    db_url: str = os.getenv("DB_URL", "sqlite:///./workflow_notifier.sqlite3")
    telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    webhook_secret: str = os.getenv("WEBHOOK_SECRET", "")
    admin_http_key: str = os.getenv("ADMIN_HTTP_KEY", "")
    delivery_timeout_seconds: float = float(os.getenv("DELIVERY_TIMEOUT_SECONDS", "10"))
    timezone: str = os.getenv("TIMEZONE", "UTC")
    debug: bool = _env_bool("DEBUG")


settings = Settings()
