"""Yet another tele services"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import httpx

from workflow_notifier.services.delivery import DeliveryOutcome

TELEGRAM_API_BASE = "https://api.telegram.org"
HTTP_TIMEOUT_SECONDS = 15
MESSAGE_LIMIT = 4096

JSONDict = dict[str, Any]


class TelegramError(RuntimeError):
    """Telegram rejected a request or could not be reached."""


def _normalize_newlines(s: str) -> str:
    return (s or "").replace("\r\n", "\n").replace("\r", "\n")


def _split_text(text: str, limit: int = MESSAGE_LIMIT) -> Iterable[str]:
    """Split text chars max 4096"""
    t = text or ""
    while len(t) > limit:
        cut = t.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        yield t[:cut]
        t = t[cut:].lstrip("\n")
    if t:
        yield t


def _check_response(resp: httpx.Response) -> JSONDict:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if resp.status_code >= 300 or not data.get("ok", True):
        description = data.get("description") or resp.text
        raise TelegramError(f"Telegram error: {resp.status_code} {description}")
    return data


async def send_message(
    token: str,
    chat_id: int | str,
    text: str,
    *,
    parse_mode: Optional[str] = "MarkdownV2",
    disable_web_page_preview: bool = True,
    timeout: float = HTTP_TIMEOUT_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> list[JSONDict]:
    """Send a message, split into several when longer than Telegram allows."""
    api = f"{TELEGRAM_API_BASE}/bot{token}/sendMessage"
    rendered = _normalize_newlines(text)

    payload_base: JSONDict = {
        "chat_id": chat_id,
        "disable_web_page_preview": disable_web_page_preview,
    }
    if parse_mode:
        payload_base["parse_mode"] = parse_mode

    results: list[JSONDict] = []
    own_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout)
    try:
        for chunk in _split_text(rendered):
            p = dict(payload_base)
            p["text"] = chunk
            resp = await http.post(api, json=p)
            results.append(_check_response(resp))
    finally:
        if own_client:
            await http.aclose()
    return results


class TelegramChannel:
    """Delivery channel backed by one Telegram bot."""

    def __init__(
        self,
        token: str,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.timeout = timeout
        self._client = client

    async def send(self, chat_id: str, text: str) -> DeliveryOutcome:
        try:
            await send_message(
                self.token,
                chat_id,
                text,
                timeout=self.timeout,
                client=self._client,
            )
        except (httpx.HTTPError, TelegramError) as exc:
            return DeliveryOutcome(chat_id=str(chat_id), ok=False, error=str(exc) or type(exc).__name__)
        return DeliveryOutcome(chat_id=str(chat_id), ok=True)
