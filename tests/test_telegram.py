import json

import httpx
import pytest

from workflow_notifier.services.telegram import (
    TelegramChannel,
    TelegramError,
    _split_text,
    send_message,
)
from workflow_notifier.services.formatter import format_notification
from workflow_notifier.services.normalizer import normalize_event
from tests.conftest import make_payload


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_split_text_prefers_line_boundaries():
    text = "\n".join(["x" * 100] * 60)
    chunks = list(_split_text(text, limit=1000))
    assert all(len(c) <= 1000 for c in chunks)
    assert "".join(chunks).replace("\n", "") == text.replace("\n", "")


def test_split_text_short_message_untouched():
    assert list(_split_text("hello")) == ["hello"]
    assert list(_split_text("")) == []


@pytest.mark.asyncio
async def test_send_message_posts_markdown_v2():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    async with client_for(handler) as client:
        results = await send_message("123:abc", "-10042", "hi\r\nthere", client=client)

    assert len(results) == 1
    assert requests[0].url.path == "/bot123:abc/sendMessage"
    body = json.loads(requests[0].content)
    assert body == {
        "chat_id": "-10042",
        "text": "hi\nthere",
        "parse_mode": "MarkdownV2",
        "disable_web_page_preview": True,
    }


@pytest.mark.asyncio
async def test_send_message_splits_long_text():
    texts = []

    def handler(request):
        texts.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"ok": True})

    long_text = "\n".join(["line " * 20] * 80)
    async with client_for(handler) as client:
        await send_message("t", 1, long_text, client=client)

    assert len(texts) > 1
    assert all(len(t) <= 4096 for t in texts)


@pytest.mark.asyncio
async def test_send_message_raises_on_telegram_error():
    def handler(request):
        return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

    async with client_for(handler) as client:
        with pytest.raises(TelegramError, match="chat not found"):
            await send_message("t", 1, "hi", client=client)


@pytest.mark.asyncio
async def test_channel_reports_failures_instead_of_raising():
    def handler(request):
        chat_id = json.loads(request.content)["chat_id"]
        if chat_id == "down":
            raise httpx.ConnectError("connection refused", request=request)
        if chat_id == "missing":
            return httpx.Response(400, json={"ok": False, "description": "chat not found"})
        return httpx.Response(200, json={"ok": True})

    async with client_for(handler) as client:
        channel = TelegramChannel("t", client=client)
        ok = await channel.send("good", "hi")
        down = await channel.send("down", "hi")
        missing = await channel.send("missing", "hi")

    assert ok.ok and ok.error is None
    assert not down.ok and "connection refused" in down.error
    assert not missing.ok and "chat not found" in missing.error


@pytest.mark.asyncio
async def test_long_notification_goes_out_as_a_single_message():
    texts = []

    def handler(request):
        texts.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"ok": True})

    event = normalize_event(make_payload(commit_message="x" * 5000))
    async with client_for(handler) as client:
        outcome = await TelegramChannel("t", client=client).send("1", format_notification(event, "Demo"))

    assert outcome.ok
    assert len(texts) == 1
    assert len(texts[0]) <= 4096
    assert texts[0].count("_") % 2 == 0
