"""Delivery outcome and the channel interface the dispatcher sends through."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class DeliveryOutcome:
    chat_id: str
    ok: bool
    error: Optional[str] = None


class DeliveryChannel(Protocol):
    async def send(self, chat_id: str, text: str) -> DeliveryOutcome:
        """Deliver ``text`` to ``chat_id``; failures are reported, not raised."""
