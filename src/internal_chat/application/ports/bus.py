from __future__ import annotations

from typing import Protocol

from internal_chat.application.dto.events import BroadcastEnvelope


class EnvelopePublisher(Protocol):
    async def publish(self, account_id: int, envelope: BroadcastEnvelope) -> None: ...
