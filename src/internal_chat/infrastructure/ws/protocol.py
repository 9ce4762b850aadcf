"""WebSocket frame models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from internal_chat.application.dto.events import BroadcastEnvelope

CONFIRM_SUBSCRIPTION = "confirm_subscription"
PING = "ping"
PONG = "pong"
SEND = "message.send"
SENT = "message.sent"
ERROR = "error"


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # ping | message.send
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # confirm_subscription | new_message | message.sent | pong | error
    data: dict[str, Any] = {}

    @classmethod
    def from_envelope(cls, envelope: BroadcastEnvelope) -> WsOutbound:
        return cls(type=str(envelope.event), data=envelope.to_dict())

    @classmethod
    def error(cls, code: str, detail: str | None = None) -> WsOutbound:
        data: dict[str, Any] = {"code": code}
        if detail is not None:
            data["detail"] = detail
        return cls(type=ERROR, data=data)
