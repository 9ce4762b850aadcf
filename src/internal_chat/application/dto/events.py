from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from internal_chat.domain.value_objects.enums import EnvelopeEvent


@dataclass(frozen=True, slots=True)
class BroadcastEnvelope:
    """Transient real-time notification; never persisted."""

    event: str
    room_kind: str
    room_identifier: str
    message: dict[str, Any]
    timestamp: str

    @classmethod
    def new_message(
        cls, room_kind: str, room_identifier: str, message: dict[str, Any],
    ) -> BroadcastEnvelope:
        return cls(
            event=EnvelopeEvent.NEW_MESSAGE,
            room_kind=str(room_kind),
            room_identifier=str(room_identifier),
            message=message,
            timestamp=message["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": str(self.event),
            "room_kind": self.room_kind,
            "room_identifier": self.room_identifier,
            "message": self.message,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BroadcastEnvelope:
        return cls(
            event=data["event"],
            room_kind=str(data.get("room_kind", "")),
            room_identifier=str(data.get("room_identifier", "")),
            message=data.get("message") or {},
            timestamp=data.get("timestamp", ""),
        )
