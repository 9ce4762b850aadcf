from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from internal_chat.domain.value_objects import room_key
from internal_chat.domain.value_objects.enums import RoomKind


@dataclass(frozen=True, slots=True)
class Room:
    id: int | None
    account_id: int
    kind: RoomKind
    canonical_key: str
    name: str
    created_at: datetime
    team_id: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def participant_ids(self) -> tuple[int, int] | None:
        if self.kind != RoomKind.DIRECT:
            return None
        return room_key.parse_direct_key(self.canonical_key)
