from __future__ import annotations

from dataclasses import dataclass

from internal_chat.domain.entities.identity import Identity
from internal_chat.domain.entities.team import Team
from internal_chat.domain.value_objects.enums import RoomKind

GENERAL_CHAT_ID = "general"


@dataclass(frozen=True, slots=True)
class RoomRef:
    """Outcome of resolving a (kind, identifier) request for a caller.

    ``room_id`` is only set when the request addressed an existing room
    directly; otherwise the room store finds or creates it from
    ``canonical_key``.
    """

    kind: RoomKind
    chat_id: str
    canonical_key: str
    room_id: int | None = None
    team: Team | None = None
    counterpart: Identity | None = None


@dataclass(frozen=True, slots=True)
class RoomSummary:
    kind: RoomKind
    identifier: str
    name: str
    room_id: int | None
    unread_count: int = 0
    description: str | None = None
    member_count: int | None = None
    peer: Identity | None = None


@dataclass(frozen=True, slots=True)
class RoomOverview:
    general: RoomSummary
    teams: list[RoomSummary]
    direct_messages: list[RoomSummary]
