from __future__ import annotations

from datetime import datetime
from typing import Protocol

from internal_chat.domain.entities.membership import Membership


class MembershipReader(Protocol):
    async def get(self, room_id: int, user_id: int) -> Membership | None: ...

    async def list_for_room(self, room_id: int) -> list[Membership]: ...


class MembershipWriter(Protocol):
    async def add_if_not_exists(self, room_id: int, user_id: int, ts: datetime) -> bool:
        """Return True if a row was inserted."""
        ...

    async def remove(self, room_id: int, user_id: int) -> bool: ...

    async def mark_read(self, room_id: int, user_id: int, ts: datetime) -> None:
        """Upsert the membership and move its last-read marker to ``ts``."""
        ...
