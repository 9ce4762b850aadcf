from __future__ import annotations

from typing import Protocol

from internal_chat.domain.entities.room import Room


class RoomReader(Protocol):
    async def get_by_id(self, account_id: int, room_id: int) -> Room | None: ...

    async def get_by_key(self, account_id: int, canonical_key: str) -> Room | None: ...

    async def list_by_keys(self, account_id: int, keys: list[str]) -> list[Room]: ...


class RoomWriter(Protocol):
    async def create_if_not_exists(self, room: Room) -> tuple[Room, bool]:
        """Insert room. Return (room, created). On a canonical-key conflict return the existing row."""
        ...
