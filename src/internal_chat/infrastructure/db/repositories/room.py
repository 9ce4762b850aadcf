from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.application.exceptions import InvalidStateError
from internal_chat.domain.entities.room import Room
from internal_chat.infrastructure.db.mappers import room as mapper
from internal_chat.infrastructure.db.models.room import RoomModel


class RoomReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: int, room_id: int) -> Room | None:
        stmt = select(RoomModel).where(
            RoomModel.id == room_id,
            RoomModel.account_id == account_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_by_key(self, account_id: int, canonical_key: str) -> Room | None:
        stmt = select(RoomModel).where(
            RoomModel.account_id == account_id,
            RoomModel.canonical_key == canonical_key,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_by_keys(self, account_id: int, keys: list[str]) -> list[Room]:
        if not keys:
            return []
        stmt = select(RoomModel).where(
            RoomModel.account_id == account_id,
            RoomModel.canonical_key.in_(keys),
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class RoomWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._reader = RoomReaderRepo(session)

    async def create_if_not_exists(self, room: Room) -> tuple[Room, bool]:
        """Insert room idempotently. Returns (room, created_flag)."""
        stmt = (
            pg_insert(RoomModel)
            .values(**mapper.entity_to_values(room))
            .on_conflict_do_nothing(constraint="uq_internal_chat_room_key")
            .returning(RoomModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Lost the race: another transaction committed the same key first
        existing = await self._reader.get_by_key(room.account_id, room.canonical_key)
        if existing is None:
            raise InvalidStateError(f"Room {room.canonical_key} conflicted but cannot be read back")
        return existing, False
