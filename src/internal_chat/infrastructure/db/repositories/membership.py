from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.domain.entities.membership import Membership
from internal_chat.infrastructure.db.mappers import membership as mapper
from internal_chat.infrastructure.db.models.membership import MembershipModel


class MembershipReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, room_id: int, user_id: int) -> Membership | None:
        stmt = select(MembershipModel).where(
            MembershipModel.room_id == room_id,
            MembershipModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_room(self, room_id: int) -> list[Membership]:
        stmt = (
            select(MembershipModel)
            .where(MembershipModel.room_id == room_id)
            .order_by(MembershipModel.user_id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MembershipWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_if_not_exists(self, room_id: int, user_id: int, ts: datetime) -> bool:
        stmt = (
            pg_insert(MembershipModel)
            .values(room_id=room_id, user_id=user_id, created_at=ts)
            .on_conflict_do_nothing(constraint="uq_internal_chat_membership")
            .returning(MembershipModel.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def remove(self, room_id: int, user_id: int) -> bool:
        stmt = (
            delete(MembershipModel)
            .where(
                MembershipModel.room_id == room_id,
                MembershipModel.user_id == user_id,
            )
            .returning(MembershipModel.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def mark_read(self, room_id: int, user_id: int, ts: datetime) -> None:
        stmt = (
            pg_insert(MembershipModel)
            .values(room_id=room_id, user_id=user_id, created_at=ts, last_read_at=ts)
            .on_conflict_do_update(
                constraint="uq_internal_chat_membership",
                set_={"last_read_at": ts},
            )
        )
        await self._session.execute(stmt)
