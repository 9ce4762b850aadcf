from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.domain.entities.message import Message
from internal_chat.infrastructure.db.mappers import message as mapper
from internal_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: int, message_id: int) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.id == message_id,
            MessageModel.account_id == account_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_recent(
        self,
        room_id: int,
        *,
        before_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.room_id == room_id,
                MessageModel.deleted_at.is_(None),
            )
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        if before_id is not None:
            stmt = stmt.where(MessageModel.id < before_id)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_forward(
        self,
        room_id: int,
        *,
        after_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.room_id == room_id,
                MessageModel.deleted_at.is_(None),
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if after_id is not None:
            stmt = stmt.where(MessageModel.id > after_id)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count_active(self, room_id: int) -> int:
        stmt = select(func.count(MessageModel.id)).where(
            MessageModel.room_id == room_id,
            MessageModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def count_unread(self, room_id: int, user_id: int, since: datetime) -> int:
        stmt = select(func.count(MessageModel.id)).where(
            MessageModel.room_id == room_id,
            MessageModel.deleted_at.is_(None),
            MessageModel.created_at > since,
            MessageModel.sender_id != user_id,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def _update(self, message_id: int, **values: object) -> Message:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(**values)
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    async def update_content(
        self, message_id: int, content: str, edited_at: datetime, edited_by_id: int,
    ) -> Message:
        return await self._update(
            message_id, content=content, edited_at=edited_at, edited_by_id=edited_by_id,
        )

    async def soft_delete(
        self, message_id: int, deleted_at: datetime, deleted_by_id: int,
    ) -> Message:
        return await self._update(
            message_id, content=None, deleted_at=deleted_at, deleted_by_id=deleted_by_id,
        )
