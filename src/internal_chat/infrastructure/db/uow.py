from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.application.exceptions import StorageError
from internal_chat.infrastructure.db.repositories.membership import (
    MembershipReaderRepo,
    MembershipWriterRepo,
)
from internal_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from internal_chat.infrastructure.db.repositories.room import RoomReaderRepo, RoomWriterRepo
from internal_chat.infrastructure.directory.sql import SqlTeamDirectory, SqlUserDirectory


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession.

    Directory lookups share the session so a request sees one snapshot.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.rooms = RoomReaderRepo(session)
        self.rooms_w = RoomWriterRepo(session)
        self.memberships = MembershipReaderRepo(session)
        self.memberships_w = MembershipWriterRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.users = SqlUserDirectory(session)
        self.teams = SqlTeamDirectory(session)

    async def flush(self) -> None:
        try:
            await self._session.flush()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to flush changes") from exc

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise StorageError("Failed to commit changes") from exc

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
