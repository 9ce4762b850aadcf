from __future__ import annotations

from typing import Protocol

from internal_chat.application.ports.directory import TeamDirectory, UserDirectory
from internal_chat.application.repositories.membership import (
    MembershipReader,
    MembershipWriter,
)
from internal_chat.application.repositories.message import MessageReader, MessageWriter
from internal_chat.application.repositories.room import RoomReader, RoomWriter


class UnitOfWork(Protocol):
    rooms: RoomReader
    rooms_w: RoomWriter
    memberships: MembershipReader
    memberships_w: MembershipWriter
    messages: MessageReader
    messages_w: MessageWriter
    users: UserDirectory
    teams: TeamDirectory

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
