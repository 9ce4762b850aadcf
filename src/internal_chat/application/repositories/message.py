from __future__ import annotations

from datetime import datetime
from typing import Protocol

from internal_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, account_id: int, message_id: int) -> Message | None: ...

    async def list_recent(
        self,
        room_id: int,
        *,
        before_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Active messages, newest first."""
        ...

    async def list_forward(
        self,
        room_id: int,
        *,
        after_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Active messages, oldest first."""
        ...

    async def count_active(self, room_id: int) -> int: ...

    async def count_unread(self, room_id: int, user_id: int, since: datetime) -> int: ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def update_content(
        self, message_id: int, content: str, edited_at: datetime, edited_by_id: int,
    ) -> Message: ...

    async def soft_delete(
        self, message_id: int, deleted_at: datetime, deleted_by_id: int,
    ) -> Message: ...
