from __future__ import annotations

import logging
from typing import Any, Iterable

from internal_chat.application.exceptions import InvalidStateError, ValidationError
from internal_chat.application.ports.clock import Clock, system_clock
from internal_chat.application.uow import UnitOfWork
from internal_chat.domain.entities.message import AttachmentRef, Message
from internal_chat.domain.entities.room import Room

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


def _clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))


async def append(
    room: Room,
    sender_id: int,
    content: str | None,
    attachments: Iterable[AttachmentRef],
    metadata: dict[str, Any] | None,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Message:
    """Add a message to the room's log. The caller owns the commit."""
    text = (content or "").strip()
    refs = tuple(a for a in attachments if a.url)
    if not text and not refs:
        raise ValidationError("Message content cannot be blank")

    msg = Message(
        id=None,
        room_id=room.id,
        account_id=room.account_id,
        sender_id=sender_id,
        content=text or None,
        created_at=clock.now(),
        attachments=refs,
        metadata=dict(metadata or {}),
    )
    msg = await uow.messages_w.create(msg)
    logger.debug("Appended message %s to room %s", msg.id, room.id)
    return msg


async def list_recent(
    room: Room,
    uow: UnitOfWork,
    *,
    before_id: int | None = None,
    limit: int = 50,
) -> list[Message]:
    """Most recent ``limit`` active messages (below ``before_id``), in chronological order."""
    window = await uow.messages.list_recent(
        room.id, before_id=before_id, limit=_clamp_limit(limit),
    )
    return list(reversed(window))


async def list_forward(
    room: Room,
    uow: UnitOfWork,
    *,
    after_id: int | None = None,
    limit: int = 50,
) -> list[Message]:
    return await uow.messages.list_forward(
        room.id, after_id=after_id, limit=_clamp_limit(limit),
    )


async def active_count(room: Room, uow: UnitOfWork) -> int:
    return await uow.messages.count_active(room.id)


async def edit(
    message: Message,
    new_content: str | None,
    actor_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Message:
    if message.deleted:
        raise InvalidStateError("Deleted messages cannot be edited")
    text = (new_content or "").strip()
    if not text and not message.attachments:
        raise ValidationError("Message content cannot be blank")

    return await uow.messages_w.update_content(message.id, text, clock.now(), actor_id)


async def soft_delete(
    message: Message,
    actor_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Message:
    """Blank the content and stamp the deletion. Repeated deletes are no-ops."""
    if message.deleted:
        return message
    return await uow.messages_w.soft_delete(message.id, clock.now(), actor_id)
