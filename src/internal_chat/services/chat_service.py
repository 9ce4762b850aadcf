"""Request-level flows: resolve the room, touch the ledger, then broadcast."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from internal_chat.application.dto.events import BroadcastEnvelope
from internal_chat.application.dto.principal import Caller
from internal_chat.application.dto.room import GENERAL_CHAT_ID
from internal_chat.application.exceptions import NotFoundError, ValidationError
from internal_chat.application.policies.permissions import assert_can_modify, assert_room_access
from internal_chat.application.ports.bus import EnvelopePublisher
from internal_chat.application.ports.clock import Clock, system_clock
from internal_chat.application.serializers import serialize_message
from internal_chat.application.uow import UnitOfWork
from internal_chat.domain.entities.message import AttachmentRef, Message
from internal_chat.domain.entities.room import Room
from internal_chat.domain.value_objects import room_key
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.services import message_service, room_resolver, room_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: list[dict[str, Any]]
    room_id: int
    total_count: int
    has_more: bool


def chat_id_for(room: Room, viewer_id: int) -> str:
    """Identifier a viewer uses for the room: "general", the team id or the peer's user id."""
    if room.kind == RoomKind.GENERAL:
        return GENERAL_CHAT_ID
    if room.kind == RoomKind.TEAM:
        return str(room.team_id)
    peer = room_key.counterpart_of(room.canonical_key, viewer_id)
    return str(peer if peer is not None else room.id)


async def _serialize_many(
    messages: list[Message], chat_type: str, chat_id: str, uow: UnitOfWork,
) -> list[dict[str, Any]]:
    senders = await uow.users.get_many({m.sender_id for m in messages})
    return [
        serialize_message(m, senders.get(m.sender_id), chat_type=chat_type, chat_id=chat_id)
        for m in messages
    ]


async def send_message(
    kind: str | RoomKind | None,
    identifier: object,
    content: str | None,
    attachments: Iterable[AttachmentRef],
    caller: Caller,
    uow: UnitOfWork,
    publisher: EnvelopePublisher,
    *,
    metadata: dict[str, Any] | None = None,
    clock: Clock = system_clock,
) -> dict[str, Any]:
    """Persist a message and announce it on the account channel.

    The message is committed before publishing; a failed publish is logged
    and the persisted message is still returned.
    """
    refs = list(attachments)
    if not (content or "").strip() and not any(a.url for a in refs):
        raise ValidationError("Message content cannot be blank")

    ref = await room_resolver.resolve(kind, identifier, caller, uow)
    room = await room_service.ensure_for_ref(ref, caller, uow, clock=clock)
    msg = await message_service.append(
        room, caller.user_id, content, refs, metadata, uow, clock=clock,
    )
    await uow.commit()

    serialized = serialize_message(msg, caller.identity, chat_type=ref.kind, chat_id=ref.chat_id)
    envelope = BroadcastEnvelope.new_message(ref.kind, ref.chat_id, serialized)
    try:
        await publisher.publish(caller.account_id, envelope)
    except Exception:
        logger.exception(
            "Broadcast of message %s to account %s failed", msg.id, caller.account_id,
        )
    return serialized


async def list_messages(
    kind: str | RoomKind | None,
    identifier: object,
    caller: Caller,
    uow: UnitOfWork,
    *,
    before_id: int | None = None,
    limit: int = 50,
    clock: Clock = system_clock,
) -> MessagePage:
    ref = await room_resolver.resolve(kind, identifier, caller, uow)
    room = await room_service.ensure_for_ref(ref, caller, uow, clock=clock)
    await uow.commit()

    page = await message_service.list_recent(room, uow, before_id=before_id, limit=limit)
    has_more = bool(page) and bool(
        await uow.messages.list_recent(room.id, before_id=page[0].id, limit=1)
    )
    return MessagePage(
        messages=await _serialize_many(page, ref.kind, ref.chat_id, uow),
        room_id=room.id,
        total_count=await message_service.active_count(room, uow),
        has_more=has_more,
    )


async def _load_for_change(
    message_id: int, caller: Caller, uow: UnitOfWork,
) -> tuple[Message, Room]:
    msg = await uow.messages.get_by_id(caller.account_id, message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    room = assert_room_access(caller, await uow.rooms.get_by_id(caller.account_id, msg.room_id))
    assert_can_modify(caller, msg)
    return msg, room


async def edit_message(
    message_id: int,
    content: str | None,
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> dict[str, Any]:
    msg, room = await _load_for_change(message_id, caller, uow)
    msg = await message_service.edit(msg, content, caller.user_id, uow, clock=clock)
    await uow.commit()
    [serialized] = await _serialize_many([msg], room.kind, chat_id_for(room, caller.user_id), uow)
    return serialized


async def delete_message(
    message_id: int,
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> dict[str, Any]:
    msg, room = await _load_for_change(message_id, caller, uow)
    msg = await message_service.soft_delete(msg, caller.user_id, uow, clock=clock)
    await uow.commit()
    [serialized] = await _serialize_many([msg], room.kind, chat_id_for(room, caller.user_id), uow)
    return serialized
