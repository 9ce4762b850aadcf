from __future__ import annotations

from internal_chat.application.dto.principal import Caller
from internal_chat.application.exceptions import ForbiddenError, NotFoundError
from internal_chat.domain.entities.message import Message
from internal_chat.domain.entities.room import Room
from internal_chat.domain.value_objects.enums import RoomKind


def assert_room_access(caller: Caller, room: Room | None) -> Room:
    """Raise if the room doesn't exist in the caller's account or is someone else's direct room."""
    if room is None or room.account_id != caller.account_id:
        raise NotFoundError("Room not found")

    if room.kind == RoomKind.DIRECT:
        participants = room.participant_ids or ()
        if caller.user_id not in participants:
            raise ForbiddenError("Not a participant of this room")

    return room


def assert_can_modify(caller: Caller, message: Message) -> None:
    # Super-users moderate every account they can see
    if caller.identity.is_super_admin:
        return
    if message.sender_id != caller.user_id:
        raise ForbiddenError("Only the sender can change this message")
