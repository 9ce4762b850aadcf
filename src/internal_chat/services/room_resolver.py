"""Turn a (room kind, identifier) request into a canonical room reference.

Resolution only reads: it never creates rooms or memberships. The room
store decides what to persist once a reference is known.
"""
from __future__ import annotations

import logging

from internal_chat.application.dto.principal import Caller
from internal_chat.application.dto.room import GENERAL_CHAT_ID, RoomRef
from internal_chat.application.exceptions import NotFoundError, ValidationError
from internal_chat.application.uow import UnitOfWork
from internal_chat.domain.value_objects import room_key
from internal_chat.domain.value_objects.enums import RoomKind

logger = logging.getLogger(__name__)


def parse_kind(raw: str | RoomKind | None) -> RoomKind:
    if raw is None or raw == "":
        return RoomKind.GENERAL
    try:
        return RoomKind(str(raw).lower())
    except ValueError:
        raise NotFoundError(f"Unknown room type: {raw}") from None


def _as_int(identifier: object) -> int | None:
    text = str(identifier).strip() if identifier is not None else ""
    return int(text) if text.isdigit() else None


async def resolve(
    kind: str | RoomKind | None,
    identifier: object,
    caller: Caller,
    uow: UnitOfWork,
) -> RoomRef:
    room_kind = parse_kind(kind)

    if room_kind == RoomKind.GENERAL:
        return RoomRef(
            kind=RoomKind.GENERAL,
            chat_id=GENERAL_CHAT_ID,
            canonical_key=room_key.general_key(),
        )

    if room_kind == RoomKind.TEAM:
        return await _resolve_team(identifier, caller, uow)

    return await _resolve_direct(identifier, caller, uow)


async def _resolve_team(identifier: object, caller: Caller, uow: UnitOfWork) -> RoomRef:
    team_id = _as_int(identifier)
    team = await uow.teams.get_team(caller.account_id, team_id) if team_id is not None else None
    if team is None or not team.belongs_to(caller.account_id):
        logger.info("Team %s not found in account %s", identifier, caller.account_id)
        raise NotFoundError("Room not found")

    return RoomRef(
        kind=RoomKind.TEAM,
        chat_id=str(team.id),
        canonical_key=room_key.team_key(team.id),
        team=team,
    )


async def _resolve_direct(identifier: object, caller: Caller, uow: UnitOfWork) -> RoomRef:
    numeric = _as_int(identifier)
    if numeric is None:
        raise NotFoundError("Room not found")

    # Clients pass either a room id or the peer's user id; room ids win.
    room = await uow.rooms.get_by_id(caller.account_id, numeric)
    if room is not None and room.kind == RoomKind.DIRECT:
        peer_id = room_key.counterpart_of(room.canonical_key, caller.user_id)
        if peer_id is not None:
            return RoomRef(
                kind=RoomKind.DIRECT,
                chat_id=str(peer_id),
                canonical_key=room.canonical_key,
                room_id=room.id,
            )

    if numeric == caller.user_id:
        raise ValidationError("Cannot open a direct room with yourself")

    peer = await uow.users.find_member(caller.account_id, numeric)
    if peer is None:
        logger.info(
            "Direct peer %s not found or without access to account %s",
            numeric, caller.account_id,
        )
        raise NotFoundError("Room not found")

    return RoomRef(
        kind=RoomKind.DIRECT,
        chat_id=str(peer.id),
        canonical_key=room_key.direct_key(caller.user_id, peer.id),
        counterpart=peer,
    )
