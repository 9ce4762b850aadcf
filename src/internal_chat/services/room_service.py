from __future__ import annotations

import logging

from internal_chat.application.dto.principal import Caller
from internal_chat.application.dto.room import (
    GENERAL_CHAT_ID,
    RoomOverview,
    RoomRef,
    RoomSummary,
)
from internal_chat.application.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from internal_chat.application.policies.permissions import assert_room_access
from internal_chat.application.ports.clock import Clock, system_clock
from internal_chat.application.uow import UnitOfWork
from internal_chat.domain.entities.identity import Identity
from internal_chat.domain.entities.room import Room
from internal_chat.domain.entities.team import Team
from internal_chat.domain.value_objects import room_key
from internal_chat.domain.value_objects.enums import RoomKind

logger = logging.getLogger(__name__)

GENERAL_ROOM_NAME = "General"
GENERAL_ROOM_DESCRIPTION = "General conversation for the whole account"
TEAM_ROOM_DESCRIPTION = "Team"


async def _get_or_create(candidate: Room, uow: UnitOfWork) -> Room:
    existing = await uow.rooms.get_by_key(candidate.account_id, candidate.canonical_key)
    if existing is not None:
        return existing

    room, created = await uow.rooms_w.create_if_not_exists(candidate)
    if created:
        logger.info(
            "Created %s room %s (%s) in account %s",
            room.kind, room.id, room.canonical_key, room.account_id,
        )
    return room


async def ensure_general(
    account_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Room:
    return await _get_or_create(
        Room(
            id=None,
            account_id=account_id,
            kind=RoomKind.GENERAL,
            canonical_key=room_key.general_key(),
            name=GENERAL_ROOM_NAME,
            created_at=clock.now(),
            metadata={"description": GENERAL_ROOM_DESCRIPTION},
        ),
        uow,
    )


async def ensure_team(
    account_id: int,
    team: Team,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Room:
    """Get or create the team's room and mirror the team roster into memberships."""
    if not team.belongs_to(account_id):
        raise InvalidStateError(f"Team {team.id} does not belong to account {account_id}")

    now = clock.now()
    room = await _get_or_create(
        Room(
            id=None,
            account_id=account_id,
            kind=RoomKind.TEAM,
            canonical_key=room_key.team_key(team.id),
            name=team.name,
            created_at=now,
            team_id=team.id,
            metadata={"description": team.description or TEAM_ROOM_DESCRIPTION},
        ),
        uow,
    )
    if room.team_id != team.id:
        raise InvalidStateError(f"Room {room.canonical_key} is bound to another team")

    for user_id in sorted(team.member_ids):
        await uow.memberships_w.add_if_not_exists(room.id, user_id, now)
    return room


async def ensure_direct(
    account_id: int,
    user_a: Identity,
    user_b: Identity,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Room:
    """Get or create the pair's direct room; both users are members afterwards."""
    if user_a.id == user_b.id:
        raise ValidationError("Cannot open a direct room with yourself")

    lo, hi = sorted((user_a, user_b), key=lambda u: u.id)
    now = clock.now()
    room = await _get_or_create(
        Room(
            id=None,
            account_id=account_id,
            kind=RoomKind.DIRECT,
            canonical_key=room_key.direct_key(lo.id, hi.id),
            name=f"{lo.display_name} & {hi.display_name}",
            created_at=now,
            metadata={"participant_ids": [lo.id, hi.id]},
        ),
        uow,
    )
    await uow.memberships_w.add_if_not_exists(room.id, lo.id, now)
    await uow.memberships_w.add_if_not_exists(room.id, hi.id, now)
    return room


async def ensure_for_ref(
    ref: RoomRef,
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Room:
    if ref.kind == RoomKind.GENERAL:
        return await ensure_general(caller.account_id, uow, clock=clock)

    if ref.kind == RoomKind.TEAM:
        if ref.team is None:
            raise InvalidStateError("Team room reference without a team")
        return await ensure_team(caller.account_id, ref.team, uow, clock=clock)

    if ref.room_id is not None:
        room = await uow.rooms.get_by_id(caller.account_id, ref.room_id)
        return assert_room_access(caller, room)

    if ref.counterpart is None:
        raise InvalidStateError("Direct room reference without a counterpart")
    return await ensure_direct(
        caller.account_id, caller.identity, ref.counterpart, uow, clock=clock,
    )


async def add_member(
    room: Room,
    user_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> bool:
    return await uow.memberships_w.add_if_not_exists(room.id, user_id, clock.now())


async def remove_member(room: Room, user_id: int, uow: UnitOfWork) -> bool:
    return await uow.memberships_w.remove(room.id, user_id)


async def unread_count(room: Room, user_id: int, uow: UnitOfWork) -> int:
    membership = await uow.memberships.get(room.id, user_id)
    if membership is None:
        return 0
    return await uow.messages.count_unread(room.id, user_id, membership.read_marker)


async def mark_read(
    room_id: int,
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Room:
    room = assert_room_access(caller, await uow.rooms.get_by_id(caller.account_id, room_id))
    await uow.memberships_w.mark_read(room.id, caller.user_id, clock.now())
    await uow.commit()
    return room


async def open_direct_room(
    target_user_id: int,
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> tuple[Room, list[Identity]]:
    """Create-or-fetch the direct room between the caller and ``target_user_id``."""
    if target_user_id == caller.user_id:
        raise ValidationError("Cannot open a direct room with yourself")

    target = await uow.users.find_member(caller.account_id, target_user_id)
    if target is None:
        raise NotFoundError("User not found")

    room = await ensure_direct(caller.account_id, caller.identity, target, uow, clock=clock)
    await uow.commit()

    members = await uow.memberships.list_for_room(room.id)
    people = await uow.users.get_many(m.user_id for m in members)
    return room, [people[m.user_id] for m in members if m.user_id in people]


async def list_rooms(
    caller: Caller,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> RoomOverview:
    """General room, every team room and every possible direct peer for the caller."""
    general_room = await ensure_general(caller.account_id, uow, clock=clock)
    general = RoomSummary(
        kind=RoomKind.GENERAL,
        identifier=GENERAL_CHAT_ID,
        name=general_room.name,
        room_id=general_room.id,
        unread_count=await unread_count(general_room, caller.user_id, uow),
        description=general_room.metadata.get("description"),
    )

    teams: list[RoomSummary] = []
    for team in await uow.teams.list_teams(caller.account_id):
        room = await ensure_team(caller.account_id, team, uow, clock=clock)
        teams.append(
            RoomSummary(
                kind=RoomKind.TEAM,
                identifier=str(team.id),
                name=team.name,
                room_id=room.id,
                unread_count=await unread_count(room, caller.user_id, uow),
                description=team.description or TEAM_ROOM_DESCRIPTION,
                member_count=len(team.member_ids),
            )
        )

    peers: dict[int, Identity] = {
        p.id: p for p in await uow.users.list_members(caller.account_id) if p.id != caller.user_id
    }
    if caller.identity.is_super_admin:
        for admin in await uow.users.list_super_admins():
            if admin.id != caller.user_id:
                peers.setdefault(admin.id, admin)

    keys = {room_key.direct_key(caller.user_id, peer_id): peer_id for peer_id in peers}
    existing = {
        r.canonical_key: r for r in await uow.rooms.list_by_keys(caller.account_id, list(keys))
    }

    direct: list[RoomSummary] = []
    for key, peer_id in keys.items():
        room = existing.get(key)
        peer = peers[peer_id]
        direct.append(
            RoomSummary(
                kind=RoomKind.DIRECT,
                identifier=str(peer.id),
                name=peer.display_name,
                room_id=room.id if room else None,
                unread_count=await unread_count(room, caller.user_id, uow) if room else 0,
                peer=peer,
            )
        )

    await uow.commit()
    return RoomOverview(general=general, teams=teams, direct_messages=direct)
