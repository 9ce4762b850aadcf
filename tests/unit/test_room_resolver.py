from __future__ import annotations

import pytest

from internal_chat.application.exceptions import NotFoundError, ValidationError
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.services import room_resolver, room_service
from tests.conftest import (
    ANA,
    BRUNO,
    CARLA,
    FOREIGN_TEAM,
    OUTSIDER,
    ROOT,
    SUPPORT_TEAM,
    make_caller,
)


@pytest.mark.asyncio
async def test_general_always_resolves(uow, ana):
    for kind in ("general", None, "", "GENERAL"):
        ref = await room_resolver.resolve(kind, "whatever", ana, uow)
        assert ref.kind == RoomKind.GENERAL
        assert ref.chat_id == "general"
        assert ref.canonical_key == "general"


@pytest.mark.asyncio
async def test_unknown_kind_is_not_found(uow, ana):
    with pytest.raises(NotFoundError):
        await room_resolver.resolve("broadcast", "1", ana, uow)


@pytest.mark.asyncio
async def test_team_of_own_account(uow, ana):
    ref = await room_resolver.resolve("team", str(SUPPORT_TEAM.id), ana, uow)
    assert ref.kind == RoomKind.TEAM
    assert ref.chat_id == str(SUPPORT_TEAM.id)
    assert ref.canonical_key == f"team-{SUPPORT_TEAM.id}"
    assert ref.team == SUPPORT_TEAM


@pytest.mark.asyncio
async def test_team_of_other_account_is_not_found(uow, ana):
    with pytest.raises(NotFoundError):
        await room_resolver.resolve("team", FOREIGN_TEAM.id, ana, uow)


@pytest.mark.asyncio
async def test_missing_team_is_not_found(uow, ana):
    with pytest.raises(NotFoundError):
        await room_resolver.resolve("team", "999", ana, uow)


@pytest.mark.asyncio
async def test_direct_by_user_id(uow, ana):
    ref = await room_resolver.resolve("direct", str(BRUNO.id), ana, uow)
    assert ref.kind == RoomKind.DIRECT
    assert ref.chat_id == str(BRUNO.id)
    assert ref.canonical_key == f"direct-{ANA.id}-{BRUNO.id}"
    assert ref.counterpart == BRUNO
    assert ref.room_id is None


@pytest.mark.asyncio
async def test_direct_is_side_effect_free(uow, ana):
    first = await room_resolver.resolve("direct", BRUNO.id, ana, uow)
    second = await room_resolver.resolve("direct", BRUNO.id, ana, uow)
    assert first == second
    assert uow.rooms._rooms == {}


@pytest.mark.asyncio
async def test_direct_prefers_existing_room_id(uow, ana, bruno, clock):
    room = await room_service.ensure_direct(1, ANA, BRUNO, uow, clock=clock)

    ref = await room_resolver.resolve("direct", str(room.id), bruno, uow)

    assert ref.room_id == room.id
    assert ref.chat_id == str(ANA.id)
    assert ref.canonical_key == room.canonical_key


@pytest.mark.asyncio
async def test_direct_room_id_of_others_falls_back_to_user_lookup(uow, clock):
    room = await room_service.ensure_direct(1, ANA, BRUNO, uow, clock=clock)

    with pytest.raises(NotFoundError):
        await room_resolver.resolve("direct", room.id, make_caller(CARLA), uow)


@pytest.mark.asyncio
async def test_direct_with_super_admin_having_access(uow, ana):
    ref = await room_resolver.resolve("direct", ROOT.id, ana, uow)
    assert ref.counterpart == ROOT


@pytest.mark.asyncio
async def test_direct_with_user_of_other_account_is_not_found(uow, ana):
    with pytest.raises(NotFoundError):
        await room_resolver.resolve("direct", OUTSIDER.id, ana, uow)


@pytest.mark.asyncio
async def test_direct_with_non_numeric_identifier_is_not_found(uow, ana):
    with pytest.raises(NotFoundError):
        await room_resolver.resolve("direct", "bruno", ana, uow)


@pytest.mark.asyncio
async def test_direct_with_self_is_rejected(uow, ana):
    with pytest.raises(ValidationError):
        await room_resolver.resolve("direct", ANA.id, ana, uow)
