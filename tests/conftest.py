"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Iterator

import pytest

from internal_chat.application.dto.events import BroadcastEnvelope
from internal_chat.application.dto.principal import Caller
from internal_chat.domain.entities.identity import Identity
from internal_chat.domain.entities.membership import Membership
from internal_chat.domain.entities.message import Message
from internal_chat.domain.entities.room import Room
from internal_chat.domain.entities.team import Team
from internal_chat.domain.value_objects.enums import IdentityKind

ACCOUNT_ID = 1
OTHER_ACCOUNT_ID = 2

ANA = Identity(id=1, display_name="Ana", email="ana@example.com")
BRUNO = Identity(id=2, display_name="Bruno", email="bruno@example.com")
CARLA = Identity(id=3, display_name="Carla", email="carla@example.com")
OUTSIDER = Identity(id=5, display_name="Outsider")
ROOT = Identity(id=9, display_name="Root", kind=IdentityKind.SUPER_ADMIN)

SUPPORT_TEAM = Team(
    id=10, account_id=ACCOUNT_ID, name="Support", description="Support team",
    member_ids=frozenset({ANA.id, BRUNO.id}),
)
FOREIGN_TEAM = Team(id=20, account_id=OTHER_ACCOUNT_ID, name="Elsewhere")


class FakeClock:
    """Advances one second per reading so consecutive writes are strictly ordered."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@dataclass
class FakeRoomReader:
    _rooms: dict[int, Room] = field(default_factory=dict)

    def _by_key(self, account_id: int, key: str) -> Room | None:
        for room in self._rooms.values():
            if room.account_id == account_id and room.canonical_key == key:
                return room
        return None

    async def get_by_id(self, account_id: int, room_id: int) -> Room | None:
        room = self._rooms.get(room_id)
        return room if room and room.account_id == account_id else None

    async def get_by_key(self, account_id: int, canonical_key: str) -> Room | None:
        return self._by_key(account_id, canonical_key)

    async def list_by_keys(self, account_id: int, keys: list[str]) -> list[Room]:
        wanted = set(keys)
        return [
            r for r in self._rooms.values()
            if r.account_id == account_id and r.canonical_key in wanted
        ]


@dataclass
class FakeRoomWriter:
    _reader: FakeRoomReader
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(100))

    async def create_if_not_exists(self, room: Room) -> tuple[Room, bool]:
        # Yield first so concurrent callers interleave like racing transactions.
        await asyncio.sleep(0)
        existing = self._reader._by_key(room.account_id, room.canonical_key)
        if existing is not None:
            return existing, False
        created = replace(room, id=next(self._ids))
        self._reader._rooms[created.id] = created
        return created, True


@dataclass
class FakeMembershipReader:
    _rows: dict[tuple[int, int], Membership] = field(default_factory=dict)

    async def get(self, room_id: int, user_id: int) -> Membership | None:
        return self._rows.get((room_id, user_id))

    async def list_for_room(self, room_id: int) -> list[Membership]:
        return sorted(
            (m for (rid, _), m in self._rows.items() if rid == room_id),
            key=lambda m: m.user_id,
        )


@dataclass
class FakeMembershipWriter:
    _reader: FakeMembershipReader

    async def add_if_not_exists(self, room_id: int, user_id: int, ts: datetime) -> bool:
        await asyncio.sleep(0)
        if (room_id, user_id) in self._reader._rows:
            return False
        self._reader._rows[(room_id, user_id)] = Membership(
            room_id=room_id, user_id=user_id, created_at=ts,
        )
        return True

    async def remove(self, room_id: int, user_id: int) -> bool:
        return self._reader._rows.pop((room_id, user_id), None) is not None

    async def mark_read(self, room_id: int, user_id: int, ts: datetime) -> None:
        current = self._reader._rows.get((room_id, user_id))
        if current is None:
            current = Membership(room_id=room_id, user_id=user_id, created_at=ts)
        self._reader._rows[(room_id, user_id)] = replace(current, last_read_at=ts)


@dataclass
class FakeMessageReader:
    _messages: dict[int, Message] = field(default_factory=dict)

    def _active(self, room_id: int) -> list[Message]:
        rows = [m for m in self._messages.values() if m.room_id == room_id and not m.deleted]
        return sorted(rows, key=lambda m: (m.created_at, m.id))

    async def get_by_id(self, account_id: int, message_id: int) -> Message | None:
        msg = self._messages.get(message_id)
        return msg if msg and msg.account_id == account_id else None

    async def list_recent(
        self, room_id: int, *, before_id: int | None = None, limit: int = 50,
    ) -> list[Message]:
        rows = [m for m in self._active(room_id) if before_id is None or m.id < before_id]
        return list(reversed(rows))[:limit]

    async def list_forward(
        self, room_id: int, *, after_id: int | None = None, limit: int = 50,
    ) -> list[Message]:
        rows = [m for m in self._active(room_id) if after_id is None or m.id > after_id]
        return rows[:limit]

    async def count_active(self, room_id: int) -> int:
        return len(self._active(room_id))

    async def count_unread(self, room_id: int, user_id: int, since: datetime) -> int:
        return sum(
            1 for m in self._active(room_id) if m.created_at > since and m.sender_id != user_id
        )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    async def create(self, message: Message) -> Message:
        created = replace(message, id=next(self._ids))
        self._reader._messages[created.id] = created
        return created

    async def update_content(
        self, message_id: int, content: str, edited_at: datetime, edited_by_id: int,
    ) -> Message:
        msg = replace(
            self._reader._messages[message_id],
            content=content, edited_at=edited_at, edited_by_id=edited_by_id,
        )
        self._reader._messages[message_id] = msg
        return msg

    async def soft_delete(
        self, message_id: int, deleted_at: datetime, deleted_by_id: int,
    ) -> Message:
        msg = replace(
            self._reader._messages[message_id],
            content=None, deleted_at=deleted_at, deleted_by_id=deleted_by_id,
        )
        self._reader._messages[message_id] = msg
        return msg


@dataclass
class FakeUserDirectory:
    members: dict[int, dict[int, Identity]] = field(default_factory=dict)
    super_admins: dict[int, Identity] = field(default_factory=dict)
    super_admin_accounts: dict[int, set[int]] = field(default_factory=dict)

    async def find_member(self, account_id: int, user_id: int) -> Identity | None:
        member = self.members.get(account_id, {}).get(user_id)
        if member is not None:
            return member
        if account_id in self.super_admin_accounts.get(user_id, set()):
            return self.super_admins.get(user_id)
        return None

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Identity]:
        everyone: dict[int, Identity] = dict(self.super_admins)
        for people in self.members.values():
            everyone.update(people)
        return {uid: everyone[uid] for uid in user_ids if uid in everyone}

    async def list_members(self, account_id: int) -> list[Identity]:
        return sorted(self.members.get(account_id, {}).values(), key=lambda i: i.id)

    async def list_super_admins(self) -> list[Identity]:
        return sorted(self.super_admins.values(), key=lambda i: i.id)

    async def default_account_id(self, user_id: int) -> int | None:
        for account_id in sorted(self.members):
            if user_id in self.members[account_id]:
                return account_id
        accounts = self.super_admin_accounts.get(user_id)
        return min(accounts) if accounts else None


@dataclass
class FakeTeamDirectory:
    teams: dict[int, Team] = field(default_factory=dict)

    async def get_team(self, account_id: int, team_id: int) -> Team | None:
        return self.teams.get(team_id)

    async def list_teams(self, account_id: int) -> list[Team]:
        return [t for t in self.teams.values() if t.account_id == account_id]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    rooms: FakeRoomReader = field(default_factory=FakeRoomReader)
    rooms_w: FakeRoomWriter | None = None
    memberships: FakeMembershipReader = field(default_factory=FakeMembershipReader)
    memberships_w: FakeMembershipWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserDirectory = field(default_factory=FakeUserDirectory)
    teams: FakeTeamDirectory = field(default_factory=FakeTeamDirectory)
    commits: int = 0

    def __post_init__(self) -> None:
        if self.rooms_w is None:
            self.rooms_w = FakeRoomWriter(self.rooms)
        if self.memberships_w is None:
            self.memberships_w = FakeMembershipWriter(self.memberships)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


@dataclass
class RecordingPublisher:
    published: list[tuple[int, BroadcastEnvelope]] = field(default_factory=list)

    async def publish(self, account_id: int, envelope: BroadcastEnvelope) -> None:
        self.published.append((account_id, envelope))


class FailingPublisher:
    async def publish(self, account_id: int, envelope: BroadcastEnvelope) -> None:
        raise ConnectionError("redis is down")


def make_uow() -> FakeUoW:
    uow = FakeUoW()
    uow.users.members = {
        ACCOUNT_ID: {p.id: p for p in (ANA, BRUNO, CARLA)},
        OTHER_ACCOUNT_ID: {OUTSIDER.id: OUTSIDER},
    }
    uow.users.super_admins = {ROOT.id: ROOT}
    uow.users.super_admin_accounts = {ROOT.id: {ACCOUNT_ID}}
    uow.teams.teams = {SUPPORT_TEAM.id: SUPPORT_TEAM, FOREIGN_TEAM.id: FOREIGN_TEAM}
    return uow


def make_caller(identity: Identity, account_id: int = ACCOUNT_ID) -> Caller:
    return Caller(identity=identity, account_id=account_id)


def serialized(message_id: Any, *, sender_id: int = ANA.id, content: str = "hi", room_id: int = 100) -> dict[str, Any]:
    return {
        "id": message_id,
        "content": content,
        "sender": {"id": sender_id, "name": "x", "avatar_url": None},
        "sender_id": sender_id,
        "created_at": "2025-09-01T12:00:00+00:00",
        "message_type": "text",
        "chat_type": "general",
        "chat_id": "general",
        "room_id": room_id,
        "attachments": [],
        "edited": False,
        "deleted": False,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def uow() -> FakeUoW:
    return make_uow()


@pytest.fixture
def ana() -> Caller:
    return make_caller(ANA)


@pytest.fixture
def bruno() -> Caller:
    return make_caller(BRUNO)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
