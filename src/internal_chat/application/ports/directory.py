from __future__ import annotations

from typing import Iterable, Protocol

from internal_chat.domain.entities.identity import Identity
from internal_chat.domain.entities.team import Team


class UserDirectory(Protocol):
    async def find_member(self, account_id: int, user_id: int) -> Identity | None:
        """Account member, or super-user with access to the account."""
        ...

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Identity]: ...

    async def list_members(self, account_id: int) -> list[Identity]: ...

    async def list_super_admins(self) -> list[Identity]: ...

    async def default_account_id(self, user_id: int) -> int | None: ...


class TeamDirectory(Protocol):
    async def get_team(self, account_id: int, team_id: int) -> Team | None: ...

    async def list_teams(self, account_id: int) -> list[Team]: ...
