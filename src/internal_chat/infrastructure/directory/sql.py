"""User and team lookups against the host application's tables."""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.domain.entities.identity import Identity
from internal_chat.domain.entities.team import Team
from internal_chat.domain.value_objects.enums import IdentityKind
from internal_chat.infrastructure.db.models.directory import (
    SUPER_ADMIN_TYPE,
    AccountUserModel,
    TeamMemberModel,
    TeamModel,
    UserModel,
)


def _to_identity(model: UserModel) -> Identity:
    kind = IdentityKind.SUPER_ADMIN if model.type == SUPER_ADMIN_TYPE else IdentityKind.MEMBER
    return Identity(
        id=model.id,
        display_name=model.display_name or model.name,
        kind=kind,
        avatar_url=model.avatar_url,
        email=model.email,
    )


class SqlUserDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_member(self, account_id: int, user_id: int) -> Identity | None:
        # Super-users reach an account through the same account_users link
        stmt = (
            select(UserModel)
            .join(AccountUserModel, AccountUserModel.user_id == UserModel.id)
            .where(
                AccountUserModel.account_id == account_id,
                UserModel.id == user_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_identity(model) if model else None

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Identity]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self._session.execute(select(UserModel).where(UserModel.id.in_(ids)))
        return {m.id: _to_identity(m) for m in result.scalars().all()}

    async def list_members(self, account_id: int) -> list[Identity]:
        stmt = (
            select(UserModel)
            .join(AccountUserModel, AccountUserModel.user_id == UserModel.id)
            .where(AccountUserModel.account_id == account_id)
            .order_by(UserModel.name, UserModel.id)
        )
        result = await self._session.execute(stmt)
        return [_to_identity(m) for m in result.scalars().unique().all()]

    async def list_super_admins(self) -> list[Identity]:
        stmt = (
            select(UserModel)
            .where(UserModel.type == SUPER_ADMIN_TYPE)
            .order_by(UserModel.name, UserModel.id)
        )
        result = await self._session.execute(stmt)
        return [_to_identity(m) for m in result.scalars().all()]

    async def default_account_id(self, user_id: int) -> int | None:
        stmt = (
            select(AccountUserModel.account_id)
            .where(AccountUserModel.user_id == user_id)
            .order_by(AccountUserModel.created_at, AccountUserModel.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class SqlTeamDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _members(self, team_ids: list[int]) -> dict[int, frozenset[int]]:
        if not team_ids:
            return {}
        stmt = select(TeamMemberModel.team_id, TeamMemberModel.user_id).where(
            TeamMemberModel.team_id.in_(team_ids)
        )
        result = await self._session.execute(stmt)
        members: dict[int, set[int]] = defaultdict(set)
        for team_id, user_id in result.all():
            members[team_id].add(user_id)
        return {tid: frozenset(uids) for tid, uids in members.items()}

    def _to_team(self, model: TeamModel, members: dict[int, frozenset[int]]) -> Team:
        return Team(
            id=model.id,
            account_id=model.account_id,
            name=model.name,
            description=model.description,
            member_ids=members.get(model.id, frozenset()),
        )

    async def get_team(self, account_id: int, team_id: int) -> Team | None:
        stmt = select(TeamModel).where(
            TeamModel.id == team_id,
            TeamModel.account_id == account_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return self._to_team(model, await self._members([model.id]))

    async def list_teams(self, account_id: int) -> list[Team]:
        stmt = (
            select(TeamModel)
            .where(TeamModel.account_id == account_id)
            .order_by(TeamModel.name, TeamModel.id)
        )
        result = await self._session.execute(stmt)
        models = result.scalars().all()
        members = await self._members([m.id for m in models])
        return [self._to_team(m, members) for m in models]
