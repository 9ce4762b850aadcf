"""Seed development data: an account with three users, one team and a few general-room messages."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert

from internal_chat.infrastructure.db.models.directory import (
    SUPER_ADMIN_TYPE,
    AccountUserModel,
    TeamMemberModel,
    TeamModel,
    UserModel,
)
from internal_chat.infrastructure.db.session import AsyncSessionLocal
from internal_chat.infrastructure.db.uow import SqlAlchemyUoW
from internal_chat.services import message_service, room_service

logger = logging.getLogger(__name__)

ACCOUNT_ID = 1
USERS = [
    (1, "Ana Souza", "ana@example.com", None),
    (2, "Bruno Lima", "bruno@example.com", None),
    (3, "Root", "root@example.com", SUPER_ADMIN_TYPE),
]


async def seed() -> None:
    now = datetime.now(timezone.utc)
    async with AsyncSessionLocal() as session:
        for user_id, name, email, kind in USERS:
            await session.execute(
                pg_insert(UserModel)
                .values(id=user_id, name=name, email=email, type=kind)
                .on_conflict_do_nothing()
            )
            await session.execute(
                pg_insert(AccountUserModel)
                .values(id=user_id, account_id=ACCOUNT_ID, user_id=user_id, created_at=now)
                .on_conflict_do_nothing()
            )
        await session.execute(
            pg_insert(TeamModel)
            .values(id=1, account_id=ACCOUNT_ID, name="Support", description="Support team")
            .on_conflict_do_nothing()
        )
        for member_id in (1, 2):
            await session.execute(
                pg_insert(TeamMemberModel)
                .values(id=member_id, team_id=1, user_id=member_id)
                .on_conflict_do_nothing()
            )

        uow = SqlAlchemyUoW(session)
        general = await room_service.ensure_general(ACCOUNT_ID, uow)
        for sender_id, body in [(1, "Bom dia, pessoal!"), (2, "Bom dia! Reunião às 10h?"), (1, "Combinado.")]:
            await message_service.append(general, sender_id, body, (), None, uow)
        await uow.commit()
        logger.info("Seeded account %s, general room %s", ACCOUNT_ID, general.id)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
