"""Rewrite legacy direct-room keys ("4-9") to the canonical "direct-4-9" form.

When both forms exist for the same pair, the legacy room's memberships and
messages are moved into the canonical room and the legacy row is removed.
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.domain.value_objects import room_key
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.infrastructure.db.models.membership import MembershipModel
from internal_chat.infrastructure.db.models.message import MessageModel
from internal_chat.infrastructure.db.models.room import RoomModel
from internal_chat.infrastructure.db.session import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)


async def _merge_into(session: AsyncSession, legacy: RoomModel, target: RoomModel) -> None:
    members = (
        await session.execute(
            select(MembershipModel).where(MembershipModel.room_id == legacy.id)
        )
    ).scalars().all()
    for m in members:
        await session.execute(
            pg_insert(MembershipModel)
            .values(
                room_id=target.id,
                user_id=m.user_id,
                last_read_at=m.last_read_at,
                created_at=m.created_at,
            )
            .on_conflict_do_nothing(constraint="uq_internal_chat_membership")
        )
    await session.execute(
        update(MessageModel).where(MessageModel.room_id == legacy.id).values(room_id=target.id)
    )
    await session.execute(delete(RoomModel).where(RoomModel.id == legacy.id))


async def normalize(dry_run: bool = False) -> tuple[int, int]:
    renamed = merged = 0
    async with AsyncSessionLocal() as session:
        rooms = (
            await session.execute(select(RoomModel).where(RoomModel.kind == RoomKind.DIRECT))
        ).scalars().all()
        by_key = {(r.account_id, r.canonical_key): r for r in rooms}

        for room in rooms:
            if room.canonical_key.startswith(room_key.DIRECT_PREFIX):
                continue
            try:
                canonical = room_key.normalize_direct_key(room.canonical_key)
            except ValueError:
                logger.warning("Room %s has an unparseable key %r", room.id, room.canonical_key)
                continue

            target = by_key.get((room.account_id, canonical))
            if target is None:
                logger.info("Room %s: %s -> %s", room.id, room.canonical_key, canonical)
                await session.execute(
                    update(RoomModel).where(RoomModel.id == room.id).values(canonical_key=canonical)
                )
                by_key[(room.account_id, canonical)] = room
                renamed += 1
            else:
                logger.info("Room %s: merging into room %s (%s)", room.id, target.id, canonical)
                await _merge_into(session, room, target)
                merged += 1

        if dry_run:
            await session.rollback()
        else:
            await session.commit()

    logger.info(
        "%s %d renamed, %d merged", "Would apply:" if dry_run else "Applied:", renamed, merged,
    )
    await engine.dispose()
    return renamed, merged


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(normalize(args.dry_run))


if __name__ == "__main__":
    main()
