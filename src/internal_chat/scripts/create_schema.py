"""Create the chat tables. ``--with-directory`` also creates stand-ins for the host's user/team tables."""
from __future__ import annotations

import argparse
import asyncio
import logging

import internal_chat.infrastructure.db.models  # noqa: F401
from internal_chat.infrastructure.db.base import Base
from internal_chat.infrastructure.db.models.directory import ExternalBase
from internal_chat.infrastructure.db.session import engine

logger = logging.getLogger(__name__)


async def create_schema(with_directory: bool = False) -> None:
    async with engine.begin() as conn:
        if with_directory:
            await conn.run_sync(ExternalBase.metadata.create_all)
            logger.info("Directory tables ready")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Chat tables ready: %s", ", ".join(sorted(Base.metadata.tables)))
    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--with-directory", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_schema(args.with_directory))


if __name__ == "__main__":
    main()
