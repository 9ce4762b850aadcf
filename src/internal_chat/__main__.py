"""Entrypoint: python -m internal_chat"""
from __future__ import annotations

import uvicorn

from internal_chat.config import settings


def main() -> None:
    uvicorn.run(
        "internal_chat.app:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        # dictConfig in the lifespan owns the root logger
        log_config=None,
    )


if __name__ == "__main__":
    main()
