from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from internal_chat.infrastructure.db.session import AsyncSessionLocal

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Postgres and Redis reachable, and this process still receives cross-process broadcasts."""
    state = request.app.state
    errors: list[str] = []

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        errors.append(f"postgres: {exc}")

    try:
        await state.redis.ping()
    except Exception as exc:  # noqa: BLE001
        errors.append(f"redis: {exc}")

    if not state.pubsub_subscriber.running:
        errors.append("pubsub: subscriber not running")

    body = {"subscribers": state.hub.subscriber_count()}
    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors, **body},
        )
    return JSONResponse(content={"status": "ready", **body})
