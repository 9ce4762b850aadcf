from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from internal_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from internal_chat.api.v1.routers import health, messages, rooms, ws
from internal_chat.application.exceptions import (
    AppError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from internal_chat.config import settings
from internal_chat.infrastructure.bus.hub import BroadcastHub
from internal_chat.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from internal_chat.infrastructure.db.session import engine
from internal_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[AppError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    ValidationError: 422,
    InvalidStateError: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    hub = BroadcastHub(settings.HUB_QUEUE_SIZE)
    app.state.hub = hub
    app.state.publisher = RedisPubSubPublisher(app.state.redis, settings.REDIS_PUBSUB_CHANNEL)

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        hub.publish,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    hub.close()
    await app.state.redis.aclose()
    await engine.dispose()
    logger.info("Redis connection pool and database engine closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Internal Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(rooms.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        for error_type, status_code in _STATUS_BY_ERROR.items():
            if isinstance(exc, error_type):
                return JSONResponse(status_code=status_code, content={"detail": exc.detail})
        if not isinstance(exc, StorageError):
            logger.error("Unmapped application error: %r", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal storage error"})

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(_req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Database error", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal storage error"})
