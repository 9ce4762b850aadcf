"""Redis Pub/Sub: carries envelopes between API processes.

Every process publishes to ``<prefix>.<account_id>`` and runs one pattern
subscriber on ``<prefix>.*`` that hands envelopes to its local hub.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from internal_chat.application.dto.events import BroadcastEnvelope
from internal_chat.infrastructure.bus.serializer import deserialize_envelope, serialize_envelope

logger = logging.getLogger(__name__)


def account_channel(prefix: str, account_id: int) -> str:
    return f"{prefix}.{account_id}"


def parse_account_channel(prefix: str, channel: str) -> int | None:
    head, _, tail = channel.rpartition(".")
    if head != prefix or not tail.isdigit():
        return None
    return int(tail)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EnvelopePublisher."""

    def __init__(self, redis: aioredis.Redis, prefix: str) -> None:
        self._redis = redis
        self._prefix = prefix

    async def publish(self, account_id: int, envelope: BroadcastEnvelope) -> None:
        await self._redis.publish(
            account_channel(self._prefix, account_id), serialize_envelope(envelope),
        )


OnEnvelopeCallback = Callable[[int, BroadcastEnvelope], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to every account channel and dispatches envelopes."""

    def __init__(
        self,
        redis: aioredis.Redis,
        prefix: str,
        callback: OnEnvelopeCallback,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        self._redis = redis
        self._prefix = prefix
        self._callback = callback
        self._retry_delay = retry_delay
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on pattern=%s.*", self._prefix)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Pub/Sub listener failed, retrying in %.1fs", self._retry_delay)
                await asyncio.sleep(self._retry_delay)

    async def _listen(self) -> None:
        pattern = f"{self._prefix}.*"
        pubsub = self._redis.pubsub()
        await pubsub.psubscribe(pattern)
        try:
            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                await self._dispatch(message["channel"], message["data"])
        finally:
            await pubsub.punsubscribe(pattern)
            await pubsub.aclose()

    async def _dispatch(self, channel: str | bytes, data: str | bytes) -> None:
        if isinstance(channel, bytes):
            channel = channel.decode()
        account_id = parse_account_channel(self._prefix, channel)
        if account_id is None:
            return
        try:
            envelope = deserialize_envelope(data)
            await self._callback(account_id, envelope)
        except Exception:
            logger.exception("Error processing pubsub message on %s", channel)
