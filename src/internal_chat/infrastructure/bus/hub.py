"""In-process broadcast hub: one logical channel per account.

Publishing never waits on subscribers. Each subscriber owns a bounded
queue; when it falls behind, its oldest pending envelope is dropped so
that the other subscribers and the publisher are unaffected.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from internal_chat.application.dto.events import BroadcastEnvelope

logger = logging.getLogger(__name__)

_CLOSED = object()


class HubSubscription:
    """Handle returned by ``BroadcastHub.subscribe``; iterate it to receive envelopes."""

    def __init__(self, account_id: int, maxsize: int) -> None:
        self.account_id = account_id
        self.dropped = 0
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, envelope: BroadcastEnvelope) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            logger.warning(
                "Subscriber on account %s is lagging, dropped %d envelope(s)",
                self.account_id, self.dropped,
            )
        self._queue.put_nowait(envelope)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> BroadcastEnvelope | None:
        """Next envelope, or None once the subscription is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item  # type: ignore[return-value]

    def __aiter__(self) -> AsyncIterator[BroadcastEnvelope]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[BroadcastEnvelope]:
        while True:
            envelope = await self.get()
            if envelope is None:
                return
            yield envelope


class BroadcastHub:
    """Implements application.ports.bus.EnvelopePublisher for the local process."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._channels: dict[int, set[HubSubscription]] = {}

    def subscribe(self, account_id: int) -> HubSubscription:
        sub = HubSubscription(account_id, self._queue_size)
        self._channels.setdefault(account_id, set()).add(sub)
        logger.debug(
            "Hub subscribe account=%s (subscribers=%d)",
            account_id, len(self._channels[account_id]),
        )
        return sub

    def unsubscribe(self, sub: HubSubscription) -> None:
        subs = self._channels.get(sub.account_id)
        if subs:
            subs.discard(sub)
            if not subs:
                del self._channels[sub.account_id]
        sub.close()

    def publish_nowait(self, account_id: int, envelope: BroadcastEnvelope) -> int:
        """Fan out to current subscribers; returns how many received it."""
        subs = list(self._channels.get(account_id, ()))
        for sub in subs:
            sub.offer(envelope)
        return len(subs)

    async def publish(self, account_id: int, envelope: BroadcastEnvelope) -> None:
        self.publish_nowait(account_id, envelope)

    def subscriber_count(self, account_id: int | None = None) -> int:
        if account_id is not None:
            return len(self._channels.get(account_id, ()))
        return sum(len(subs) for subs in self._channels.values())

    def close(self) -> None:
        for subs in list(self._channels.values()):
            for sub in list(subs):
                self.unsubscribe(sub)
