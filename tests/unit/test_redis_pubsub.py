from __future__ import annotations

import json

import pytest

from internal_chat.application.dto.events import BroadcastEnvelope
from internal_chat.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
    account_channel,
    parse_account_channel,
)
from internal_chat.infrastructure.bus.serializer import deserialize_envelope, serialize_envelope
from tests.conftest import serialized


class FakeRedis:
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, data: str) -> int:
        self.published.append((channel, data))
        return 1


def test_account_channel_names():
    assert account_channel("internal_chat", 42) == "internal_chat.42"
    assert parse_account_channel("internal_chat", "internal_chat.42") == 42
    assert parse_account_channel("internal_chat", "other.42") is None
    assert parse_account_channel("internal_chat", "internal_chat.abc") is None


def test_envelope_survives_the_wire():
    env = BroadcastEnvelope.new_message("team", "10", serialized(3, content="olá"))

    decoded = deserialize_envelope(serialize_envelope(env).encode())

    assert decoded == env


@pytest.mark.asyncio
async def test_publisher_targets_account_channel():
    redis = FakeRedis()
    env = BroadcastEnvelope.new_message("general", "general", serialized(1))

    await RedisPubSubPublisher(redis, "chat").publish(7, env)

    [(channel, data)] = redis.published
    assert channel == "chat.7"
    assert json.loads(data)["event"] == "new_message"


@pytest.mark.asyncio
async def test_dispatch_forwards_to_callback():
    received = []

    async def on_envelope(account_id, envelope):
        received.append((account_id, envelope))

    subscriber = RedisPubSubSubscriber(FakeRedis(), "chat", on_envelope)
    env = BroadcastEnvelope.new_message("general", "general", serialized(1))

    await subscriber._dispatch(b"chat.3", serialize_envelope(env).encode())
    await subscriber._dispatch("elsewhere.3", serialize_envelope(env))

    assert received == [(3, env)]


@pytest.mark.asyncio
async def test_dispatch_survives_garbage():
    received = []

    async def on_envelope(account_id, envelope):
        received.append(account_id)

    subscriber = RedisPubSubSubscriber(FakeRedis(), "chat", on_envelope)

    await subscriber._dispatch("chat.3", "not json")

    assert received == []


@pytest.mark.asyncio
async def test_subscriber_reports_running_until_stopped():
    class IdleRedis(FakeRedis):
        def pubsub(self):
            raise ConnectionError("redis is down")

    async def on_envelope(account_id, envelope):
        pass

    subscriber = RedisPubSubSubscriber(IdleRedis(), "chat", on_envelope, retry_delay=60)
    assert not subscriber.running

    await subscriber.start()
    assert subscriber.running

    await subscriber.stop()
    assert not subscriber.running
