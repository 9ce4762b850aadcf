"""REST surface over in-memory stores (dependency overrides, no lifespan)."""
from __future__ import annotations

from contextlib import asynccontextmanager

import jwt
import pytest
from fastapi.testclient import TestClient

from internal_chat.api.deps import get_hub, get_publisher, get_uow_factory, get_verifier
from internal_chat.app import create_app
from internal_chat.config import settings
from internal_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from internal_chat.infrastructure.bus.hub import BroadcastHub
from tests.conftest import ANA, BRUNO, OUTSIDER, RecordingPublisher, make_uow

BASE = "/api/v1/accounts/1/internal_chat"


def make_token(sub: int, **claims) -> str:
    return jwt.encode({"sub": str(sub), **claims}, settings.JWT_SECRET, algorithm="HS256")


def auth(sub: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture
def uow():
    return make_uow()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def client(uow, publisher):
    app = create_app()

    @asynccontextmanager
    async def open_fake_uow():
        yield uow

    app.dependency_overrides[get_uow_factory] = lambda: open_fake_uow
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_hub] = lambda: BroadcastHub()
    app.dependency_overrides[get_verifier] = lambda: HS256Verifier(settings.JWT_SECRET)
    return TestClient(app, raise_server_exceptions=False)


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_missing_token_is_rejected(client):
    resp = client.get(f"{BASE}/rooms")
    assert resp.status_code in (401, 403)


def test_garbage_token_is_unauthorized(client):
    resp = client.get(f"{BASE}/rooms", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_non_member_is_forbidden(client):
    resp = client.get(f"{BASE}/rooms", headers=auth(OUTSIDER.id))
    assert resp.status_code == 403


def test_list_rooms(client):
    resp = client.get(f"{BASE}/rooms", headers=auth(ANA.id))

    assert resp.status_code == 200
    body = resp.json()
    assert body["general"]["id"] == "general"
    assert body["general"]["room_id"] is not None
    assert [t["name"] for t in body["teams"]] == ["Support"]
    peers = [d["id"] for d in body["direct_messages"]]
    assert ANA.id not in peers
    assert BRUNO.id in peers


def test_send_then_list_general(client, publisher):
    resp = client.post(
        f"{BASE}/messages",
        json={"room_type": "general", "content": "hello all"},
        headers=auth(ANA.id),
    )
    assert resp.status_code == 201
    sent = resp.json()["data"]
    assert sent["chat_type"] == "general"
    assert sent["chat_id"] == "general"
    assert sent["sender"]["name"] == "Ana"

    [(account_id, envelope)] = publisher.published
    assert account_id == 1
    assert envelope.message["id"] == sent["id"]

    listing = client.get(f"{BASE}/messages/general", headers=auth(BRUNO.id)).json()
    assert [m["content"] for m in listing["data"]] == ["hello all"]
    assert listing["meta"]["total_count"] == 1
    assert listing["meta"]["has_more"] is False


def test_blank_message_is_unprocessable(client, publisher):
    resp = client.post(
        f"{BASE}/messages", json={"content": "   "}, headers=auth(ANA.id),
    )
    assert resp.status_code == 422
    assert publisher.published == []


def test_unknown_team_lists_empty_with_error(client):
    resp = client.get(f"{BASE}/messages/team/999", headers=auth(ANA.id))

    assert resp.status_code == 200
    assert resp.json() == {"data": [], "meta": {"error": "Room not found"}}


def test_open_direct_room_and_mark_read(client):
    resp = client.post(f"{BASE}/rooms", json={"target_user_id": BRUNO.id}, headers=auth(ANA.id))

    assert resp.status_code == 200
    room = resp.json()["data"]
    assert sorted(p["id"] for p in room["participants"]) == [ANA.id, BRUNO.id]

    client.post(
        f"{BASE}/messages",
        json={"room_kind": "direct", "room_identifier": str(ANA.id), "content": "oi"},
        headers=auth(BRUNO.id),
    )
    rooms = client.get(f"{BASE}/rooms", headers=auth(ANA.id)).json()
    [bruno] = [d for d in rooms["direct_messages"] if d["id"] == BRUNO.id]
    assert bruno["room_id"] == room["room_id"]
    assert bruno["unread_count"] == 1

    read = client.post(f"{BASE}/rooms/{room['room_id']}/read", headers=auth(ANA.id))
    assert read.json() == {"room_id": room["room_id"], "unread_count": 0}


def test_only_direct_rooms_can_be_created(client):
    resp = client.post(
        f"{BASE}/rooms",
        json={"target_user_id": BRUNO.id, "room_type": "team"},
        headers=auth(ANA.id),
    )
    assert resp.status_code == 422


def test_edit_and_delete_own_message(client):
    sent = client.post(
        f"{BASE}/messages", json={"content": "typo"}, headers=auth(ANA.id),
    ).json()["data"]

    forbidden = client.patch(
        f"{BASE}/messages/{sent['id']}", json={"content": "mine now"}, headers=auth(BRUNO.id),
    )
    assert forbidden.status_code == 403

    edited = client.patch(
        f"{BASE}/messages/{sent['id']}", json={"content": "fixed"}, headers=auth(ANA.id),
    ).json()["data"]
    assert edited["content"] == "fixed"
    assert edited["edited"] is True

    deleted = client.delete(f"{BASE}/messages/{sent['id']}", headers=auth(ANA.id)).json()["data"]
    assert deleted["deleted"] is True

    missing = client.delete(f"{BASE}/messages/9999", headers=auth(ANA.id))
    assert missing.status_code == 404
