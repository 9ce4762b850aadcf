from __future__ import annotations

from internal_chat.client.config import ClientSettings
from internal_chat.client.factory import build_session
from internal_chat.client.ports import SessionIdentity
from internal_chat.client.session import SessionState


def test_settings_come_from_prefixed_env(monkeypatch):
    monkeypatch.setenv("INTERNAL_CHAT_WS_URL", "wss://chat.example.com/ws/internal_chat")
    monkeypatch.setenv("INTERNAL_CHAT_PAGE_SIZE", "20")

    settings = ClientSettings()

    assert settings.WS_URL == "wss://chat.example.com/ws/internal_chat"
    assert settings.PAGE_SIZE == 20


def test_built_session_starts_disconnected():
    session = build_session(ClientSettings(WS_URL="ws://chat.test/ws/internal_chat"))

    assert session.state == SessionState.DISCONNECTED
    assert session.identity is None
    url = session._transport.url_for(SessionIdentity(account_id=1, user_id=2, token="a b"))
    assert url == "ws://chat.test/ws/internal_chat?token=a+b&user_id=2&account_id=1"
