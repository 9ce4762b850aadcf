"""Wire a ClientSession to the real HTTP and WebSocket endpoints."""
from __future__ import annotations

from internal_chat.client.api import ChatApiClient
from internal_chat.client.config import ClientSettings
from internal_chat.client.session import ClientSession
from internal_chat.client.transport import WebSocketTransport


def build_session(settings: ClientSettings | None = None) -> ClientSession:
    settings = settings or ClientSettings()
    api = ChatApiClient(settings.BASE_URL, timeout=settings.HTTP_TIMEOUT)
    transport = WebSocketTransport(settings.WS_URL, open_timeout=settings.HTTP_TIMEOUT)
    return ClientSession(
        api,
        transport,
        reconnect_delay=settings.RECONNECT_DELAY,
        max_reconnect_failures=settings.MAX_RECONNECT_FAILURES,
        page_size=settings.PAGE_SIZE,
    )
