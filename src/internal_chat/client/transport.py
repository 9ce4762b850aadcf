"""WebSocket transport for the real-time subscription."""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosedError,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidStatus,
)

from internal_chat.application.exceptions import AuthenticationError, TransportError
from internal_chat.client.ports import SessionIdentity

logger = logging.getLogger(__name__)

AUTH_FAILED_CLOSE_CODE = 4001


class WebSocketConnection:
    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[dict[str, Any]]:
        try:
            async for raw in self._ws:
                try:
                    frame = json.loads(raw)
                except ValueError:
                    logger.warning("Ignoring non-JSON frame")
                    continue
                if isinstance(frame, dict):
                    yield frame
        except ConnectionClosedOK:
            return
        except ConnectionClosedError as exc:
            if exc.rcvd is not None and exc.rcvd.code == AUTH_FAILED_CLOSE_CODE:
                raise AuthenticationError(exc.rcvd.reason or "Authentication failed") from exc
            raise TransportError(f"Connection lost: {exc}") from exc

    async def send(self, frame: dict[str, Any]) -> None:
        await self._ws.send(json.dumps(frame))

    async def close(self) -> None:
        await self._ws.close()


class WebSocketTransport:
    def __init__(self, ws_url: str, *, open_timeout: float = 10.0) -> None:
        self._ws_url = ws_url
        self._open_timeout = open_timeout

    def url_for(self, identity: SessionIdentity) -> str:
        query = urlencode({
            "token": identity.token,
            "user_id": identity.user_id,
            "account_id": identity.account_id,
        })
        return f"{self._ws_url}?{query}"

    async def connect(self, identity: SessionIdentity) -> WebSocketConnection:
        try:
            ws = await connect(self.url_for(identity), open_timeout=self._open_timeout)
        except InvalidStatus as exc:
            if exc.response.status_code in (401, 403):
                raise AuthenticationError("Subscription rejected") from exc
            raise TransportError(f"Handshake failed: {exc}") from exc
        except (InvalidHandshake, OSError, TimeoutError) as exc:
            raise TransportError(f"Cannot connect: {exc}") from exc
        return WebSocketConnection(ws)
