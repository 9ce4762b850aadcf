from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

HEADER = "X-Request-ID"


class CorrelationIdMiddleware:
    """Bind X-Request-ID for HTTP requests and WebSocket sessions alike."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        cid = Headers(scope=scope).get(HEADER) or uuid.uuid4().hex
        token = correlation_id_ctx.set(cid)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER] = cid
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            correlation_id_ctx.reset(token)
