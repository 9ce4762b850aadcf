from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Annotated, Any

import jwt
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from internal_chat.api.deps import (
    HubDep,
    PublisherDep,
    UoWFactory,
    VerifierDep,
    get_uow_factory,
)
from internal_chat.api.v1.schemas.message import SendMessageRequest
from internal_chat.application.dto.principal import Caller
from internal_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
)
from internal_chat.application.ports.auth import TokenVerifier
from internal_chat.application.ports.bus import EnvelopePublisher
from internal_chat.config import settings
from internal_chat.infrastructure.bus.hub import HubSubscription
from internal_chat.infrastructure.ws import protocol
from internal_chat.infrastructure.ws.protocol import WsInbound, WsOutbound
from internal_chat.services import chat_service, identity_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001


async def _authenticate(
    verifier: TokenVerifier,
    uow_factory: UoWFactory,
    token: str | None,
    user_id: int | None,
    account_id: int | None,
) -> Caller:
    """Resolve the connecting caller.

    Rejected credentials raise AuthenticationError. Anything else (a
    database outage, say) propagates so the caller can close as retryable.
    """
    if not token:
        raise AuthenticationError("Missing token")
    try:
        principal = await verifier.verify(token)
    except jwt.PyJWKClientConnectionError:
        raise
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        raise AuthenticationError(str(exc)) from exc

    async with uow_factory() as uow:
        try:
            return await identity_service.resolve_connection(
                principal, uow, user_id=user_id, account_id=account_id,
            )
        except (ForbiddenError, NotFoundError) as exc:
            raise AuthenticationError(exc.detail) from exc


@router.websocket("/ws/internal_chat")
async def ws_internal_chat(
    websocket: WebSocket,
    hub: HubDep,
    publisher: PublisherDep,
    verifier: VerifierDep,
    uow_factory: Annotated[UoWFactory, Depends(get_uow_factory)],
    token: str | None = Query(None),
    user_id: int | None = Query(None),
    account_id: int | None = Query(None),
) -> None:
    try:
        caller = await _authenticate(verifier, uow_factory, token, user_id, account_id)
    except AuthenticationError as exc:
        logger.info("WS auth rejected: %s", exc.detail)
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return
    except Exception:
        logger.exception("WS auth lookup failed")
        # Accept first: a close before accept reaches the client as a 403.
        await websocket.accept()
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Try again later")
        return

    await websocket.accept()
    subscription = hub.subscribe(caller.account_id)
    await _send(
        websocket,
        WsOutbound(
            type=protocol.CONFIRM_SUBSCRIPTION,
            data={"account_id": caller.account_id, "user_id": caller.user_id},
        ),
    )
    logger.info("WS subscribed %s", caller.connection_key)

    key = caller.connection_key
    forward_task = asyncio.create_task(
        _forward(websocket, subscription), name=f"ws-forward-{key}",
    )
    heartbeat_task = asyncio.create_task(_heartbeat(websocket), name=f"ws-heartbeat-{key}")
    try:
        await _read_loop(websocket, caller, uow_factory, publisher)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", key)
    finally:
        for task in (heartbeat_task, forward_task):
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        hub.unsubscribe(subscription)
        logger.info("WS closed %s (dropped=%d)", key, subscription.dropped)


async def _send(ws: WebSocket, frame: WsOutbound) -> None:
    await ws.send_text(frame.model_dump_json())


async def _forward(ws: WebSocket, subscription: HubSubscription) -> None:
    try:
        async for envelope in subscription:
            await _send(ws, WsOutbound.from_envelope(envelope))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("WS forward stopped", exc_info=True)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await _send(ws, WsOutbound(type=protocol.PONG))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("WS heartbeat stopped", exc_info=True)


async def _read_loop(
    ws: WebSocket,
    caller: Caller,
    uow_factory: UoWFactory,
    publisher: EnvelopePublisher,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send(ws, WsOutbound.error("invalid_payload"))
            continue

        if msg.type == protocol.PING:
            await _send(ws, WsOutbound(type=protocol.PONG))

        elif msg.type == protocol.SEND:
            await _handle_send(ws, caller, msg.data, uow_factory, publisher)

        else:
            await _send(ws, WsOutbound(type=protocol.ERROR, data={"code": "unknown_type", "type": msg.type}))


async def _handle_send(
    ws: WebSocket,
    caller: Caller,
    data: dict[str, Any],
    uow_factory: UoWFactory,
    publisher: EnvelopePublisher,
) -> None:
    try:
        body = SendMessageRequest.model_validate(data)
    except PydanticValidationError as exc:
        await _send(ws, WsOutbound.error("invalid_data", str(exc)))
        return

    try:
        async with uow_factory() as uow:
            message = await chat_service.send_message(
                body.room_kind,
                body.room_identifier,
                body.content,
                [a.to_ref() for a in body.attachments],
                caller,
                uow,
                publisher,
                metadata=body.metadata,
            )
    except AppError as exc:
        await _send(ws, WsOutbound.error("send_failed", exc.detail))
        return

    await _send(ws, WsOutbound(type=protocol.SENT, data={"message": message}))
