"""Client session: one live subscription per identity, plus the open room's timeline.

State machine::

    DISCONNECTED -> CONNECTING -> SUBSCRIBED -> DISCONNECTED (reconnect)
                         \\-> ERROR (credentials rejected, no retry)
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Iterable

from internal_chat.application.dto.events import BroadcastEnvelope
from internal_chat.application.dto.room import GENERAL_CHAT_ID
from internal_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    SendFailedError,
    TransportError,
    ValidationError,
)
from internal_chat.client.ports import ChatApi, Connection, SessionIdentity, Transport
from internal_chat.client.timeline import MessageTimeline
from internal_chat.domain.entities.message import AttachmentRef
from internal_chat.domain.value_objects.enums import EnvelopeEvent, RoomKind

logger = logging.getLogger(__name__)

CONFIRM_SUBSCRIPTION = "confirm_subscription"


class SessionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    ERROR = "error"


class SessionEvent(StrEnum):
    STATE = "state"
    MESSAGES = "messages"
    ROOM = "room"
    PANEL = "panel"
    ERROR = "error"


@dataclass(slots=True)
class OpenRoom:
    kind: str
    identifier: str
    room_id: int | None = None
    has_more: bool = False
    not_found: bool = False


Listener = Callable[[SessionEvent, "ClientSession"], None]


class ClientSession:
    def __init__(
        self,
        api: ChatApi,
        transport: Transport,
        *,
        reconnect_delay: float = 1.0,
        max_reconnect_failures: int = 5,
        page_size: int = 50,
    ) -> None:
        self._api = api
        self._transport = transport
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_failures = max_reconnect_failures
        self._page_size = page_size

        self._state = SessionState.DISCONNECTED
        self._identity: SessionIdentity | None = None
        self._fingerprint: SessionIdentity | None = None
        self._connecting_as: SessionIdentity | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._connection: Connection | None = None
        self._failures = 0
        self.last_error: Exception | None = None

        self.timeline = MessageTimeline()
        self._room: OpenRoom | None = None
        self._panel_open = False
        self._listeners: list[Listener] = []

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> SessionIdentity | None:
        return self._identity

    @property
    def fingerprint(self) -> SessionIdentity | None:
        return self._fingerprint

    @property
    def room(self) -> OpenRoom | None:
        return self._room

    @property
    def reconnect_task(self) -> asyncio.Task[None] | None:
        return self._reconnect_task

    @property
    def panel_open(self) -> bool:
        return self._panel_open

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception("Session listener failed on %s", event)

    def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            logger.debug("Session %s -> %s", self._state, state)
            self._state = state
            self._notify(SessionEvent.STATE)

    # -- panel -------------------------------------------------------------

    def open_panel(self) -> None:
        self._set_panel(True)

    def close_panel(self) -> None:
        self._set_panel(False)

    def toggle_panel(self) -> None:
        self._set_panel(not self._panel_open)

    def _set_panel(self, value: bool) -> None:
        if value != self._panel_open:
            self._panel_open = value
            self._notify(SessionEvent.PANEL)

    # -- subscription lifecycle -------------------------------------------

    async def set_identity(
        self, account_id: int, user_id: int, token: str, *, force: bool = False,
    ) -> None:
        """Adopt a new identity; resubscribes unless it matches the live subscription."""
        identity = SessionIdentity(account_id=account_id, user_id=user_id, token=token)
        self._identity = identity
        self._api.bind(identity)
        if not force and self._is_current(identity):
            logger.debug("Identity unchanged, keeping subscription")
            return
        await self._resubscribe()

    async def start(self) -> None:
        if self._identity is None:
            raise AuthenticationError("No identity set")
        if self._is_current(self._identity):
            return
        await self._resubscribe()

    async def stop(self) -> None:
        self._cancel_reconnect()
        await self._cancel_run()
        self._fingerprint = None
        self._set_state(SessionState.DISCONNECTED)

    def _is_current(self, identity: SessionIdentity) -> bool:
        if self._state == SessionState.SUBSCRIBED:
            return self._fingerprint == identity
        if self._state == SessionState.CONNECTING and self._run_task is not None:
            return self._connecting_as == identity
        return False

    async def _resubscribe(self) -> None:
        identity = self._identity
        if identity is None:
            raise AuthenticationError("No identity set")
        self._cancel_reconnect()
        await self._cancel_run()
        self._fingerprint = None
        self._connecting_as = identity
        self._set_state(SessionState.CONNECTING)
        self._run_task = asyncio.create_task(self._run(identity), name="chat-session")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

    async def _cancel_run(self) -> None:
        task, self._run_task = self._run_task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(self._reconnect_delay), name="chat-session-reconnect",
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        if self._identity is not None:
            await self._resubscribe()

    async def _run(self, identity: SessionIdentity) -> None:
        error: Exception | None = None
        try:
            connection = await self._transport.connect(identity)
            self._connection = connection
            try:
                async for frame in connection:
                    self._handle_frame(identity, frame)
            finally:
                self._connection = None
                await connection.close()
        except AuthenticationError as exc:
            logger.warning("Subscription rejected for user %s: %s", identity.user_id, exc)
            self._fingerprint = None
            self.last_error = exc
            self._set_state(SessionState.ERROR)
            self._notify(SessionEvent.ERROR)
            return
        except TransportError as exc:
            error = exc

        self._fingerprint = None
        self._failures += 1
        if error is not None:
            logger.info("Subscription lost (%d in a row): %s", self._failures, error)
        self._set_state(SessionState.DISCONNECTED)
        if self._failures >= self._max_reconnect_failures:
            self.last_error = error or TransportError("Connection closed")
            self._notify(SessionEvent.ERROR)
        self._schedule_reconnect()

    def _handle_frame(self, identity: SessionIdentity, frame: dict[str, Any]) -> None:
        kind = frame.get("type")
        if kind == CONFIRM_SUBSCRIPTION:
            self._fingerprint = identity
            self._failures = 0
            self.last_error = None
            self._set_state(SessionState.SUBSCRIBED)
        elif kind == EnvelopeEvent.NEW_MESSAGE:
            if self._state != SessionState.SUBSCRIBED:
                return
            self.apply_envelope(BroadcastEnvelope.from_dict(frame.get("data") or {}))

    async def ping(self) -> bool:
        """Send an application-level ping over the live subscription."""
        connection = self._connection
        if connection is None or self._state != SessionState.SUBSCRIBED:
            return False
        await connection.send({"type": "ping"})
        return True

    # -- rooms and messages ------------------------------------------------

    def matches_open_room(self, envelope: BroadcastEnvelope) -> bool:
        room = self._room
        if room is None:
            return False
        room_id = envelope.message.get("room_id")
        if room.room_id is not None and room_id is not None:
            return room_id == room.room_id

        if room.kind == RoomKind.GENERAL:
            return envelope.room_identifier == GENERAL_CHAT_ID
        if envelope.room_kind != room.kind:
            return False
        if room.kind == RoomKind.DIRECT:
            # The envelope names the recipient as seen by the sender, so
            # the (sender, recipient) pair must be (me, peer) in either order.
            if self._identity is None:
                return False
            pair = {str(envelope.message.get("sender_id")), envelope.room_identifier}
            return pair == {str(self._identity.user_id), str(room.identifier)}
        return envelope.room_identifier == str(room.identifier)

    def apply_envelope(self, envelope: BroadcastEnvelope) -> bool:
        if envelope.event != EnvelopeEvent.NEW_MESSAGE or not self.matches_open_room(envelope):
            return False
        self.timeline.reconcile(envelope.message)
        self._notify(SessionEvent.MESSAGES)
        return True

    async def open_room(self, kind: str, identifier: str | int) -> OpenRoom:
        """Switch to a room and load its most recent window.

        An unknown room leaves an empty timeline with ``not_found`` set.
        """
        room = OpenRoom(kind=str(kind), identifier=str(identifier))
        self._room = room
        self.timeline.clear()
        self._notify(SessionEvent.ROOM)

        messages, meta = await self._api.list_messages(
            room.kind, room.identifier, per_page=self._page_size,
        )
        if self._room is not room:
            return room
        if meta.get("error"):
            room.not_found = True
        else:
            room.room_id = meta.get("room_id")
            room.has_more = bool(meta.get("has_more"))
        self.timeline.replace_all(messages)
        self._notify(SessionEvent.MESSAGES)
        return room

    async def load_older(self) -> int:
        room = self._room
        if room is None or not room.has_more:
            return 0
        before_id = self.timeline.oldest_id()
        messages, meta = await self._api.list_messages(
            room.kind, room.identifier, before_id=before_id, per_page=self._page_size,
        )
        if self._room is not room:
            return 0
        room.has_more = bool(meta.get("has_more"))
        added = self.timeline.prepend(messages)
        self._notify(SessionEvent.MESSAGES)
        return added

    async def send(self, content: str, attachments: Iterable[AttachmentRef] = ()) -> dict[str, Any]:
        """Show the message immediately, then replace it with the persisted copy.

        On failure the provisional entry is withdrawn and ``SendFailedError``
        carries the original text.
        """
        room = self._room
        if room is None or self._identity is None:
            raise ValidationError("No room is open")
        refs = list(attachments)
        text = content.strip()
        if not text and not refs:
            raise ValidationError("Message content cannot be blank")

        temp_id = self.timeline.add_temp(text, self._identity.user_id, refs)
        self._notify(SessionEvent.MESSAGES)
        try:
            message = await self._api.send_message(room.kind, room.identifier, text, refs)
        except AppError as exc:
            self.timeline.remove(temp_id)
            self._notify(SessionEvent.MESSAGES)
            raise SendFailedError(exc.detail or str(exc), draft=content) from exc

        if self._room is room:
            if room.room_id is None:
                room.room_id = message.get("room_id")
            self.timeline.reconcile(message, temp_id=temp_id)
            self._notify(SessionEvent.MESSAGES)
        return message
