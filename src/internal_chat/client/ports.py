from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable, Protocol

from internal_chat.domain.entities.message import AttachmentRef


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """Who the client connects as. Equality doubles as the subscription fingerprint."""

    account_id: int
    user_id: int
    token: str


class Connection(Protocol):
    """An open real-time subscription; iterating yields decoded frames."""

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]: ...

    async def send(self, frame: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class Transport(Protocol):
    async def connect(self, identity: SessionIdentity) -> Connection:
        """Raises AuthenticationError on rejected credentials, TransportError otherwise."""
        ...


class ChatApi(Protocol):
    def bind(self, identity: SessionIdentity) -> None: ...

    async def list_messages(
        self,
        room_kind: str,
        room_identifier: str,
        *,
        before_id: int | None = None,
        per_page: int | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]: ...

    async def send_message(
        self,
        room_kind: str,
        room_identifier: str,
        content: str,
        attachments: Iterable[AttachmentRef] = (),
    ) -> dict[str, Any]: ...
