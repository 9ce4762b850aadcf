"""HTTP client for the internal chat REST surface."""
from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from internal_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    TransportError,
    ValidationError,
)
from internal_chat.client.ports import SessionIdentity
from internal_chat.domain.entities.message import AttachmentRef

logger = logging.getLogger(__name__)

_ERROR_BY_STATUS: dict[int, type[AppError]] = {
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    409: InvalidStateError,
    422: ValidationError,
}


def _error_for(response: httpx.Response) -> AppError:
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    error_type = _ERROR_BY_STATUS.get(response.status_code)
    if error_type is None:
        error_type = StorageError if response.status_code >= 500 else TransportError
    return error_type(str(detail))


class ChatApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._identity: SessionIdentity | None = None

    def bind(self, identity: SessionIdentity) -> None:
        self._identity = identity

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ChatApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._identity is None:
            raise AuthenticationError("No identity bound to the API client")
        url = f"/api/v1/accounts/{self._identity.account_id}/internal_chat{path}"
        headers = {"Authorization": f"Bearer {self._identity.token}"}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            logger.info("%s %s -> %s", method, url, response.status_code)
            raise _error_for(response)
        return response.json()

    async def list_rooms(self) -> dict[str, Any]:
        return await self._request("GET", "/rooms")

    async def open_direct_room(self, target_user_id: int) -> dict[str, Any]:
        body = await self._request("POST", "/rooms", json={"target_user_id": target_user_id})
        return body["data"]

    async def mark_read(self, room_id: int) -> dict[str, Any]:
        return await self._request("POST", f"/rooms/{room_id}/read")

    async def list_messages(
        self,
        room_kind: str,
        room_identifier: str,
        *,
        before_id: int | None = None,
        per_page: int | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        params: dict[str, Any] = {}
        if before_id is not None:
            params["before_id"] = before_id
        if per_page is not None:
            params["per_page"] = per_page

        if room_kind == "general":
            path = "/messages/general"
        else:
            path = f"/messages/{room_kind}/{room_identifier}"
        body = await self._request("GET", path, params=params)
        return body.get("data", []), body.get("meta", {})

    async def send_message(
        self,
        room_kind: str,
        room_identifier: str,
        content: str,
        attachments: Iterable[AttachmentRef] = (),
    ) -> dict[str, Any]:
        body = await self._request(
            "POST",
            "/messages",
            json={
                "room_kind": str(room_kind),
                "room_identifier": str(room_identifier),
                "content": content,
                "attachments": [a.to_dict() for a in attachments],
            },
        )
        return body["data"]

    async def edit_message(self, message_id: int, content: str) -> dict[str, Any]:
        body = await self._request("PATCH", f"/messages/{message_id}", json={"content": content})
        return body["data"]

    async def delete_message(self, message_id: int) -> dict[str, Any]:
        body = await self._request("DELETE", f"/messages/{message_id}")
        return body["data"]
