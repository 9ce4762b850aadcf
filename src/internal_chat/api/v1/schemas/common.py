from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    data: T  # type: ignore[type-var]


class ErrorResponse(BaseModel):
    detail: str


ERROR_RESPONSES: dict[int | str, dict] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "No access to the account or room"},
    404: {"model": ErrorResponse, "description": "Room, user or message not found"},
    422: {"model": ErrorResponse, "description": "Blank content or invalid request"},
}
