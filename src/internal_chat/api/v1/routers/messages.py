from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from internal_chat.api.deps import CurrentCaller, PublisherDep, UoWDep
from internal_chat.api.v1.schemas.common import ERROR_RESPONSES, DataResponse
from internal_chat.api.v1.schemas.message import (
    EditMessageRequest,
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
)
from internal_chat.application.dto.principal import Caller
from internal_chat.application.dto.room import GENERAL_CHAT_ID
from internal_chat.application.exceptions import NotFoundError
from internal_chat.application.uow import UnitOfWork
from internal_chat.config import settings
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.services import chat_service

router = APIRouter(
    prefix="/api/v1/accounts/{account_id}/internal_chat",
    tags=["messages"],
    responses=ERROR_RESPONSES,
)

PerPage = Query(settings.MESSAGES_PER_PAGE, ge=1, le=settings.MAX_MESSAGES_PER_PAGE)


async def _list(
    kind: str, identifier: str, caller: Caller, uow: UnitOfWork,
    before_id: int | None, per_page: int,
) -> MessageListResponse:
    try:
        page = await chat_service.list_messages(
            kind, identifier, caller, uow, before_id=before_id, limit=per_page,
        )
    except NotFoundError:
        return MessageListResponse(data=[], meta={"error": "Room not found"})

    return MessageListResponse(
        data=[MessageResponse.model_validate(m) for m in page.messages],
        meta={
            "room_id": page.room_id,
            "total_count": page.total_count,
            "has_more": page.has_more,
        },
    )


@router.get("/messages/general", response_model=MessageListResponse)
async def list_general_messages(
    caller: CurrentCaller,
    uow: UoWDep,
    before_id: int | None = Query(None, ge=1),
    per_page: int = PerPage,
) -> MessageListResponse:
    return await _list(RoomKind.GENERAL, GENERAL_CHAT_ID, caller, uow, before_id, per_page)


@router.get("/messages/{room_kind}/{room_identifier}", response_model=MessageListResponse)
async def list_messages(
    room_kind: str,
    room_identifier: str,
    caller: CurrentCaller,
    uow: UoWDep,
    before_id: int | None = Query(None, ge=1),
    per_page: int = PerPage,
) -> MessageListResponse:
    return await _list(room_kind, room_identifier, caller, uow, before_id, per_page)


@router.post("/messages", response_model=DataResponse[MessageResponse], status_code=201)
async def send_message(
    body: SendMessageRequest,
    caller: CurrentCaller,
    uow: UoWDep,
    publisher: PublisherDep,
) -> dict[str, Any]:
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
    return {"data": message}


@router.patch("/messages/{message_id}", response_model=DataResponse[MessageResponse])
async def edit_message(
    message_id: int,
    body: EditMessageRequest,
    caller: CurrentCaller,
    uow: UoWDep,
) -> dict[str, Any]:
    return {"data": await chat_service.edit_message(message_id, body.content, caller, uow)}


@router.delete("/messages/{message_id}", response_model=DataResponse[MessageResponse])
async def delete_message(message_id: int, caller: CurrentCaller, uow: UoWDep) -> dict[str, Any]:
    return {"data": await chat_service.delete_message(message_id, caller, uow)}
