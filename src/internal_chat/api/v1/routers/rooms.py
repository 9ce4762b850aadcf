from __future__ import annotations

from fastapi import APIRouter

from internal_chat.api.deps import CurrentCaller, UoWDep
from internal_chat.api.v1.schemas.common import ERROR_RESPONSES, DataResponse
from internal_chat.api.v1.schemas.room import (
    CreateRoomRequest,
    DirectRoomResponse,
    MarkReadResponse,
    ParticipantResponse,
    RoomsResponse,
)
from internal_chat.application.exceptions import ValidationError
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.services import room_service

router = APIRouter(
    prefix="/api/v1/accounts/{account_id}/internal_chat",
    tags=["rooms"],
    responses=ERROR_RESPONSES,
)


@router.get("/rooms", response_model=RoomsResponse)
async def list_rooms(caller: CurrentCaller, uow: UoWDep) -> RoomsResponse:
    overview = await room_service.list_rooms(caller, uow)
    return RoomsResponse.from_overview(overview)


@router.post("/rooms", response_model=DataResponse[DirectRoomResponse])
async def create_room(
    body: CreateRoomRequest,
    caller: CurrentCaller,
    uow: UoWDep,
) -> DataResponse[DirectRoomResponse]:
    if body.room_type != RoomKind.DIRECT:
        raise ValidationError("Room type not supported")

    room, participants = await room_service.open_direct_room(body.target_user_id, caller, uow)
    return DataResponse[DirectRoomResponse](
        data=DirectRoomResponse(
            id=room.id,
            room_id=room.id,
            target_user_id=body.target_user_id,
            name=room.name,
            participants=[
                ParticipantResponse(id=p.id, name=p.display_name, email=p.email)
                for p in participants
            ],
        )
    )


@router.post("/rooms/{room_id}/read", response_model=MarkReadResponse)
async def mark_room_read(room_id: int, caller: CurrentCaller, uow: UoWDep) -> MarkReadResponse:
    room = await room_service.mark_read(room_id, caller, uow)
    return MarkReadResponse(
        room_id=room.id,
        unread_count=await room_service.unread_count(room, caller.user_id, uow),
    )
