from __future__ import annotations

from pydantic import BaseModel

from internal_chat.application.dto.room import RoomOverview, RoomSummary


class GeneralRoomResponse(BaseModel):
    id: str
    identifier: str
    room_id: int | None
    name: str
    type: str = "general"
    room_type: str = "general"
    description: str | None = None
    unread_count: int = 0


class TeamRoomResponse(BaseModel):
    id: int
    identifier: str
    room_id: int | None
    name: str
    type: str = "team"
    room_type: str = "team"
    member_count: int | None = None
    description: str | None = None
    unread_count: int = 0


class DirectPeerResponse(BaseModel):
    id: int
    identifier: str
    room_id: int | None
    name: str
    email: str | None = None
    avatar_url: str | None = None
    room_type: str = "direct"
    unread_count: int = 0


class RoomsResponse(BaseModel):
    general: GeneralRoomResponse
    teams: list[TeamRoomResponse]
    direct_messages: list[DirectPeerResponse]

    @classmethod
    def from_overview(cls, overview: RoomOverview) -> RoomsResponse:
        general = overview.general
        return cls(
            general=GeneralRoomResponse(
                id=general.identifier,
                identifier=general.identifier,
                room_id=general.room_id,
                name=general.name,
                description=general.description,
                unread_count=general.unread_count,
            ),
            teams=[
                TeamRoomResponse(
                    id=int(t.identifier),
                    identifier=t.identifier,
                    room_id=t.room_id,
                    name=t.name,
                    member_count=t.member_count,
                    description=t.description,
                    unread_count=t.unread_count,
                )
                for t in overview.teams
            ],
            direct_messages=[_direct(d) for d in overview.direct_messages],
        )


def _direct(summary: RoomSummary) -> DirectPeerResponse:
    peer = summary.peer
    return DirectPeerResponse(
        id=int(summary.identifier),
        identifier=summary.identifier,
        room_id=summary.room_id,
        name=summary.name,
        email=peer.email if peer else None,
        avatar_url=peer.avatar_url if peer else None,
        unread_count=summary.unread_count,
    )


class CreateRoomRequest(BaseModel):
    target_user_id: int
    room_type: str = "direct"


class ParticipantResponse(BaseModel):
    id: int
    name: str
    email: str | None = None


class DirectRoomResponse(BaseModel):
    id: int
    room_id: int
    type: str = "direct"
    room_type: str = "direct"
    target_user_id: int
    name: str
    participants: list[ParticipantResponse]


class MarkReadResponse(BaseModel):
    room_id: int
    unread_count: int
