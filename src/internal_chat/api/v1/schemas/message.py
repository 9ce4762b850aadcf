from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from internal_chat.domain.entities.message import AttachmentRef


class AttachmentPayload(BaseModel):
    url: str
    content_type: str | None = None
    thumb_url: str | None = None
    file_size: int | None = None
    file_type: str | None = None
    extension: str | None = None
    width: int | None = None
    height: int | None = None

    def to_ref(self) -> AttachmentRef:
        return AttachmentRef(**self.model_dump())


class SendMessageRequest(BaseModel):
    room_kind: str = Field(
        "general", validation_alias=AliasChoices("room_kind", "room_type"),
    )
    room_identifier: str = Field(
        "general", validation_alias=AliasChoices("room_identifier", "room_id"),
    )
    content: str | None = None
    attachments: list[AttachmentPayload] = []
    metadata: dict[str, Any] = {}


class EditMessageRequest(BaseModel):
    content: str


class SenderResponse(BaseModel):
    id: int | None
    name: str
    avatar_url: str | None = None


class MessageResponse(BaseModel):
    id: int
    content: str | None
    sender: SenderResponse
    sender_id: int
    created_at: str
    message_type: str
    chat_type: str
    chat_id: str
    room_id: int
    attachments: list[dict[str, Any]] = []
    edited: bool = False
    deleted: bool = False


class MessageListResponse(BaseModel):
    data: list[MessageResponse]
    meta: dict[str, Any]
