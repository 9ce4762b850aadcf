from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from internal_chat.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class AttachmentRef:
    """Opaque reference to a blob held by the attachment store."""

    url: str
    content_type: str | None = None
    thumb_url: str | None = None
    file_size: int | None = None
    file_type: str | None = None
    extension: str | None = None
    width: int | None = None
    height: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "thumb_url": self.thumb_url,
            "file_size": self.file_size,
            "content_type": self.content_type,
            "file_type": self.file_type,
            "extension": self.extension,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttachmentRef:
        return cls(
            url=data["url"],
            content_type=data.get("content_type"),
            thumb_url=data.get("thumb_url"),
            file_size=data.get("file_size"),
            file_type=data.get("file_type"),
            extension=data.get("extension"),
            width=data.get("width"),
            height=data.get("height"),
        )


@dataclass(frozen=True, slots=True)
class Message:
    id: int | None
    room_id: int
    account_id: int
    sender_id: int
    content: str | None
    created_at: datetime
    attachments: tuple[AttachmentRef, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    edited_at: datetime | None = None
    edited_by_id: int | None = None
    deleted_at: datetime | None = None
    deleted_by_id: int | None = None

    @property
    def deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def edited(self) -> bool:
        return self.edited_at is not None

    @property
    def message_type(self) -> MessageType:
        if self.attachments and not (self.content or "").strip():
            return MessageType.ATTACHMENT
        return MessageType.TEXT
