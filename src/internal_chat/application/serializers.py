"""Wire shape of a chat message, shared by the HTTP responses and the broadcast envelope."""
from __future__ import annotations

from typing import Any

from internal_chat.domain.entities.identity import UNKNOWN_SENDER_NAME, Identity
from internal_chat.domain.entities.message import Message


def sender_payload(sender: Identity | None, sender_id: int | None = None) -> dict[str, Any]:
    if sender is None:
        return {"id": sender_id, "name": UNKNOWN_SENDER_NAME, "avatar_url": None}
    return {"id": sender.id, "name": sender.display_name, "avatar_url": sender.avatar_url}


def serialize_message(
    message: Message,
    sender: Identity | None,
    *,
    chat_type: str,
    chat_id: str,
) -> dict[str, Any]:
    return {
        "id": message.id,
        "content": message.content,
        "sender": sender_payload(sender, message.sender_id),
        "sender_id": message.sender_id,
        "created_at": message.created_at.isoformat(),
        "message_type": str(message.message_type),
        "chat_type": str(chat_type),
        "chat_id": str(chat_id),
        "room_id": message.room_id,
        "attachments": [a.to_dict() for a in message.attachments],
        "edited": message.edited,
        "deleted": message.deleted,
    }
