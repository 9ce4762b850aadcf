from __future__ import annotations

from internal_chat.domain.entities.message import AttachmentRef, Message
from internal_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        room_id=model.room_id,
        account_id=model.account_id,
        sender_id=model.sender_id,
        content=model.content,
        created_at=model.created_at,
        attachments=tuple(AttachmentRef.from_dict(a) for a in model.attachments or []),
        metadata=dict(model.metadata_ or {}),
        edited_at=model.edited_at,
        edited_by_id=model.edited_by_id,
        deleted_at=model.deleted_at,
        deleted_by_id=model.deleted_by_id,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        room_id=entity.room_id,
        account_id=entity.account_id,
        sender_id=entity.sender_id,
        content=entity.content,
        attachments=[a.to_dict() for a in entity.attachments],
        metadata_=entity.metadata,
        created_at=entity.created_at,
        edited_at=entity.edited_at,
        edited_by_id=entity.edited_by_id,
        deleted_at=entity.deleted_at,
        deleted_by_id=entity.deleted_by_id,
    )
