from __future__ import annotations

from internal_chat.domain.entities.room import Room
from internal_chat.domain.value_objects.enums import RoomKind
from internal_chat.infrastructure.db.models.room import RoomModel


def model_to_entity(model: RoomModel) -> Room:
    return Room(
        id=model.id,
        account_id=model.account_id,
        kind=RoomKind(model.kind),
        canonical_key=model.canonical_key,
        name=model.name,
        created_at=model.created_at,
        team_id=model.team_id,
        metadata=dict(model.metadata_ or {}),
    )


def entity_to_values(entity: Room) -> dict:
    values = {
        "account_id": entity.account_id,
        "kind": entity.kind.value,
        "canonical_key": entity.canonical_key,
        "name": entity.name,
        "team_id": entity.team_id,
        "metadata_": entity.metadata,
        "created_at": entity.created_at,
    }
    if entity.id is not None:
        values["id"] = entity.id
    return values
