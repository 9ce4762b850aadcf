from __future__ import annotations

from internal_chat.domain.entities.membership import Membership
from internal_chat.infrastructure.db.models.membership import MembershipModel


def model_to_entity(model: MembershipModel) -> Membership:
    return Membership(
        room_id=model.room_id,
        user_id=model.user_id,
        created_at=model.created_at,
        last_read_at=model.last_read_at,
    )
