"""Import all models so Base.metadata knows every chat table."""
from internal_chat.infrastructure.db.models.membership import MembershipModel
from internal_chat.infrastructure.db.models.message import MessageModel
from internal_chat.infrastructure.db.models.room import RoomModel

__all__ = [
    "MembershipModel",
    "MessageModel",
    "RoomModel",
]
