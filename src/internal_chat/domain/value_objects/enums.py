from __future__ import annotations

from enum import StrEnum


class RoomKind(StrEnum):
    GENERAL = "general"
    TEAM = "team"
    DIRECT = "direct"


class IdentityKind(StrEnum):
    MEMBER = "member"
    SUPER_ADMIN = "super_admin"


class MessageType(StrEnum):
    TEXT = "text"
    ATTACHMENT = "attachment"


class EnvelopeEvent(StrEnum):
    NEW_MESSAGE = "new_message"
