from __future__ import annotations

from dataclasses import dataclass

from internal_chat.domain.value_objects.enums import IdentityKind


@dataclass(frozen=True, slots=True)
class Identity:
    """A user as seen by the chat core.

    Ordinary account members and cross-account super-users share this shape;
    only ``kind`` tells them apart.
    """

    id: int
    display_name: str
    kind: IdentityKind = IdentityKind.MEMBER
    avatar_url: str | None = None
    email: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.kind == IdentityKind.SUPER_ADMIN


UNKNOWN_SENDER_NAME = "Unknown"
