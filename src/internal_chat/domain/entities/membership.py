from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Membership:
    room_id: int
    user_id: int
    created_at: datetime
    last_read_at: datetime | None = None

    @property
    def read_marker(self) -> datetime:
        """Point after which messages count as unread."""
        return self.last_read_at or self.created_at
