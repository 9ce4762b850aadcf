"""Local message list for the open room, with optimistic-echo reconciliation.

Entries are serialized messages. Provisional entries carry ``temp=True``
and a ``temp-`` prefixed id until the persisted copy replaces them.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from internal_chat.domain.entities.message import AttachmentRef

TEMP_PREFIX = "temp-"


def _same_text(a: str | None, b: str | None) -> bool:
    return (a or "").strip() == (b or "").strip()


class MessageTimeline:
    def __init__(self) -> None:
        self._entries: list[dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    @property
    def entries(self) -> list[dict[str, Any]]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def replace_all(self, messages: Iterable[dict[str, Any]]) -> None:
        self._entries = []
        for message in messages:
            self.upsert(message)

    def prepend(self, older: Iterable[dict[str, Any]]) -> int:
        """Insert an older page ahead of the current entries, skipping known ids."""
        known = {e["id"] for e in self._entries}
        fresh = [m for m in older if m["id"] not in known]
        self._entries[:0] = fresh
        return len(fresh)

    def oldest_id(self) -> int | None:
        for entry in self._entries:
            if not entry.get("temp"):
                return entry["id"]
        return None

    def index_of(self, message_id: Any) -> int | None:
        for i, entry in enumerate(self._entries):
            if entry["id"] == message_id:
                return i
        return None

    def add_temp(
        self,
        content: str,
        sender_id: int,
        attachments: Iterable[AttachmentRef] = (),
    ) -> str:
        temp_id = f"{TEMP_PREFIX}{uuid.uuid4().hex}"
        self._entries.append({
            "id": temp_id,
            "content": content,
            "sender_id": sender_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "attachments": [a.to_dict() for a in attachments],
            "temp": True,
        })
        return temp_id

    def remove(self, message_id: Any) -> bool:
        index = self.index_of(message_id)
        if index is None:
            return False
        del self._entries[index]
        return True

    def upsert(self, message: dict[str, Any]) -> None:
        index = self.index_of(message["id"])
        if index is None:
            self._entries.append(message)
        else:
            self._entries[index] = message

    def _matching_temp(self, message: dict[str, Any]) -> int | None:
        for i, entry in enumerate(self._entries):
            if (
                entry.get("temp")
                and entry.get("sender_id") == message.get("sender_id")
                and _same_text(entry.get("content"), message.get("content"))
            ):
                return i
        return None

    def reconcile(self, message: dict[str, Any], temp_id: str | None = None) -> None:
        """Merge a persisted message, retiring its provisional copy if one is still shown.

        Safe to call once from the send response and once from the
        broadcast, in either order.
        """
        if temp_id is not None:
            self.remove(temp_id)
        elif self.index_of(message["id"]) is None:
            index = self._matching_temp(message)
            if index is not None:
                del self._entries[index]
        self.upsert(message)
