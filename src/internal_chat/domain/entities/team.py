from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Team:
    id: int
    account_id: int
    name: str
    description: str | None = None
    member_ids: frozenset[int] = field(default_factory=frozenset)

    def belongs_to(self, account_id: int) -> bool:
        return self.account_id == account_id
