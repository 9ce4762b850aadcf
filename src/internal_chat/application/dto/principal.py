from __future__ import annotations

from dataclasses import dataclass, field

from internal_chat.domain.entities.identity import Identity


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated token holder, before account membership is checked."""

    user_id: int
    account_id: int | None = None
    roles: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Caller:
    """A principal resolved against one account."""

    identity: Identity
    account_id: int

    @property
    def user_id(self) -> int:
        return self.identity.id

    @property
    def connection_key(self) -> str:
        return f"{self.account_id}:{self.identity.id}"
