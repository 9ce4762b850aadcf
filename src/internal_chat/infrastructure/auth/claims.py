from __future__ import annotations

from typing import Any

from internal_chat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded JWT claims. ``sub`` is the user id."""
    account_raw = payload.get("account_id")
    return Principal(
        user_id=int(payload["sub"]),
        account_id=int(account_raw) if account_raw is not None else None,
        roles=list(payload.get("roles", [])),
    )
