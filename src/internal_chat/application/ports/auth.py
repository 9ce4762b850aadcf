from __future__ import annotations

from typing import Protocol

from internal_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Decode a bearer token issued by the host application.

        Raises on a bad signature, expiry or a missing ``sub``. The account
        claim is optional; callers resolve the account separately.
        """
        ...
