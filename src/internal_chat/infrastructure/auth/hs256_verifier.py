from __future__ import annotations

import jwt

from internal_chat.application.dto.principal import Principal
from internal_chat.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Verify JWTs signed with a shared secret issued by the host application."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": ["sub"]},
        )
        return principal_from_claims(payload)
