from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from internal_chat.application.dto.principal import Principal
from internal_chat.infrastructure.auth.claims import principal_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs against the identity provider's JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, token: str) -> Principal:
        # PyJWKClient fetches over blocking urllib.
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            options={"require": ["sub"]},
        )
        logger.debug("JWKS token accepted for sub=%s", payload.get("sub"))
        return principal_from_claims(payload)
