from __future__ import annotations

import jwt
import pytest

from internal_chat.application.dto.principal import Principal
from internal_chat.application.exceptions import ForbiddenError
from internal_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from internal_chat.services import identity_service
from tests.conftest import ACCOUNT_ID, ANA, OTHER_ACCOUNT_ID, OUTSIDER, ROOT

SECRET = "unit-test-secret-with-at-least-32-bytes"


def token(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.mark.asyncio
async def test_hs256_token_becomes_principal():
    verifier = HS256Verifier(SECRET)

    principal = await verifier.verify(token({"sub": "1", "account_id": 1, "roles": ["agent"]}))

    assert principal == Principal(user_id=1, account_id=1, roles=["agent"])


@pytest.mark.asyncio
async def test_hs256_rejects_missing_subject():
    with pytest.raises(jwt.MissingRequiredClaimError):
        await HS256Verifier(SECRET).verify(token({"account_id": 1}))


@pytest.mark.asyncio
async def test_hs256_rejects_foreign_signature():
    with pytest.raises(jwt.InvalidSignatureError):
        await HS256Verifier(SECRET).verify(token({"sub": "1"}, secret="x" * 40))


@pytest.mark.asyncio
async def test_resolve_caller_requires_membership(uow):
    caller = await identity_service.resolve_caller(Principal(user_id=ANA.id), ACCOUNT_ID, uow)
    assert caller.identity == ANA

    with pytest.raises(ForbiddenError):
        await identity_service.resolve_caller(Principal(user_id=OUTSIDER.id), ACCOUNT_ID, uow)


@pytest.mark.asyncio
async def test_super_admin_reaches_granted_account(uow):
    caller = await identity_service.resolve_caller(Principal(user_id=ROOT.id), ACCOUNT_ID, uow)

    assert caller.identity.is_super_admin


@pytest.mark.asyncio
async def test_connection_account_precedence(uow):
    from_token = Principal(user_id=OUTSIDER.id, account_id=OTHER_ACCOUNT_ID)
    caller = await identity_service.resolve_connection(from_token, uow)
    assert caller.account_id == OTHER_ACCOUNT_ID

    fallback = await identity_service.resolve_connection(Principal(user_id=ANA.id), uow)
    assert fallback.account_id == ACCOUNT_ID

    with pytest.raises(ForbiddenError):
        await identity_service.resolve_connection(
            Principal(user_id=ANA.id), uow, account_id=OTHER_ACCOUNT_ID,
        )


@pytest.mark.asyncio
async def test_connection_rejects_mismatched_user(uow):
    with pytest.raises(ForbiddenError):
        await identity_service.resolve_connection(Principal(user_id=ANA.id), uow, user_id=2)
