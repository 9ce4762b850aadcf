"""FastAPI dependency injection helpers."""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated, AsyncIterator, Callable

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from internal_chat.application.dto.principal import Caller, Principal
from internal_chat.application.ports.auth import TokenVerifier
from internal_chat.application.ports.bus import EnvelopePublisher
from internal_chat.application.uow import UnitOfWork
from internal_chat.config import settings
from internal_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from internal_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from internal_chat.infrastructure.bus.hub import BroadcastHub
from internal_chat.infrastructure.db.session import AsyncSessionLocal
from internal_chat.infrastructure.db.uow import SqlAlchemyUoW
from internal_chat.services import identity_service

_bearer_scheme = HTTPBearer()

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


@asynccontextmanager
async def open_uow() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUoW(session)


def get_uow_factory() -> UoWFactory:
    return open_uow


async def get_uow(
    factory: Annotated[UoWFactory, Depends(get_uow_factory)],
) -> AsyncIterator[UnitOfWork]:
    async with factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def get_hub(conn: HTTPConnection) -> BroadcastHub:
    return conn.app.state.hub


def get_publisher(conn: HTTPConnection) -> EnvelopePublisher:
    return conn.app.state.publisher


HubDep = Annotated[BroadcastHub, Depends(get_hub)]
PublisherDep = Annotated[EnvelopePublisher, Depends(get_publisher)]


def _build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _build_verifier()
    return _verifier


VerifierDep = Annotated[TokenVerifier, Depends(get_verifier)]


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: VerifierDep,
) -> Principal:
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_caller(
    account_id: Annotated[int, Path()],
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Caller:
    return await identity_service.resolve_caller(principal, account_id, uow)


CurrentCaller = Annotated[Caller, Depends(get_caller)]
