"""Bind an authenticated principal to an account."""
from __future__ import annotations

import logging

from internal_chat.application.dto.principal import Caller, Principal
from internal_chat.application.exceptions import ForbiddenError
from internal_chat.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def resolve_caller(principal: Principal, account_id: int, uow: UnitOfWork) -> Caller:
    identity = await uow.users.find_member(account_id, principal.user_id)
    if identity is None:
        logger.info("User %s has no access to account %s", principal.user_id, account_id)
        raise ForbiddenError("No access to this account")
    return Caller(identity=identity, account_id=account_id)


async def resolve_connection(
    principal: Principal,
    uow: UnitOfWork,
    *,
    user_id: int | None = None,
    account_id: int | None = None,
) -> Caller:
    """Caller for a real-time connection.

    The account comes from the query string, then the token, then the
    user's first account. A ``user_id`` that disagrees with the token is
    rejected.
    """
    if user_id is not None and user_id != principal.user_id:
        raise ForbiddenError("user_id does not match the token")

    resolved = account_id if account_id is not None else principal.account_id
    if resolved is None:
        resolved = await uow.users.default_account_id(principal.user_id)
    if resolved is None:
        raise ForbiddenError("No account for this user")
    return await resolve_caller(principal, resolved, uow)
