from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class InvalidStateError(AppError):
    """Request contradicts stored state (e.g. a team from another account)."""


class StorageError(AppError):
    pass


class TransportError(AppError):
    """Real-time connection failed or dropped."""


class AuthenticationError(AppError):
    """Credentials were rejected; retrying with the same ones is pointless."""


class SendFailedError(AppError):
    """A send did not persist; ``draft`` holds the text to put back in the composer."""

    def __init__(self, detail: str = "", *, draft: str = "") -> None:
        super().__init__(detail)
        self.draft = draft
