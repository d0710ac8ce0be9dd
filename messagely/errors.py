"""Error taxonomy shared by the data layer and the HTTP API."""
from __future__ import annotations


class MessagelyError(Exception):
    """Base class for faults surfaced to the request layer."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "kind": self.kind}


class AuthError(MessagelyError):
    """Credentials or session token were rejected."""

    kind = "auth_error"
    status_code = 401


class UserNotFoundError(MessagelyError):
    kind = "user_not_found"
    status_code = 404


class DuplicateUserError(MessagelyError):
    kind = "duplicate_user"
    status_code = 409


class MessageNotFoundError(MessagelyError):
    kind = "message_not_found"
    status_code = 404


class ForbiddenError(MessagelyError):
    """The authenticated caller may not access the requested resource."""

    kind = "forbidden"
    status_code = 403


class StoreError(MessagelyError):
    """The relational store could not be reached or failed mid-query."""

    kind = "store_error"
    status_code = 503


__all__ = [
    "AuthError",
    "DuplicateUserError",
    "ForbiddenError",
    "MessageNotFoundError",
    "MessagelyError",
    "StoreError",
    "UserNotFoundError",
]
