"""Authorization guards applied before a message or profile is revealed.

The guards only compare the caller identity with data the caller has already
fetched; they never touch the database.
"""
from __future__ import annotations

from .errors import ForbiddenError
from .models import MessageDetail


def can_view(message: MessageDetail, caller: str) -> bool:
    return caller in (message.from_user.username, message.to_user.username)


def can_mark_read(message: MessageDetail, caller: str) -> bool:
    return caller == message.to_user.username


def ensure_can_view(message: MessageDetail, caller: str) -> None:
    if not can_view(message, caller):
        raise ForbiddenError("Only the sender or recipient may view this message")


def ensure_can_mark_read(message: MessageDetail, caller: str) -> None:
    if not can_mark_read(message, caller):
        raise ForbiddenError("Only the recipient may mark this message as read")


def ensure_same_user(username: str, caller: str) -> None:
    if username != caller:
        raise ForbiddenError("You may only access your own account")


__all__ = [
    "can_mark_read",
    "can_view",
    "ensure_can_mark_read",
    "ensure_can_view",
    "ensure_same_user",
]
