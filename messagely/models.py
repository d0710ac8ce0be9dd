"""Value objects returned by the messaging data layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class UserSummary:
    """Reduced user view embedded inside other records."""

    username: str
    first_name: str
    last_name: str
    phone: str


@dataclass(frozen=True)
class UserProfile:
    """Full public profile of a user. The password hash is never included."""

    username: str
    first_name: str
    last_name: str
    phone: str
    join_at: datetime
    last_login_at: Optional[datetime]


@dataclass(frozen=True)
class MessageRecord:
    id: int
    from_username: str
    to_username: str
    body: str
    sent_at: datetime


@dataclass(frozen=True)
class MessageDetail:
    """A message with both parties' summaries joined in."""

    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime]
    from_user: UserSummary
    to_user: UserSummary


@dataclass(frozen=True)
class SentMessage:
    id: int
    to_user: UserSummary
    body: str
    sent_at: datetime
    read_at: Optional[datetime]


@dataclass(frozen=True)
class ReceivedMessage:
    id: int
    from_user: UserSummary
    body: str
    sent_at: datetime
    read_at: Optional[datetime]


@dataclass(frozen=True)
class ReadReceipt:
    id: int
    read_at: datetime


__all__ = [
    "MessageDetail",
    "MessageRecord",
    "ReadReceipt",
    "ReceivedMessage",
    "SentMessage",
    "UserProfile",
    "UserSummary",
]
