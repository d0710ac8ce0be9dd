from __future__ import annotations

from datetime import datetime, timezone

import pytest

from messagely.errors import ForbiddenError
from messagely.models import MessageDetail, UserSummary
from messagely.policy import ensure_can_mark_read, ensure_can_view, ensure_same_user


@pytest.fixture()
def message() -> MessageDetail:
    return MessageDetail(
        id=1,
        body="hello",
        sent_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        read_at=None,
        from_user=UserSummary("alice", "Alice", "Anderson", "555-0100"),
        to_user=UserSummary("bob", "Bob", "Brown", "555-0101"),
    )


@pytest.mark.parametrize("caller", ["alice", "bob"])
def test_parties_can_view(message: MessageDetail, caller: str) -> None:
    ensure_can_view(message, caller)


def test_outsider_cannot_view(message: MessageDetail) -> None:
    with pytest.raises(ForbiddenError):
        ensure_can_view(message, "mallory")


def test_only_recipient_marks_read(message: MessageDetail) -> None:
    ensure_can_mark_read(message, "bob")

    with pytest.raises(ForbiddenError):
        ensure_can_mark_read(message, "alice")
    with pytest.raises(ForbiddenError):
        ensure_can_mark_read(message, "mallory")


def test_same_user() -> None:
    ensure_same_user("alice", "alice")
    with pytest.raises(ForbiddenError):
        ensure_same_user("alice", "bob")
