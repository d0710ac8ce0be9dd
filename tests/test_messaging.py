from __future__ import annotations

import logging

import pytest

from messagely.credentials import CredentialStore
from messagely.directory import UserDirectory
from messagely.errors import (
    AuthError,
    DuplicateUserError,
    ForbiddenError,
    MessageNotFoundError,
    UserNotFoundError,
)
from messagely.messages import MessageStore
from messagely.messaging import MessagingService
from messagely.tokens import TokenSigner

SECRET = "a-test-secret-that-is-long-enough-for-hs256"


@pytest.fixture()
def service(
    credentials: CredentialStore,
    directory: UserDirectory,
    messages: MessageStore,
) -> MessagingService:
    return MessagingService(credentials, directory, messages, TokenSigner(SECRET))


def _register(service: MessagingService, username: str, password: str = "pw123") -> str:
    return service.register(username, password, username.title(), "Tester", "555-0000")


def test_register_returns_token_for_new_user(service: MessagingService) -> None:
    token = _register(service, "alice")

    assert service.identify(token) == "alice"


def test_register_twice_fails(service: MessagingService) -> None:
    _register(service, "alice")

    with pytest.raises(DuplicateUserError):
        _register(service, "alice")


def test_login_updates_last_login(service: MessagingService, directory: UserDirectory) -> None:
    _register(service, "alice")
    before = directory.get_profile("alice").last_login_at

    token = service.login("alice", "pw123")

    assert service.identify(token) == "alice"
    assert directory.get_profile("alice").last_login_at >= before


def test_login_failure_does_not_reveal_reason(
    service: MessagingService, caplog: pytest.LogCaptureFixture
) -> None:
    _register(service, "alice")

    with caplog.at_level(logging.WARNING, logger="messagely.messaging"):
        with pytest.raises(AuthError) as wrong_password:
            service.login("alice", "wrong")
        with pytest.raises(AuthError) as unknown_user:
            service.login("nobody", "pw123")

    assert str(wrong_password.value) == str(unknown_user.value)
    assert "wrong" not in caplog.text
    assert {r.name for r in caplog.records if r.name.startswith("messagely.")} == {"messagely.messaging"}
    assert "Failed login attempt for nobody" in caplog.text


def test_message_lifecycle(service: MessagingService) -> None:
    _register(service, "alice")
    _register(service, "bob")

    record = service.send_message("alice", "bob", "hello bob")
    assert record.from_username == "alice"

    assert service.get_message(record.id, "alice").to_user.username == "bob"
    assert service.get_message(record.id, "bob").read_at is None

    with pytest.raises(ForbiddenError):
        service.mark_message_read(record.id, "alice")

    receipt = service.mark_message_read(record.id, "bob")
    assert service.get_message(record.id, "bob").read_at == receipt.read_at


def test_outsider_cannot_view_message(service: MessagingService) -> None:
    _register(service, "alice")
    _register(service, "bob")
    _register(service, "mallory")
    record = service.send_message("alice", "bob", "secret")

    with pytest.raises(ForbiddenError):
        service.get_message(record.id, "mallory")
    with pytest.raises(ForbiddenError):
        service.mark_message_read(record.id, "mallory")


def test_missing_message(service: MessagingService) -> None:
    with pytest.raises(MessageNotFoundError):
        service.get_message(123, "alice")
    with pytest.raises(MessageNotFoundError):
        service.mark_message_read(123, "alice")


def test_send_to_unknown_user(service: MessagingService) -> None:
    _register(service, "alice")

    with pytest.raises(UserNotFoundError):
        service.send_message("alice", "nobody", "hello?")


def test_user_reads_are_limited_to_self(service: MessagingService) -> None:
    _register(service, "alice")
    _register(service, "bob")
    service.send_message("alice", "bob", "hi")

    assert service.get_user("alice", "alice").username == "alice"
    assert [m.to_user.username for m in service.messages_from("alice", "alice")] == ["bob"]
    assert [m.from_user.username for m in service.messages_to("bob", "bob")] == ["alice"]
    assert [user.username for user in service.list_users()] == ["alice", "bob"]

    with pytest.raises(ForbiddenError):
        service.get_user("bob", "alice")
    with pytest.raises(ForbiddenError):
        service.messages_to("bob", "alice")


def test_user_reads_for_unknown_account(service: MessagingService) -> None:
    with pytest.raises(UserNotFoundError):
        service.get_user("ghost", "ghost")
    with pytest.raises(UserNotFoundError):
        service.messages_from("ghost", "ghost")
    with pytest.raises(UserNotFoundError):
        service.messages_to("ghost", "ghost")
