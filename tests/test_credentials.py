from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from messagely.credentials import CredentialStore
from messagely.database import Database
from messagely.directory import UserDirectory
from messagely.errors import DuplicateUserError, UserNotFoundError


def test_register_returns_profile_without_password(credentials: CredentialStore) -> None:
    profile = credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")

    assert profile.username == "alice"
    assert profile.first_name == "Alice"
    assert profile.join_at == profile.last_login_at
    assert profile.join_at.tzinfo is not None
    assert not hasattr(profile, "password")


def test_password_is_stored_hashed(credentials: CredentialStore, database: Database) -> None:
    credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")

    with database.connect() as conn:
        stored = conn.execute("SELECT password FROM users WHERE username = 'alice'").fetchone()[0]

    assert stored != "pw123"
    assert stored.startswith("$2")


def test_duplicate_registration_is_rejected(credentials: CredentialStore) -> None:
    credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")

    with pytest.raises(DuplicateUserError):
        credentials.register("alice", "other", "Alicia", "Other", "555-0199")


def test_register_requires_password(credentials: CredentialStore) -> None:
    with pytest.raises(ValueError):
        credentials.register("alice", "", "Alice", "Anderson", "555-0100")


def test_authenticate(credentials: CredentialStore) -> None:
    credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")

    assert credentials.authenticate("alice", "pw123") is True
    assert credentials.authenticate("alice", "wrong") is False
    assert credentials.authenticate("nobody", "pw123") is False


def test_unknown_user_still_runs_hash_verification(
    credentials: CredentialStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[int] = []
    context = credentials._pwd_context
    original = context.dummy_verify

    def counting_dummy_verify(*args: object, **kwargs: object) -> bool:
        calls.append(1)
        return original(*args, **kwargs)

    monkeypatch.setattr(context, "dummy_verify", counting_dummy_verify)

    assert credentials.authenticate("nobody", "pw123") is False
    assert len(calls) == 1


def test_authenticate_rejects_unrecognised_hash(credentials: CredentialStore, database: Database) -> None:
    credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")
    with database.connect() as conn:
        conn.execute("UPDATE users SET password = 'not-a-hash' WHERE username = 'alice'")

    assert credentials.authenticate("alice", "pw123") is False


def test_touch_login_updates_timestamp(credentials: CredentialStore, directory: UserDirectory) -> None:
    profile = credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")

    credentials.touch_login("alice")

    refreshed = directory.get_profile("alice")
    assert refreshed.join_at == profile.join_at
    assert refreshed.last_login_at is not None
    assert refreshed.last_login_at >= profile.last_login_at


def test_touch_login_unknown_user(credentials: CredentialStore) -> None:
    with pytest.raises(UserNotFoundError):
        credentials.touch_login("nobody")


def test_concurrent_duplicate_registration_has_one_winner(database: Database) -> None:
    stores = [CredentialStore(database, bcrypt_rounds=4) for _ in range(2)]
    barrier = threading.Barrier(len(stores))

    def register(store: CredentialStore) -> str:
        barrier.wait()
        try:
            store.register("alice", "pw123", "Alice", "Anderson", "555-0100")
        except DuplicateUserError:
            return "duplicate"
        return "created"

    with ThreadPoolExecutor(max_workers=len(stores)) as executor:
        outcomes = sorted(executor.map(register, stores))

    assert outcomes == ["created", "duplicate"]
    assert [user.username for user in UserDirectory(database).list_all()] == ["alice"]
