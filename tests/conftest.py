from __future__ import annotations

from pathlib import Path

import pytest

from messagely.credentials import CredentialStore
from messagely.database import Database
from messagely.directory import UserDirectory
from messagely.messages import MessageStore

TEST_BCRYPT_ROUNDS = 4


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "messagely.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def credentials(database: Database) -> CredentialStore:
    return CredentialStore(database, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture()
def directory(database: Database) -> UserDirectory:
    return UserDirectory(database)


@pytest.fixture()
def messages(database: Database) -> MessageStore:
    return MessageStore(database)


@pytest.fixture()
def alice_and_bob(credentials: CredentialStore) -> None:
    credentials.register("alice", "pw123", "Alice", "Anderson", "555-0100")
    credentials.register("bob", "hunter2", "Bob", "Brown", "555-0101")
