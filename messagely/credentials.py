"""User registration and password verification."""
from __future__ import annotations

import logging
import sqlite3

from passlib.context import CryptContext

from .database import Database, current_timestamp, serialize_datetime
from .errors import DuplicateUserError, UserNotFoundError
from .models import UserProfile

logger = logging.getLogger("messagely.credentials")

DEFAULT_BCRYPT_ROUNDS = 12


def build_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class CredentialStore:
    """Owns the ``users.password`` column; the hash never leaves this class."""

    def __init__(self, database: Database, *, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._database = database
        self._pwd_context = build_password_context(bcrypt_rounds)

    def register(
        self,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
    ) -> UserProfile:
        """Persist a new user and return its public profile."""

        if not password:
            raise ValueError("Password must not be empty")

        password_hash = self._pwd_context.hash(password)
        now = current_timestamp()
        serialized_now = serialize_datetime(now)

        try:
            with self._database.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO users (
                        username, password, first_name, last_name, phone, join_at, last_login_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (username, password_hash, first_name, last_name, phone, serialized_now, serialized_now),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateUserError(f"Username '{username}' is already taken") from exc

        logger.info("Registered user %s", username)
        return UserProfile(
            username=username,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            join_at=now,
            last_login_at=now,
        )

    def authenticate(self, username: str, password: str) -> bool:
        """Return ``True`` only if ``password`` matches the stored hash for ``username``.

        Unknown users still pay for one hash verification so the response time
        does not reveal whether the username exists.
        """

        with self._database.connect() as conn:
            row = conn.execute(
                "SELECT password FROM users WHERE username = ?",
                (username,),
            ).fetchone()

        stored_hash = row["password"] if row is not None else None
        if not stored_hash:
            self._pwd_context.dummy_verify()
            return False

        try:
            return self._pwd_context.verify(password, stored_hash)
        except ValueError:
            # Unrecognised or malformed hash.
            return False

    def touch_login(self, username: str) -> None:
        with self._database.connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET last_login_at = ? WHERE username = ?",
                (serialize_datetime(current_timestamp()), username),
            )
            updated = cursor.rowcount

        if updated == 0:
            raise UserNotFoundError(f"No such user: {username}")


__all__ = ["CredentialStore", "DEFAULT_BCRYPT_ROUNDS", "build_password_context"]
