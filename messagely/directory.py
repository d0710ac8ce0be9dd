"""Read-only lookups of user profiles and per-user message summaries."""
from __future__ import annotations

import sqlite3
from typing import List, Optional

from .database import Database, parse_datetime, parse_optional_datetime, summary_from_row
from .errors import UserNotFoundError
from .models import ReceivedMessage, SentMessage, UserProfile, UserSummary


class UserDirectory:
    def __init__(self, database: Database) -> None:
        self._database = database

    def get_profile(self, username: str) -> UserProfile:
        row = self._fetch_profile(username)
        if row is None:
            raise UserNotFoundError(f"No such user: {username}")
        return self._row_to_profile(row)

    def exists(self, username: str) -> bool:
        return self._fetch_profile(username) is not None

    def list_all(self) -> List[UserSummary]:
        """Return every user's summary in registration order."""

        with self._database.connect() as conn:
            rows = conn.execute(
                "SELECT username, first_name, last_name, phone FROM users ORDER BY rowid"
            ).fetchall()
        return [
            UserSummary(
                username=str(row["username"]),
                first_name=str(row["first_name"]),
                last_name=str(row["last_name"]),
                phone=str(row["phone"]),
            )
            for row in rows
        ]

    def messages_from(self, username: str) -> List[SentMessage]:
        """Messages sent by ``username``, each with the recipient's summary."""

        with self._database.connect() as conn:
            rows = conn.execute(
                """
                SELECT m.id, m.body, m.sent_at, m.read_at,
                       u.username AS to_username,
                       u.first_name AS to_first_name,
                       u.last_name AS to_last_name,
                       u.phone AS to_phone
                  FROM messages AS m
                  JOIN users AS u ON u.username = m.to_username
                 WHERE m.from_username = ?
                 ORDER BY m.id
                """,
                (username,),
            ).fetchall()
        return [
            SentMessage(
                id=int(row["id"]),
                to_user=summary_from_row(row, "to"),
                body=str(row["body"]),
                sent_at=parse_datetime(str(row["sent_at"])),
                read_at=parse_optional_datetime(row["read_at"]),
            )
            for row in rows
        ]

    def messages_to(self, username: str) -> List[ReceivedMessage]:
        """Messages received by ``username``, each with the sender's summary."""

        with self._database.connect() as conn:
            rows = conn.execute(
                """
                SELECT m.id, m.body, m.sent_at, m.read_at,
                       u.username AS from_username,
                       u.first_name AS from_first_name,
                       u.last_name AS from_last_name,
                       u.phone AS from_phone
                  FROM messages AS m
                  JOIN users AS u ON u.username = m.from_username
                 WHERE m.to_username = ?
                 ORDER BY m.id
                """,
                (username,),
            ).fetchall()
        return [
            ReceivedMessage(
                id=int(row["id"]),
                from_user=summary_from_row(row, "from"),
                body=str(row["body"]),
                sent_at=parse_datetime(str(row["sent_at"])),
                read_at=parse_optional_datetime(row["read_at"]),
            )
            for row in rows
        ]

    def _fetch_profile(self, username: str) -> Optional[sqlite3.Row]:
        with self._database.connect() as conn:
            return conn.execute(
                """
                SELECT username, first_name, last_name, phone, join_at, last_login_at
                  FROM users
                 WHERE username = ?
                """,
                (username,),
            ).fetchone()

    def _row_to_profile(self, row: sqlite3.Row) -> UserProfile:
        return UserProfile(
            username=str(row["username"]),
            first_name=str(row["first_name"]),
            last_name=str(row["last_name"]),
            phone=str(row["phone"]),
            join_at=parse_datetime(str(row["join_at"])),
            last_login_at=parse_optional_datetime(row["last_login_at"]),
        )


__all__ = ["UserDirectory"]
