"""SQLite-backed persistence shared by the messaging components."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .errors import StoreError
from .models import UserSummary

logger = logging.getLogger("messagely.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "messagely.sqlite3").resolve(strict=False)


def current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return parse_datetime(str(value))


def summary_from_row(row: sqlite3.Row, prefix: str) -> UserSummary:
    """Build a :class:`UserSummary` from joined columns named ``<prefix>_username`` etc."""

    return UserSummary(
        username=str(row[f"{prefix}_username"]),
        first_name=str(row[f"{prefix}_first_name"]),
        last_name=str(row[f"{prefix}_last_name"]),
        phone=str(row[f"{prefix}_phone"]),
    )


class Database:
    """Connection factory and schema owner for the messaging store.

    A single instance is created at startup and handed to every component.
    Each operation opens its own connection through :meth:`connect`, so no
    connection is shared between concurrent requests.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction and close it afterwards.

        Integrity errors propagate untouched so callers can map constraint
        violations to domain errors. Every other driver failure is raised as
        :class:`StoreError`.
        """

        try:
            conn = self._open()
        except sqlite3.Error as exc:
            logger.error("Unable to open database at %s: %s", self._path, exc)
            raise StoreError("The message store is unavailable") from exc

        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            logger.error("Database operation failed: %s", exc)
            raise StoreError("The message store failed to complete the request") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    username TEXT PRIMARY KEY,
                    password TEXT NOT NULL,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    phone TEXT NOT NULL,
                    join_at TEXT NOT NULL,
                    last_login_at TEXT
                );

                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    from_username TEXT NOT NULL REFERENCES users(username),
                    to_username TEXT NOT NULL REFERENCES users(username),
                    body TEXT NOT NULL,
                    sent_at TEXT NOT NULL,
                    read_at TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_messages_from_username ON messages(from_username);
                CREATE INDEX IF NOT EXISTS idx_messages_to_username ON messages(to_username);
                """
            )


__all__ = [
    "Database",
    "current_timestamp",
    "parse_datetime",
    "parse_optional_datetime",
    "resolve_database_path",
    "serialize_datetime",
    "summary_from_row",
]
