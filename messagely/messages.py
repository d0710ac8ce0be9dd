"""Creation, lookup and read-marking of direct messages."""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .database import (
    Database,
    current_timestamp,
    parse_datetime,
    parse_optional_datetime,
    serialize_datetime,
    summary_from_row,
)
from .errors import MessageNotFoundError, UserNotFoundError
from .models import MessageDetail, MessageRecord, ReadReceipt

logger = logging.getLogger("messagely.messages")


class MessageStore:
    """Persistence for messages.

    The store does not know who is calling. Ownership checks live in
    :mod:`messagely.policy` and must run before :meth:`get` results are
    revealed or :meth:`mark_read` is invoked.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    def create(self, from_username: str, to_username: str, body: str) -> MessageRecord:
        sent_at = current_timestamp()
        try:
            with self._database.connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO messages (from_username, to_username, body, sent_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (from_username, to_username, body, serialize_datetime(sent_at)),
                )
                message_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise UserNotFoundError(
                f"Cannot send message from '{from_username}' to '{to_username}': no such user"
            ) from exc

        logger.info("Message %s sent from %s to %s", message_id, from_username, to_username)
        return MessageRecord(
            id=int(message_id),
            from_username=from_username,
            to_username=to_username,
            body=body,
            sent_at=sent_at,
        )

    def get(self, message_id: int) -> MessageDetail:
        row = self._fetch_detail(message_id)
        if row is None:
            raise MessageNotFoundError(f"No such message: {message_id}")
        return MessageDetail(
            id=int(row["id"]),
            body=str(row["body"]),
            sent_at=parse_datetime(str(row["sent_at"])),
            read_at=parse_optional_datetime(row["read_at"]),
            from_user=summary_from_row(row, "from"),
            to_user=summary_from_row(row, "to"),
        )

    def mark_read(self, message_id: int) -> ReadReceipt:
        """Stamp ``read_at`` with the current time.

        Repeated calls overwrite the previous timestamp rather than failing.
        """

        read_at = current_timestamp()
        with self._database.connect() as conn:
            cursor = conn.execute(
                "UPDATE messages SET read_at = ? WHERE id = ?",
                (serialize_datetime(read_at), message_id),
            )
            updated = cursor.rowcount

        if updated == 0:
            raise MessageNotFoundError(f"No such message: {message_id}")

        logger.info("Message %s marked read", message_id)
        return ReadReceipt(id=message_id, read_at=read_at)

    def _fetch_detail(self, message_id: int) -> Optional[sqlite3.Row]:
        with self._database.connect() as conn:
            return conn.execute(
                """
                SELECT m.id, m.body, m.sent_at, m.read_at,
                       f.username AS from_username,
                       f.first_name AS from_first_name,
                       f.last_name AS from_last_name,
                       f.phone AS from_phone,
                       t.username AS to_username,
                       t.first_name AS to_first_name,
                       t.last_name AS to_last_name,
                       t.phone AS to_phone
                  FROM messages AS m
                  JOIN users AS f ON f.username = m.from_username
                  JOIN users AS t ON t.username = m.to_username
                 WHERE m.id = ?
                """,
                (message_id,),
            ).fetchone()


__all__ = ["MessageStore"]
