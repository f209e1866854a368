from __future__ import annotations

import sqlite3

from loguru import logger

from inbox_sessions.storage.database import Database
from inbox_sessions.storage.models import Message

_MESSAGE_COLUMNS = ("session_id", "source", "message", "timestamp", "sent", "received", "has_attachment")


def _message_from_row(row: sqlite3.Row) -> Message:
    return Message(
        id=int(row["id"]),
        session_id=int(row["session_id"] or 0),
        source=row["source"] or "",
        message=row["message"] or "",
        timestamp=int(row["timestamp"] or 0),
        sent=bool(row["sent"]),
        received=bool(row["received"]),
        has_attachment=bool(row["has_attachment"]),
    )


def save_message(db: Database, message: Message) -> None:
    cols = list(_MESSAGE_COLUMNS)
    params: list = [
        message.session_id,
        message.source,
        message.message,
        message.timestamp,
        int(message.sent),
        int(message.received),
        int(message.has_attachment),
    ]
    if message.id > 0:
        cols.append("id")
        params.append(message.id)

    placeholders = ", ".join("?" for _ in cols)
    cursor = db.write(
        f"INSERT OR REPLACE INTO message ({', '.join(cols)}) VALUES ({placeholders})",
        tuple(params),
    )
    if cursor.lastrowid:
        message.id = int(cursor.lastrowid)
    else:
        logger.info(f"Failed to fetch last insert id for message in session {message.session_id}")


def fetch_message(db: Database, message_id: int) -> Message | None:
    row = db.query_one("SELECT * FROM message WHERE id = ? LIMIT 1", (message_id,))
    if row is None:
        return None
    return _message_from_row(row)


def fetch_all_messages(db: Database, session_id: int) -> list[Message]:
    rows = db.query(
        """
        SELECT id, session_id, source, message, timestamp, sent, received, has_attachment
        FROM message
        WHERE session_id = ?
        ORDER BY timestamp ASC, id ASC
        """,
        (session_id,),
    )
    return [_message_from_row(row) for row in rows]
