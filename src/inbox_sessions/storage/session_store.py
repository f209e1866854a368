"""Reads and writes against the ``session`` table.

Every function takes the shared :class:`Database` handle. Lookups return
``Found`` or ``Absent``; query failures raise ``StorageError``.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from inbox_sessions.storage.database import Database
from inbox_sessions.storage.errors import PartialFailure, StorageError
from inbox_sessions.storage.session import Session

_SELECT_SESSION = """
    SELECT
        s.id,
        s.source,
        s.message,
        s.timestamp,
        s.is_group,
        s.group_id,
        s.group_name,
        s.group_members,
        s.unread,
        s.sent,
        s.received,
        s.has_attachment
    FROM session AS s
"""

_SAVE_COLUMNS = (
    "source",
    "message",
    "timestamp",
    "is_group",
    "group_id",
    "group_members",
    "group_name",
    "unread",
    "sent",
    "received",
    "has_attachment",
)


@dataclass(frozen=True)
class Found:
    session: Session


@dataclass(frozen=True)
class Absent:
    pass


Lookup = Found | Absent


def _fetch_one(db: Database, where: str, param: object) -> Lookup:
    row = db.query_one(f"{_SELECT_SESSION} WHERE {where} LIMIT 1", (param,))
    if row is None:
        return Absent()
    return Found(Session.from_row(row))


def fetch_by_source(db: Database, source: str) -> Lookup:
    return _fetch_one(db, "s.source = ?", source)


def fetch_by_group_id(db: Database, group_id: str) -> Lookup:
    return _fetch_one(db, "s.group_id = ?", group_id)


def fetch_by_id(db: Database, session_id: int) -> Lookup:
    return _fetch_one(db, "s.id = ?", session_id)


def fetch_all(db: Database) -> list[Session]:
    rows = db.query(f"{_SELECT_SESSION} ORDER BY s.timestamp DESC, s.id ASC")
    return [Session.from_row(row) for row in rows]


def save(db: Database, session: Session) -> None:
    """Insert or replace ``session``; a new row's id is written back onto it."""
    cols = list(_SAVE_COLUMNS)
    params: list = [
        session.source,
        session.message,
        session.timestamp,
        int(session.is_group),
        session.group_id,
        session.members,
        session.group_name,
        int(session.unread),
        int(session.sent),
        int(session.received),
        int(session.has_attachment),
    ]
    if session.id > 0:
        cols.append("id")
        params.append(session.id)

    placeholders = ", ".join("?" for _ in cols)
    cursor = db.write(
        f"INSERT OR REPLACE INTO session ({', '.join(cols)}) VALUES ({placeholders})",
        tuple(params),
    )
    if session.id > 0:
        return
    if cursor.lastrowid:
        session.id = int(cursor.lastrowid)
        logger.bind(session_id=session.id).debug(f"Created session for {session.source}")
    else:
        logger.info(f"Failed to fetch last insert id for session {session.source}")


def delete(db: Database, session_id: int) -> None:
    """Delete the session row and every message that references it."""
    with db.transaction():
        db.write("DELETE FROM session WHERE id = ?", (session_id,))
        try:
            db.write("DELETE FROM message WHERE session_id = ?", (session_id,))
        except StorageError as ex:
            if db.atomic:
                raise
            logger.bind(session_id=session_id).warning(f"Session deleted but its messages were not: {ex}")
            raise PartialFailure(
                f"Session {session_id} deleted, message cascade failed: {ex}",
                operation="delete",
                session_id=session_id,
                completed=("session",),
            ) from ex
    logger.bind(session_id=session_id).debug("Deleted session and its messages")


def mark_read(db: Database, session_id: int) -> None:
    db.write("UPDATE session SET unread = 0 WHERE id = ?", (session_id,))


def mark_sent(db: Database, session_id: int, text: str, timestamp: int) -> None:
    db.write(
        "UPDATE session SET timestamp = ?, message = ?, unread = 0, sent = 1 WHERE id = ?",
        (timestamp, text, session_id),
    )


def mark_received(db: Database, session_id: int, timestamp: int) -> None:
    # timestamp is accepted for symmetry with mark_sent; only the flag is stored
    db.write("UPDATE session SET received = 1 WHERE id = ?", (session_id,))
