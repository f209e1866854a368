from __future__ import annotations

from collections.abc import Iterator

from loguru import logger

from inbox_sessions.contacts import ContactDirectory
from inbox_sessions.storage import message_store, session_store
from inbox_sessions.storage.database import Database
from inbox_sessions.storage.errors import PartialFailure, StorageError
from inbox_sessions.storage.models import Group, GroupFlag, Message
from inbox_sessions.storage.session import Session
from inbox_sessions.storage.session_store import Absent

MEMBER_JOINED_TEXT = "Member joined group"
MEMBER_LEFT_TEXT = "Member left group"


def _preview_text(message: Message, group: Group | None) -> str:
    if group is not None and group.flags == GroupFlag.UPDATE:
        return MEMBER_JOINED_TEXT
    if group is not None and group.flags == GroupFlag.QUIT:
        return MEMBER_LEFT_TEXT
    return message.message


class SessionModel:
    """Ordered cache of every session, newest activity first.

    Storage is authoritative: ``refresh`` rebuilds the whole list, and the
    lifecycle helpers write through and then refresh.
    """

    def __init__(self) -> None:
        self._sessions: list[Session] = []
        self.length = 0
        self.unread_count = 0

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[Session]:
        return iter(self._sessions)

    def get(self, index: int) -> Session:
        if index < 0 or index >= len(self._sessions):
            return Session()
        return self._sessions[index]

    def add(self, db: Database, message: Message, group: Group | None = None, unread: bool = False) -> Session:
        """Fold ``message`` into its session, creating the session when none matches.

        Lookup, merge and both saves run under the database writer lock, so one
        merge key never yields two sessions through the same handle.
        """
        with db.transaction():
            if group is not None:
                lookup = session_store.fetch_by_group_id(db, group.id)
            else:
                lookup = session_store.fetch_by_source(db, message.source)

            if isinstance(lookup, Absent):
                session = Session()
            else:
                session = lookup.session

            session.message = _preview_text(message, group)
            session.timestamp = message.timestamp
            session.unread = unread
            session.sent = message.sent
            session.received = message.received
            session.has_attachment = message.has_attachment
            if group is not None:
                session.source = group.id
                session.group_id = group.id
                session.group_name = group.name
                session.members = ",".join(group.members)
                session.is_group = True
            else:
                session.source = message.source

            session_store.save(db, session)

            message.session_id = session.id
            try:
                message_store.save_message(db, message)
            except StorageError as ex:
                if db.atomic:
                    raise
                logger.bind(session_id=session.id).warning(f"Session updated but its message was not saved: {ex}")
                raise PartialFailure(
                    f"Session {session.id} saved, message save failed: {ex}",
                    operation="add",
                    session_id=session.id,
                    completed=("session",),
                ) from ex

        return session

    def refresh(self, db: Database, contacts: ContactDirectory) -> None:
        sessions = session_store.fetch_all(db)
        unread = 0
        for session in sessions:
            session.name = contacts.name(session.source)
            if session.unread:
                unread += 1

        self._sessions = sessions
        self.length = len(sessions)
        self.unread_count = unread

    def delete(self, db: Database, session_id: int, contacts: ContactDirectory) -> None:
        try:
            session_store.delete(db, session_id)
        except StorageError:
            # a partial delete has still removed the row; the delete error wins over a refresh error
            try:
                self.refresh(db, contacts)
            except StorageError as refresh_error:
                logger.bind(session_id=session_id).warning(f"Could not refresh sessions after failed delete: {refresh_error}")
            raise
        self.refresh(db, contacts)

    def mark_read(self, db: Database, session_id: int, contacts: ContactDirectory) -> None:
        session_store.mark_read(db, session_id)
        self.refresh(db, contacts)

    def mark_sent(self, db: Database, session_id: int, text: str, timestamp: int, contacts: ContactDirectory) -> None:
        session_store.mark_sent(db, session_id, text, timestamp)
        self.refresh(db, contacts)

    def mark_received(self, db: Database, session_id: int, timestamp: int, contacts: ContactDirectory) -> None:
        session_store.mark_received(db, session_id, timestamp)
        self.refresh(db, contacts)
