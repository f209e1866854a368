from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from inbox_sessions.storage import message_store
from inbox_sessions.storage.errors import StorageError
from inbox_sessions.storage.models import Message

if TYPE_CHECKING:
    from inbox_sessions.contacts import ContactDirectory
    from inbox_sessions.storage.database import Database


@dataclass
class Session:
    """Denormalized summary of one conversation, plus its lazily loaded history."""

    id: int = 0
    source: str = ""
    is_group: bool = False
    group_id: str = ""
    group_name: str = ""
    members: str = ""
    message: str = ""
    timestamp: int = 0
    unread: bool = False
    sent: bool = False
    received: bool = False
    has_attachment: bool = False
    name: str = field(default="", compare=False)
    messages: list[Message] = field(default_factory=list, compare=False, repr=False)
    length: int = field(default=0, compare=False)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Session:
        return cls(
            id=int(row["id"]),
            source=row["source"] or "",
            is_group=bool(row["is_group"]),
            group_id=row["group_id"] or "",
            group_name=row["group_name"] or "",
            members=row["group_members"] or "",
            message=row["message"] or "",
            timestamp=int(row["timestamp"] or 0),
            unread=bool(row["unread"]),
            sent=bool(row["sent"]),
            received=bool(row["received"]),
            has_attachment=bool(row["has_attachment"]),
        )

    @property
    def member_list(self) -> list[str]:
        return [m for m in self.members.split(",") if m]

    def refresh(self, db: Database, contacts: ContactDirectory) -> None:
        """Load this session's message history and display name.

        Raises StorageError if the history cannot be read; the previously loaded
        messages are left in place.
        """
        try:
            messages = message_store.fetch_all_messages(db, self.id)
        except StorageError as ex:
            logger.bind(session_id=self.id).error(f"Failed to fetch messages: {ex}")
            raise

        self.messages = messages
        self.name = contacts.name(self.source)
        self.length = len(messages)
