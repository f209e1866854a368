import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from inbox_sessions.app_config import Settings, load_json_config, parse_app_config
from inbox_sessions.contacts import Contacts
from inbox_sessions.logging_config import setup_logging
from inbox_sessions.storage import (
    Absent,
    Database,
    SessionModel,
    StorageError,
    reconcile,
    session_store,
)

_USAGE = """usage: python -m inbox_sessions <command> [args]

commands:
  list            show every session, newest first
  show <id>       print a session and its message history
  read <id>       mark a session as read
  delete <id>     delete a session and its messages
  reconcile       remove orphaned messages and stale previews
  help            show this message
"""


def _format_time(timestamp: int) -> str:
    if timestamp <= 0:
        return "-"
    # timestamps are milliseconds since the epoch
    return datetime.fromtimestamp(timestamp / 1000, UTC).strftime("%Y-%m-%d %H:%M")


def _parse_id(args: list[str]) -> int | None:
    if len(args) != 1 or not args[0].isdigit():
        print("A numeric session id is required.")
        return None
    return int(args[0])


class _Cli:
    def __init__(self, db: Database, contacts: Contacts):
        self._db = db
        self._contacts = contacts
        self._model = SessionModel()

    def handlers(self) -> dict[str, Callable[[list[str]], int]]:
        return {
            "list": self.on_list,
            "show": self.on_show,
            "read": self.on_read,
            "delete": self.on_delete,
            "reconcile": self.on_reconcile,
        }

    def on_list(self, args: list[str]) -> int:
        self._model.refresh(self._db, self._contacts)
        print(f"{self._model.length} sessions, {self._model.unread_count} unread")
        for session in self._model:
            marker = "*" if session.unread else " "
            kind = "group" if session.is_group else "1:1"
            title = session.group_name if session.is_group and session.group_name else session.name
            print(f"{marker} {session.id:>5}  {_format_time(session.timestamp)}  [{kind}] {title}: {session.message}")
        return 0

    def on_show(self, args: list[str]) -> int:
        session_id = _parse_id(args)
        if session_id is None:
            return 2
        lookup = session_store.fetch_by_id(self._db, session_id)
        if isinstance(lookup, Absent):
            print(f"Session not found: {session_id}")
            return 1
        session = lookup.session
        session.refresh(self._db, self._contacts)
        print(f"Session {session.id}: {session.name} ({session.length} messages)")
        if session.is_group:
            print(f"Group: {session.group_name} [{', '.join(session.member_list)}]")
        for message in session.messages:
            status = "sent" if message.sent else ("received" if message.received else "")
            print(f"  {_format_time(message.timestamp)}  {self._contacts.name(message.source)}: {message.message}  {status}".rstrip())
        return 0

    def on_read(self, args: list[str]) -> int:
        session_id = _parse_id(args)
        if session_id is None:
            return 2
        self._model.mark_read(self._db, session_id, self._contacts)
        print(f"Marked session {session_id} as read ({self._model.unread_count} unread)")
        return 0

    def on_delete(self, args: list[str]) -> int:
        session_id = _parse_id(args)
        if session_id is None:
            return 2
        self._model.delete(self._db, session_id, self._contacts)
        print(f"Deleted session {session_id}")
        return 0

    def on_reconcile(self, args: list[str]) -> int:
        report = reconcile(self._db)
        print(
            f"Removed {report.orphaned_messages} orphaned messages, "
            f"refreshed {report.refreshed_previews} previews"
        )
        return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    argv = sys.argv[1:] if argv is None else argv
    app = parse_app_config(load_json_config())
    setup_logging(app)

    if not argv or argv[0] in ("help", "-h", "--help"):
        print(_USAGE)
        return 0

    settings = Settings()
    if Path(app.settings_path).exists():
        settings.load(app.settings_path)
    db_path = app.database_path
    if settings.incognito:
        logger.warning("Incognito mode: using an in-memory session database")
        db_path = ":memory:"

    contacts = Contacts.from_file(app.contacts_path) if app.contacts_path else Contacts()
    db = Database(db_path, atomic=app.atomic_writes)
    try:
        cli = _Cli(db, contacts)
        handler = cli.handlers().get(argv[0])
        if handler is None:
            print(f"Unknown command: {argv[0]}\n")
            print(_USAGE)
            return 2
        return handler(argv[1:])
    except StorageError as ex:
        logger.error(f"Storage error: {ex}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
