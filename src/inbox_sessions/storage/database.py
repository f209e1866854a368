from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from inbox_sessions.storage.errors import StorageError


def _is_busy(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


def _on_retry(retry_state: RetryCallState) -> None:
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Database busy: {retry_state.outcome.exception()}. "
        f"Retrying in {wait:.2f}s (attempt {retry_state.attempt_number}/5)..."
    )


_busy_retry = retry(
    retry=retry_if_exception(_is_busy),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
    stop=stop_after_attempt(5),
    before_sleep=_on_retry,
    reraise=True,
)


class Database:
    """Single sqlite handle shared by the session and message stores.

    Every statement runs under one re-entrant lock, which ``transaction()``
    holds until it finishes, so other threads neither write nor read in the
    middle of it. With ``atomic=True`` a transaction commits or rolls back as a
    unit; with ``atomic=False`` every write commits on its own.
    """

    def __init__(self, db_path: str, *, atomic: bool = True):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._atomic = atomic
        self._lock = threading.RLock()
        self._depth = 0
        self._initialize_schema()

    @property
    def atomic(self) -> bool:
        return self._atomic

    @property
    def in_transaction(self) -> bool:
        return self._atomic and self._depth > 0

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return _busy_retry(self._conn.execute)(query, params)
            except (sqlite3.Error, OverflowError) as ex:
                raise StorageError(f"Query failed: {ex}") from ex

    def query(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Run a read and fetch every row while holding the handle lock.

        Another thread's open transaction is never visible: the read waits for
        it to commit or roll back.
        """
        with self._lock:
            try:
                return self.execute(query, params).fetchall()
            except sqlite3.Error as ex:
                raise StorageError(f"Query failed: {ex}") from ex

    def query_one(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        rows = self.query(query, params)
        return rows[0] if rows else None

    def write(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Run a statement that modifies data, committing it unless a transaction is open."""
        with self._lock:
            cursor = self.execute(query, params)
            if not self.in_transaction:
                self._commit_or_rollback()
            return cursor

    def commit(self) -> None:
        try:
            _busy_retry(self._conn.commit)()
        except sqlite3.Error as ex:
            raise StorageError(f"Commit failed: {ex}") from ex

    def rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as ex:
            raise StorageError(f"Rollback failed: {ex}") from ex

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        with self._lock:
            if not self._atomic:
                yield self
                return

            outermost = self._depth == 0
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    logger.debug("Rolling back session transaction")
                    self.rollback()
                raise
            self._depth -= 1
            if outermost:
                self._commit_or_rollback()

    def _commit_or_rollback(self) -> None:
        # a failed commit leaves the implicit transaction open; the next write would commit it
        try:
            self.commit()
        except StorageError:
            logger.warning("Commit failed, rolling back pending session writes")
            self.rollback()
            raise

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS session (
                id INTEGER PRIMARY KEY,
                source TEXT,
                message TEXT,
                timestamp INTEGER,
                sent INTEGER DEFAULT 0,
                received INTEGER DEFAULT 0,
                unread INTEGER DEFAULT 0,
                is_group INTEGER DEFAULT 0,
                group_members TEXT,
                group_id TEXT,
                group_name TEXT,
                has_attachment INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS message (
                id INTEGER PRIMARY KEY,
                session_id INTEGER,
                source TEXT,
                message TEXT,
                timestamp INTEGER,
                sent INTEGER DEFAULT 0,
                received INTEGER DEFAULT 0,
                has_attachment INTEGER DEFAULT 0
            );

            CREATE INDEX IF NOT EXISTS idx_session_source ON session(source);
            CREATE INDEX IF NOT EXISTS idx_session_group_id ON session(group_id);
            CREATE INDEX IF NOT EXISTS idx_session_timestamp ON session(timestamp);
            CREATE INDEX IF NOT EXISTS idx_message_session_timestamp
                ON message(session_id, timestamp);
            """
        )
        self._conn.commit()
