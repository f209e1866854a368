from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from inbox_sessions.storage.database import Database


@dataclass(frozen=True)
class ReconcileReport:
    orphaned_messages: int
    refreshed_previews: int


def reconcile(db: Database) -> ReconcileReport:
    """Repair state left behind by non-atomic partial failures. Safe to run repeatedly.

    Messages whose session no longer exists are deleted, and sessions whose
    newest stored message is newer than their preview take that message as
    their preview.
    """
    with db.transaction():
        cursor = db.write(
            """
            DELETE FROM message
            WHERE session_id IS NULL
               OR session_id NOT IN (SELECT id FROM session)
            """
        )
        orphaned = max(0, cursor.rowcount)

        stale = db.query(
            """
            SELECT s.id AS session_id, m.message, m.timestamp, m.sent, m.received, m.has_attachment
            FROM session AS s
            JOIN message AS m ON m.id = (
                SELECT m2.id
                FROM message AS m2
                WHERE m2.session_id = s.id
                ORDER BY m2.timestamp DESC, m2.id DESC
                LIMIT 1
            )
            WHERE m.timestamp > s.timestamp
            """
        )
        for row in stale:
            db.write(
                """
                UPDATE session
                SET message = ?, timestamp = ?, sent = ?, received = ?, has_attachment = ?
                WHERE id = ?
                """,
                (
                    row["message"],
                    row["timestamp"],
                    row["sent"],
                    row["received"],
                    row["has_attachment"],
                    row["session_id"],
                ),
            )

    if orphaned or stale:
        logger.info(f"Reconciled sessions: removed {orphaned} orphaned messages, refreshed {len(stale)} previews")
    return ReconcileReport(orphaned_messages=orphaned, refreshed_previews=len(stale))
