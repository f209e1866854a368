from inbox_sessions.storage import reconcile, session_store
from tests.storage.base import SessionDatabaseTestCase


class ReconcileTests(SessionDatabaseTestCase):
    atomic = False

    def test_removes_orphaned_messages(self) -> None:
        session = self._model.add(self._db, self._message("a", "kept", 1))
        self._db.write("INSERT INTO message (session_id, source, message, timestamp) VALUES (999, 'x', 'orphan', 1)")
        self._db.write("INSERT INTO message (session_id, source, message, timestamp) VALUES (NULL, 'x', 'loose', 1)")

        report = reconcile(self._db)

        self.assertEqual(2, report.orphaned_messages)
        self.assertEqual(1, self._count("SELECT COUNT(*) FROM message"))
        self.assertEqual(1, self._count("SELECT COUNT(*) FROM message WHERE session_id = ?", (session.id,)))

    def test_refreshes_stale_preview(self) -> None:
        session = self._model.add(self._db, self._message("a", "old", 100))
        self._db.write(
            "INSERT INTO message (session_id, source, message, timestamp, received) VALUES (?, 'a', 'newer', 200, 1)",
            (session.id,),
        )

        report = reconcile(self._db)

        self.assertEqual(1, report.refreshed_previews)
        stored = session_store.fetch_by_id(self._db, session.id).session
        self.assertEqual("newer", stored.message)
        self.assertEqual(200, stored.timestamp)
        self.assertTrue(stored.received)

    def test_is_idempotent(self) -> None:
        self._model.add(self._db, self._message("a", "x", 1))
        self._db.write("INSERT INTO message (session_id, source, message, timestamp) VALUES (999, 'x', 'orphan', 1)")

        reconcile(self._db)
        second = reconcile(self._db)

        self.assertEqual(0, second.orphaned_messages)
        self.assertEqual(0, second.refreshed_previews)
