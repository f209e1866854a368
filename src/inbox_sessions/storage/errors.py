from __future__ import annotations


class StorageError(Exception):
    """A query, commit or constraint failure in the session database."""


class PartialFailure(StorageError):
    """A multi-step write where an earlier step committed before a later one failed.

    Only raised when the database runs with ``atomic=False``. ``completed`` names
    the steps that are durable; run ``reconcile`` or retry the missing half.
    """

    def __init__(self, message: str, *, operation: str, session_id: int, completed: tuple[str, ...]):
        super().__init__(message)
        self.operation = operation
        self.session_id = session_id
        self.completed = completed
