from inbox_sessions.storage import message_store, session_store
from inbox_sessions.storage.database import Database
from inbox_sessions.storage.errors import PartialFailure, StorageError
from inbox_sessions.storage.models import Group, GroupFlag, Message
from inbox_sessions.storage.reconcile import ReconcileReport, reconcile
from inbox_sessions.storage.session import Session
from inbox_sessions.storage.session_model import SessionModel
from inbox_sessions.storage.session_store import Absent, Found

__all__ = [
    "Absent",
    "Database",
    "Found",
    "Group",
    "GroupFlag",
    "Message",
    "PartialFailure",
    "ReconcileReport",
    "Session",
    "SessionModel",
    "StorageError",
    "message_store",
    "reconcile",
    "session_store",
]
