from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class ContactDirectory(Protocol):
    def name(self, identifier: str) -> str: ...


class Contacts:
    """Maps sender or group identifiers to display names.

    Unknown identifiers resolve to themselves, so a lookup never fails.
    """

    def __init__(self, entries: dict[str, str] | None = None):
        self._entries = {self._normalize(k): v for k, v in (entries or {}).items()}

    @classmethod
    def from_file(cls, path: str) -> Contacts:
        contacts_path = Path(path)
        if not contacts_path.exists():
            logger.warning(f"Contacts file not found: {path}")
            return cls()
        with open(contacts_path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.warning(f"Ignoring contacts file {path}: expected a JSON object")
            return cls()
        return cls({str(k): str(v) for k, v in data.items()})

    def name(self, identifier: str) -> str:
        found = self._entries.get(self._normalize(identifier))
        if found:
            return found
        return identifier

    def _normalize(self, identifier: str) -> str:
        return "".join(identifier.split())
