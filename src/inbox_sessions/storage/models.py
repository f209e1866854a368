from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class GroupFlag(IntEnum):
    UPDATE = 1
    DELIVER = 2
    QUIT = 3


@dataclass
class Message:
    source: str = ""
    message: str = ""
    timestamp: int = 0
    sent: bool = False
    received: bool = False
    has_attachment: bool = False
    session_id: int = 0
    id: int = 0


@dataclass
class Group:
    id: str
    name: str = ""
    members: list[str] = field(default_factory=list)
    flags: GroupFlag = GroupFlag.DELIVER
