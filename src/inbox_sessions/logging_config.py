"""Loguru sinks for the session database, configured from ``AppConfig``.

Storage code binds ``session_id`` on records that concern one conversation;
the ``sessions`` consumer keeps only those, giving a per-session write history
next to the database.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

from inbox_sessions.app_config import AppConfig

_DEFAULT_LOG_DIR = Path(".inbox")

_DEFAULT_CONSUMERS: list[dict[str, Any]] = [
    {"type": "console", "level": "WARNING"},
]


def log_directory(app: AppConfig) -> Path:
    """Logs live beside the session database; in-memory databases fall back to ``.inbox/``."""
    if app.database_path == ":memory:":
        return _DEFAULT_LOG_DIR
    return Path(app.database_path).parent


def _has_session(record: dict) -> bool:
    return "session_id" in record["extra"]


def _add_console(app: AppConfig, level: str, options: dict[str, Any]) -> str:
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level:<8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
    )
    return f"console (stderr, {level})"


def _add_file(app: AppConfig, level: str, options: dict[str, Any]) -> str:
    path = Path(options.get("path") or log_directory(app) / "inbox.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(path),
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}",
        rotation=options.get("rotation", "5 MB"),
        retention=options.get("retention", 3),
    )
    return f"file ({path}, {level})"


def _add_sessions(app: AppConfig, level: str, options: dict[str, Any]) -> str:
    path = Path(options.get("path") or log_directory(app) / "sessions.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(path),
        level=level,
        filter=_has_session,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | session {extra[session_id]} | {level:<8} | {message}",
        rotation=options.get("rotation", "5 MB"),
        retention=options.get("retention", 3),
    )
    return f"sessions ({path}, {level})"


_CONSUMERS: dict[str, Callable[[AppConfig, str, dict[str, Any]], str]] = {
    "console": _add_console,
    "file": _add_file,
    "sessions": _add_sessions,
}


def setup_logging(app: AppConfig) -> list[str]:
    """Replace loguru's sinks with the consumers named in ``app.log_consumers``."""
    logger.remove()

    consumers = app.log_consumers if app.log_consumers is not None else _DEFAULT_CONSUMERS
    descriptions: list[str] = []

    for config in consumers:
        sink_type = config.get("type", "")
        add = _CONSUMERS.get(sink_type)
        if add is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue

        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        descriptions.append(add(app, config.get("level", app.log_level), options))

    return descriptions
