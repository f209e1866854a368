from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from loguru import logger


@dataclass
class AppConfig:
    database_path: str
    atomic_writes: bool
    settings_path: str
    contacts_path: str | None
    log_level: str
    log_consumers: list | None


@dataclass
class Settings:
    """User preferences persisted next to the session database."""

    incognito: bool = False
    enable_notify: bool = True
    show_notify_message: bool = False
    encrypt_database: bool = True
    save_attachments: bool = True
    country_code: str = ""

    def set_default(self) -> None:
        defaults = Settings()
        for f in fields(self):
            setattr(self, f.name, getattr(defaults, f.name))

    def load(self, path: str) -> None:
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a JSON object: {path}")

        known = {f.name for f in fields(self)}
        for key, value in data.items():
            if key not in known:
                logger.debug(f"Ignoring unknown setting: {key!r}")
                continue
            if key == "country_code":
                setattr(self, key, str(value))
            else:
                setattr(self, key, _to_bool(value))

    def save(self, path: str) -> None:
        settings_path = Path(path)
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(settings_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(asdict(self), f, indent=2)
        os.chmod(settings_path, 0o600)


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict) -> AppConfig:
    database_path = os.environ.get("INBOX_DB_PATH") or config.get("DatabasePath", ".inbox/sessions.db")
    return AppConfig(
        database_path=str(database_path),
        atomic_writes=_to_bool(config.get("AtomicWrites", True), default=True),
        settings_path=str(config.get("SettingsPath", ".inbox/settings.json")),
        contacts_path=str(config.get("ContactsPath", "")).strip() or None,
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )
