import json
import os
import shutil
import stat
import unittest
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

from inbox_sessions.app_config import Settings, parse_app_config

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class ParseAppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            app = parse_app_config({})
        self.assertEqual(".inbox/sessions.db", app.database_path)
        self.assertTrue(app.atomic_writes)
        self.assertIsNone(app.contacts_path)
        self.assertEqual("INFO", app.log_level)
        self.assertIsNone(app.log_consumers)

    def test_values_and_boolean_strings(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            app = parse_app_config(
                {
                    "DatabasePath": "data/s.db",
                    "AtomicWrites": "off",
                    "ContactsPath": " contacts.json ",
                    "LogLevel": "DEBUG",
                    "LogConsumers": [{"type": "console"}],
                }
            )
        self.assertEqual("data/s.db", app.database_path)
        self.assertFalse(app.atomic_writes)
        self.assertEqual("contacts.json", app.contacts_path)
        self.assertEqual([{"type": "console"}], app.log_consumers)

    def test_environment_overrides_database_path(self) -> None:
        with patch.dict(os.environ, {"INBOX_DB_PATH": "/tmp/env.db"}):
            app = parse_app_config({"DatabasePath": "data/s.db"})
        self.assertEqual("/tmp/env.db", app.database_path)


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"settings-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_save_and_load(self) -> None:
        path = str(self._tmp_dir / "settings.json")
        settings = Settings(incognito=True, country_code="31")
        settings.save(path)

        loaded = Settings()
        loaded.load(path)
        self.assertEqual(settings, loaded)
        self.assertEqual(0o600, stat.S_IMODE(os.stat(path).st_mode))

    def test_load_ignores_unknown_keys(self) -> None:
        path = self._tmp_dir / "settings.json"
        path.write_text(json.dumps({"enable_notify": "no", "theme": "dark"}))

        settings = Settings()
        settings.load(str(path))
        self.assertFalse(settings.enable_notify)
        self.assertFalse(hasattr(settings, "theme"))

    def test_load_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            Settings().load(str(self._tmp_dir / "missing.json"))

    def test_set_default(self) -> None:
        settings = Settings(incognito=True, enable_notify=False, country_code="1")
        settings.set_default()
        self.assertEqual(Settings(), settings)
        self.assertTrue(settings.encrypt_database)
        self.assertTrue(settings.save_attachments)


if __name__ == "__main__":
    unittest.main()
