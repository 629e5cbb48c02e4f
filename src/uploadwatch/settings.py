"""
Persistence of the watcher configuration via a SQLite key-value table.
"""

import json
import logging
import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import WatcherConfig
from .exceptions import SettingsError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "UPLOADWATCH_DATA_DIR"
DB_FILENAME = "uploadwatch.db"


def get_app_data_dir() -> Path:
    """Get platform-specific application data directory."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        app_dir = Path(override)
    else:
        if sys.platform == "win32":
            base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        app_dir = base / "uploadwatch"

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_default_db_path() -> Path:
    return get_app_data_dir() / DB_FILENAME


class SettingsManager:
    """Manages the watcher configuration stored in uploadwatch.db."""

    def __init__(self, db_path: Optional[Path] = None):
        self._db_path = Path(db_path) if db_path else get_default_db_path()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a setting value by key."""
        try:
            with self._connect() as conn:
                self._ensure_table(conn)
                row = conn.execute(
                    "SELECT value FROM settings WHERE key = ?", (key,)
                ).fetchone()
                return row["value"] if row else default
        except sqlite3.Error as e:
            raise SettingsError(f"Failed to read setting {key}: {e}") from e

    def set(self, key: str, value: Optional[str]) -> None:
        """Set a setting value; None deletes it."""
        try:
            with self._connect() as conn:
                self._ensure_table(conn)
                if value is None:
                    conn.execute("DELETE FROM settings WHERE key = ?", (key,))
                else:
                    conn.execute(
                        "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                        (key, value),
                    )
        except sqlite3.Error as e:
            raise SettingsError(f"Failed to write setting {key}: {e}") from e

    def get_all(self) -> Dict[str, str]:
        """Get all settings as a dict."""
        try:
            with self._connect() as conn:
                self._ensure_table(conn)
                rows = conn.execute("SELECT key, value FROM settings").fetchall()
                return {row["key"]: row["value"] for row in rows}
        except sqlite3.Error as e:
            raise SettingsError(f"Failed to read settings: {e}") from e

    # --- Watcher configuration ---

    def load_config(self) -> WatcherConfig:
        """
        Load the stored configuration.

        Missing keys keep their defaults; values that fail to decode are
        logged and ignored.

        Returns:
            The stored configuration merged over the defaults
        """
        values: Dict[str, Any] = {}
        for key, raw in self.get_all().items():
            try:
                values[key] = json.loads(raw)
            except ValueError:
                logger.warning(f"Ignoring unreadable setting {key}={raw!r}")
        return WatcherConfig.from_dict(values)

    def save_config(self, config: WatcherConfig) -> None:
        """Store every field of the configuration."""
        for key, value in config.to_dict().items():
            self.set(key, json.dumps(value))
        logger.info(f"Saved settings to {self._db_path}")

    def update_config(self, **changes: Any) -> WatcherConfig:
        """
        Change selected fields of the stored configuration.

        Raises:
            SettingsError: If a field name is unknown

        Returns:
            The updated configuration
        """
        config = self.load_config()
        known = config.to_dict()
        for key, value in changes.items():
            if key not in known:
                raise SettingsError(f"Unknown setting: {key}")
            setattr(config, key, value)
        self.save_config(config)
        return config
