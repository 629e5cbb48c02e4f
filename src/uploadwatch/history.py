"""SQLite-backed persistence of the batch list between runs."""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List

from .exceptions import HistoryError
from .models import BatchView

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Stores batch views in a SQLite table.

    Each save replaces the stored list with the given one, so the table
    always mirrors the registry at the time of the last save.
    """

    def __init__(self, db_path: Path, table_name: str = "batch_history"):
        """
        Initialize the history store.

        Args:
            db_path: Path to the SQLite database file
            table_name: Name of the table holding the history
        """
        self.db_path = Path(db_path)
        self.table_name = table_name
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path), isolation_level=None)

    def _init_db(self) -> None:
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = self._connect()
            try:
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.table_name} (
                        id TEXT PRIMARY KEY,
                        start_time REAL NOT NULL,
                        payload TEXT NOT NULL
                    )
                """)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise HistoryError(f"Cannot open history database {self.db_path}: {e}") from e

    def save(self, views: Iterable[BatchView]) -> int:
        """
        Replace the stored history.

        Args:
            views: Batches to store

        Returns:
            Number of batches written
        """
        rows = [(v.id, v.start_time, json.dumps(v.to_dict())) for v in views]

        with self._lock:
            conn = self._connect()
            try:
                conn.execute("BEGIN")
                try:
                    conn.execute(f"DELETE FROM {self.table_name}")
                    conn.executemany(
                        f"INSERT INTO {self.table_name} (id, start_time, payload) VALUES (?, ?, ?)",
                        rows,
                    )
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as e:
                raise HistoryError(f"Failed to save history: {e}") from e
            finally:
                conn.close()

        logger.debug(f"Saved {len(rows)} batch(es) to history")
        return len(rows)

    def load(self) -> List[BatchView]:
        """
        Load the stored history, newest first.

        Rows that cannot be decoded are skipped.

        Returns:
            Stored batch views
        """
        with self._lock:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT id, payload FROM {self.table_name} ORDER BY start_time DESC"
                ).fetchall()
            except sqlite3.Error as e:
                raise HistoryError(f"Failed to load history: {e}") from e
            finally:
                conn.close()

        views = []
        for batch_id, payload in rows:
            try:
                views.append(BatchView.from_dict(json.loads(payload)))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable history entry {batch_id}: {e}")
        return views

    def clear(self) -> None:
        """Delete all stored history."""
        with self._lock:
            conn = self._connect()
            try:
                conn.execute(f"DELETE FROM {self.table_name}")
            except sqlite3.Error as e:
                raise HistoryError(f"Failed to clear history: {e}") from e
            finally:
                conn.close()
