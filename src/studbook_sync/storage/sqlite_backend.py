"""SQLite key-value backend for the durable local cache."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from studbook_sync.errors import BackendError
from studbook_sync.storage.base import KeyValueBackend
from studbook_sync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY);
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteBackend(KeyValueBackend):
    """SQLite-based durable key-value store.

    Reads and writes are synchronous so that a local save has reached disk
    before the caller schedules its remote push.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve()
        self._conn: sqlite3.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        """Open the database and create the schema if needed."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self._db_path)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.executescript(SCHEMA)
            row = self._conn.execute("SELECT version FROM schema_version").fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise BackendError(f"Cannot open local store at {self._db_path}: {e}") from e

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    def read(self, key: str) -> str | None:
        conn = self._ensure_conn()
        try:
            row = conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Read of {key!r} failed: {e}") from e
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        conn = self._ensure_conn()
        try:
            conn.execute(
                """INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                (key, value, utcnow().isoformat()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise BackendError(f"Write of {key!r} failed: {e}") from e

    def remove(self, key: str) -> None:
        conn = self._ensure_conn()
        try:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise BackendError(f"Delete of {key!r} failed: {e}") from e

    def keys(self) -> list[str]:
        conn = self._ensure_conn()
        try:
            rows = conn.execute("SELECT key FROM kv_entries ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise BackendError(f"Key scan failed: {e}") from e
        return [row[0] for row in rows]
