from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from authshot.application.ports.clock_port import Clock, SystemClock
from authshot.application.ports.kv_store_port import KeyValueStorePort

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
  key TEXT PRIMARY KEY,
  value BLOB NOT NULL,
  expires_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS kv_expires_at ON kv (expires_at);
"""

# "database is locked" under concurrent writers
_locked_retry = retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=0.1, max=1),
    retry=retry_if_exception_type(sqlite3.OperationalError),
)


class SQLiteKeyValueStore(KeyValueStorePort):
    """SQLite-backed key/value store with per-entry expiry.

    File path configurable; creates schema on first use. Expired rows are hidden
    from reads and removed lazily.
    """

    def __init__(self, db_path: str = ".authshot_kv.sqlite", clock: Clock | None = None) -> None:
        self._path = Path(db_path)
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def _now_iso(self) -> str:
        return self.clock.now().astimezone(UTC).isoformat()

    @_locked_retry
    def get(self, key: str) -> bytes | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value, expires_at FROM kv WHERE key=?", (key,)
            ).fetchone()
            if not row:
                return None
            value, expires_iso = row
            expires = datetime.fromisoformat(expires_iso)
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=UTC)
            if self.clock.now() >= expires:
                self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
                self._conn.commit()
                return None
            return bytes(value)

    @_locked_retry
    def put(self, key: str, value: bytes, *, ttl: timedelta) -> None:
        expires_iso = (self.clock.now() + ttl).astimezone(UTC).isoformat()
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv (key, value, expires_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, expires_at=excluded.expires_at",
                (key, sqlite3.Binary(value), expires_iso),
            )
            self._conn.commit()

    @_locked_retry
    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
            self._conn.commit()

    def purge_expired(self) -> int:
        """Deletes every expired row. Returns how many were removed."""
        with self._lock:
            cur = self._conn.execute("DELETE FROM kv WHERE expires_at <= ?", (self._now_iso(),))
            self._conn.commit()
            return cur.rowcount

    def close(self) -> None:
        self._conn.close()
