"""SQLite WAL-mode key-value store with per-row TTL (the shared cache tier)."""

from __future__ import annotations

import os
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from glorynews.models import CacheEntry


class SqliteCache:
    """Thin SQLite wrapper used as the shared, cross-process cache.

    Every row carries its write timestamp and TTL; expired rows are treated as
    absent and removed on read.  The DB file is created with permissions 0600
    (owner r/w only).
    """

    def __init__(
        self,
        path: str = "~/.glorynews/cache.db",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = str(Path(path).expanduser().resolve())
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._lock = threading.Lock()
        self._conn = self._open()
        self._migrate()

    # ------------------------------------------------------------------
    # Connection helpers
    # ------------------------------------------------------------------

    def _open(self) -> sqlite3.Connection:
        """Open connection; create file with 0600 perms if new."""
        is_new = not Path(self.path).exists()
        conn = sqlite3.connect(self.path, check_same_thread=False)
        if is_new:
            os.chmod(self.path, 0o600)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    def close(self) -> None:
        """Close the underlying connection."""
        if self._conn:
            self._conn.close()

    def __enter__(self) -> "SqliteCache":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _migrate(self) -> None:
        """Create the cache table if it does not yet exist."""
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS cache (
                key          TEXT    PRIMARY KEY,
                value        TEXT    NOT NULL,
                timestamp    REAL    NOT NULL,
                ttl_seconds  INTEGER
            );

            CREATE INDEX IF NOT EXISTS idx_cache_timestamp
                ON cache(timestamp);
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Key-value API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for *key*, or None if missing or expired."""
        with self._lock:
            row = self._conn.execute(
                "SELECT key, value, timestamp, ttl_seconds FROM cache WHERE key = ?",
                (key,),
            ).fetchone()
            if row is None:
                return None
            entry = CacheEntry(**dict(row))
            if entry.is_expired(self._clock()):
                self._conn.execute("DELETE FROM cache WHERE key = ?", (key,))
                self._conn.commit()
                return None
            return entry

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO cache (key, value, timestamp, ttl_seconds)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    timestamp = excluded.timestamp,
                    ttl_seconds = excluded.ttl_seconds
                """,
                (key, value, self._clock(), ttl_seconds),
            )
            self._conn.commit()

    def delete(self, key: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            self._conn.commit()
            return cur.rowcount > 0

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with *prefix*; return the number removed."""
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM cache WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
            self._conn.commit()
            return cur.rowcount

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM cache WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [row["key"] for row in rows]

    def purge_expired(self) -> int:
        """Drop every expired row; return the number removed."""
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM cache WHERE ttl_seconds IS NOT NULL "
                "AND ? - timestamp >= ttl_seconds",
                (self._clock(),),
            )
            self._conn.commit()
            return cur.rowcount

    def get_stats(self) -> Dict[str, Any]:
        """Return entry counts and the newest write time."""
        with self._lock:
            total = self._conn.execute("SELECT COUNT(*) FROM cache").fetchone()[0]
            expired = self._conn.execute(
                "SELECT COUNT(*) FROM cache WHERE ttl_seconds IS NOT NULL "
                "AND ? - timestamp >= ttl_seconds",
                (self._clock(),),
            ).fetchone()[0]
            newest = self._conn.execute("SELECT MAX(timestamp) FROM cache").fetchone()[0]
        return {
            "entries": total,
            "expired": expired,
            "last_write": newest,
            "path": self.path,
        }
