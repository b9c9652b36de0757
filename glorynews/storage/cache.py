"""Two-tier cache: in-process envelopes in front of the shared SQLite store."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from typing import Any, Callable, Dict, Optional

from glorynews.storage.database import SqliteCache

logger = logging.getLogger(__name__)

Validator = Callable[[Any], Optional[Any]]


class LocalCache:
    """Process-local cache of ``{"data", "timestamp"}`` envelopes.

    There is no native expiry: :meth:`get` compares the envelope timestamp
    against ``max_age`` and evicts stale entries.
    """

    def __init__(self, max_age: float = 300, clock: Callable[[], float] = time.time) -> None:
        self.max_age = max_age
        self._clock = clock
        self._store: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        envelope = self._store.get(key)
        if envelope is None:
            return None
        if self._clock() - envelope["timestamp"] >= self.max_age:
            self._store.pop(key, None)
            return None
        return envelope["data"]

    def set(self, key: str, data: Any) -> None:
        self._store[key] = {"data": data, "timestamp": self._clock()}

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._store if k.startswith(prefix)]
        for k in doomed:
            del self._store[k]
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._store


class TwoTierCache:
    """Read local, then shared; write through to both.

    Values are JSON-compatible Python objects.  ``get`` accepts a validator
    that returns the trusted value or None; a value rejected at one tier is
    dropped from that tier and the lookup continues at the next.

    SQLite errors from the shared tier (locked database, read-only or full
    disk) are logged as ``cache_error`` and never raised: a failed read is a
    miss, a failed write or delete leaves the local tier updated.
    """

    def __init__(self, local: LocalCache, shared: SqliteCache) -> None:
        self.local = local
        self.shared = shared

    async def get(self, key: str, validator: Optional[Validator] = None) -> Optional[Any]:
        data = self.local.get(key)
        if data is not None:
            value = validator(data) if validator else data
            if value is not None:
                logger.debug("cache_hit", extra={"key": key, "tier": "local"})
                return value
            logger.warning("cache_invalid", extra={"key": key, "tier": "local"})
            self.local.delete(key)

        entry = self._shared("get", key, lambda: self.shared.get(key))
        if entry is None:
            logger.debug("cache_miss", extra={"key": key})
            return None
        try:
            data = json.loads(entry.value)
        except ValueError:
            logger.warning("cache_corrupt", extra={"key": key, "tier": "shared"})
            self._shared("delete", key, lambda: self.shared.delete(key))
            return None
        value = validator(data) if validator else data
        if value is None:
            logger.warning("cache_invalid", extra={"key": key, "tier": "shared"})
            self._shared("delete", key, lambda: self.shared.delete(key))
            return None
        logger.debug("cache_hit", extra={"key": key, "tier": "shared"})
        self.local.set(key, data)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        self.local.set(key, value)
        payload = json.dumps(value, separators=(",", ":"))
        self._shared("set", key, lambda: self.shared.set(key, payload, ttl_seconds))

    async def invalidate(self, key: str) -> None:
        self.local.delete(key)
        self._shared("delete", key, lambda: self.shared.delete(key))

    async def invalidate_prefix(self, prefix: str) -> int:
        removed_local = self.local.delete_prefix(prefix)
        removed_shared = self._shared(
            "delete_prefix", prefix, lambda: self.shared.delete_prefix(prefix), default=0
        )
        return max(removed_local, removed_shared)

    def close(self) -> None:
        self.shared.close()

    def _shared(self, operation: str, key: str, call: Callable[[], Any], default: Any = None) -> Any:
        try:
            return call()
        except sqlite3.Error as exc:
            logger.error(
                "cache_error",
                extra={"operation": operation, "key": key, "tier": "shared", "error": str(exc)},
            )
            return default
