from __future__ import annotations

from datetime import datetime, timedelta

from authshot.application.ports.clock_port import Clock, SystemClock
from authshot.application.ports.kv_store_port import KeyValueStorePort


class MemoryKeyValueStore(KeyValueStorePort):
    """Simple in-memory store for development and tests. Not persistent."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._data: dict[str, tuple[bytes, datetime]] = {}

    def get(self, key: str) -> bytes | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock.now() >= expires_at:
            del self._data[key]
            return None
        return value

    def put(self, key: str, value: bytes, *, ttl: timedelta) -> None:
        self._data[key] = (bytes(value), self.clock.now() + ttl)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
