from __future__ import annotations

from datetime import timedelta
from typing import Protocol


class KeyValueStorePort(Protocol):
    """Key/value persistence with per-entry time-to-live.

    Every operation may raise when the backing store is unavailable.
    """

    def get(self, key: str) -> bytes | None:
        """Returns the stored value, or None when absent or expired."""
        ...

    def put(self, key: str, value: bytes, *, ttl: timedelta) -> None:
        """Stores value; it stops being readable once ttl has elapsed."""
        ...

    def delete(self, key: str) -> None: ...
