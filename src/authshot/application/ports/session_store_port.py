from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from authshot.domain.model import CookieSet, SessionKey


class SessionStorePort(Protocol):
    """Abstract persistence for browser session cookies."""

    def load(self, key: SessionKey) -> CookieSet | None:
        """
        Returns:
            the stored cookies, or None when absent, expired, unreadable or the store
            is unavailable. Never raises.
        """
        ...

    def save(self, key: SessionKey, cookies: CookieSet, ttl: timedelta) -> bool:
        """Persist cookies for ttl. Returns False (after logging) on failure."""
        ...

    def delete(self, key: SessionKey) -> bool:
        """Drop the stored cookies. Returns False (after logging) on failure."""
        ...
