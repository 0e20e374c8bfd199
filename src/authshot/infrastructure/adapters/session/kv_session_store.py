from __future__ import annotations

from datetime import timedelta

from authshot.application.ports.kv_store_port import KeyValueStorePort
from authshot.application.ports.session_store_port import SessionStorePort
from authshot.domain.model import CookieSet, SessionKey
from authshot.logger import EngineLogger


class KeyValueSessionStore(SessionStorePort):
    """Session cookies kept as JSON text in a key/value store.

    Caching is an optimization: load failures read as "no session" and save/delete
    failures are logged and reported through the return value only.
    """

    def __init__(self, kv: KeyValueStorePort, log: EngineLogger | None = None) -> None:
        self.kv = kv
        self.log = log or EngineLogger("authshot.session_store")

    def load(self, key: SessionKey) -> CookieSet | None:
        try:
            raw = self.kv.get(key)
        except Exception as e:
            self.log.warning("session store: load failed, treating as absent", key=key, error=str(e))
            return None
        if not raw:
            self.log.debug("session store: no saved cookies", key=key)
            return None
        try:
            cookies = CookieSet.from_json(raw.decode("utf-8"))
        except (ValueError, KeyError, TypeError) as e:
            self.log.warning("session store: saved cookies unreadable, treating as absent", key=key, error=str(e))
            return None
        if not cookies:
            return None
        self.log.debug("session store: found saved cookies", key=key, count=len(cookies))
        return cookies

    def save(self, key: SessionKey, cookies: CookieSet, ttl: timedelta) -> bool:
        try:
            self.kv.put(key, cookies.to_json().encode("utf-8"), ttl=ttl)
        except Exception as e:
            self.log.warning("session store: failed to save cookies", key=key, error=str(e))
            return False
        self.log.info("session store: saved cookies", key=key, count=len(cookies), ttl_seconds=int(ttl.total_seconds()))
        return True

    def delete(self, key: SessionKey) -> bool:
        try:
            self.kv.delete(key)
        except Exception as e:
            self.log.warning("session store: failed to delete cookies", key=key, error=str(e))
            return False
        self.log.info("session store: cleared cookies", key=key)
        return True
