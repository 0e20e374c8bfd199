from __future__ import annotations

from authshot.application.ports.session_store_port import SessionStorePort
from authshot.domain.errors import MissingTargetError, SessionStoreError
from authshot.domain.model import SessionKey


class ClearSessionUseCase:
    """Forgets the cached cookies of a login URL."""

    def __init__(self, store: SessionStorePort) -> None:
        self.store = store

    def execute(self, login_url: str | None) -> SessionKey:
        if not login_url:
            raise MissingTargetError("Missing login URL for clearing cookies")
        key = SessionKey.for_login_url(login_url)
        if not self.store.delete(key):
            raise SessionStoreError(f"Failed to clear cookies for {login_url}")
        return key
