from __future__ import annotations


class AuthshotError(Exception):
    """Base class for errors surfaced to callers."""


class MissingCredentialsError(AuthshotError):
    """LOGIN_USER / LOGIN_PASS absent. Must be rejected before any login is attempted."""

    def __init__(self, message: str = "Missing LOGIN_USER / LOGIN_PASS in environment") -> None:
        super().__init__(message)


class MissingTargetError(AuthshotError):
    """Neither a target URL nor a login URL was supplied."""


class LoginTimedOutError(AuthshotError):
    """No credential field was found and no completion signal was ever observed."""

    def __init__(self, login_url: str) -> None:
        super().__init__(f"Login at {login_url} did not complete: no credential fields and no completion signal")
        self.login_url = login_url


class SessionStoreError(AuthshotError):
    """Backing key/value store failed on an operation the caller asked for explicitly."""


class InvalidTargetUrlError(AuthshotError):
    """A target URL was supplied but is not an absolute http(s) URL."""
