from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# =========================
# Value Objects
# =========================
COOKIE_KEY_PREFIX = "cookies:"


class SessionKey(str):
    """Value Object for the store key of a login URL's cookies."""

    def __new__(cls, value: str) -> "SessionKey":
        assert value, "SessionKey must not be empty"
        return str.__new__(cls, value)

    @classmethod
    def for_login_url(cls, login_url: str) -> "SessionKey":
        return cls(f"{COOKIE_KEY_PREFIX}{login_url}")


@dataclass(frozen=True)
class Credentials:
    username: str = field(repr=False)
    password: str = field(repr=False)

    def __repr__(self) -> str:
        return "Credentials(username='****', password='****')"


DEFAULT_USERNAME_SELECTOR = 'input[name="email"], input[name="username"], #username'
DEFAULT_PASSWORD_SELECTOR = 'input[name="password"], #password'
# Auth0 Lock submit first, then a plain submit button, then the escaped "1-submit" id
DEFAULT_SUBMIT_SELECTOR = '.auth0-lock-submit, button[type="submit"], #\\31 -submit'
DEFAULT_WIDGET_SELECTOR = ".auth0-lock-container"
DEFAULT_SUCCESS_INDICATOR = ".profile-avatar"


@dataclass(frozen=True)
class SelectorConfig:
    """CSS selectors used to drive one login attempt.

    Any field left as ``None`` (or empty) falls back to the module defaults, which cover
    the common ``email``/``username``/``password`` field names and the Auth0 Lock widget.
    ``success`` has no default: when unset, completion is detected by navigation only and
    session validation uses ``DEFAULT_SUCCESS_INDICATOR``.
    """

    username: str | None = None
    password: str | None = None
    submit: str | None = None
    success: str | None = None
    widget: str | None = None

    @property
    def username_selector(self) -> str:
        return self.username or DEFAULT_USERNAME_SELECTOR

    @property
    def password_selector(self) -> str:
        return self.password or DEFAULT_PASSWORD_SELECTOR

    @property
    def submit_selector(self) -> str:
        return self.submit or DEFAULT_SUBMIT_SELECTOR

    @property
    def widget_selector(self) -> str:
        return self.widget or DEFAULT_WIDGET_SELECTOR

    @property
    def success_selector(self) -> str | None:
        return self.success or None


@dataclass(frozen=True)
class LoginTimeouts:
    """Bounded waits, in milliseconds."""

    widget: float = 5_000
    username_field: float = 15_000
    navigation: float = 15_000
    success_selector: float = 15_000
    submit_click: float = 5_000
    relay_navigation: float = 30_000
    destination: float = 30_000
    network_idle: float = 15_000


# =========================
# Entities
# =========================
@dataclass(frozen=True)
class Cookie:
    name: str
    value: str = field(repr=False)
    domain: str = ""
    path: str = "/"
    expires: float = -1
    http_only: bool = False
    secure: bool = False
    same_site: str | None = None

    @classmethod
    def from_browser(cls, raw: Mapping[str, Any]) -> "Cookie":
        return cls(
            name=str(raw["name"]),
            value=str(raw.get("value", "")),
            domain=str(raw.get("domain", "")),
            path=str(raw.get("path") or "/"),
            expires=float(raw.get("expires", -1)),
            http_only=bool(raw.get("httpOnly", False)),
            secure=bool(raw.get("secure", False)),
            same_site=raw.get("sameSite"),
        )

    def to_browser(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }
        if self.same_site:
            out["sameSite"] = self.same_site
        return out


class CookieSet:
    """Ordered, immutable collection of cookies captured from one browser context."""

    __slots__ = ("_cookies",)

    def __init__(self, cookies: Iterable[Cookie] = ()) -> None:
        self._cookies: tuple[Cookie, ...] = tuple(cookies)

    @classmethod
    def from_browser(cls, raw: Iterable[Mapping[str, Any]]) -> "CookieSet":
        return cls(Cookie.from_browser(c) for c in raw)

    def to_browser(self) -> list[dict[str, Any]]:
        return [c.to_browser() for c in self._cookies]

    @classmethod
    def from_json(cls, text: str) -> "CookieSet":
        data = json.loads(text or "[]")
        if not isinstance(data, list):
            raise ValueError("cookie payload must be a JSON array")
        return cls.from_browser(data)

    def to_json(self) -> str:
        return json.dumps(self.to_browser())

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._cookies]

    def __iter__(self) -> Iterator[Cookie]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __bool__(self) -> bool:
        return bool(self._cookies)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieSet):
            return NotImplemented
        return self._cookies == other._cookies

    def __repr__(self) -> str:
        return f"CookieSet(names={self.names!r})"


@dataclass(frozen=True)
class PersistedSession:
    key: SessionKey
    cookies: CookieSet
    expires_at: datetime


@dataclass
class LoginAttempt:
    """State of one fresh login. Lives for a single ``ensure`` call, never persisted."""

    login_url: str
    expected_destination: str | None
    selectors: SelectorConfig
    succeeded: bool | None = None
    final_url: str | None = None
    reason: str = ""

    def succeed(self, final_url: str | None) -> None:
        self.succeeded = True
        self.final_url = final_url

    def fail(self, reason: str) -> None:
        self.succeeded = False
        self.reason = reason
