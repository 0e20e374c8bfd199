from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from authshot.domain.errors import MissingCredentialsError
from authshot.domain.model import Credentials, SelectorConfig
from authshot.logger import DEFAULT_SECRET_KEYS

# Load .env if present
load_dotenv()


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


def _env_list(name: str, default: frozenset[str]) -> frozenset[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    login_user: str = field(default_factory=lambda: _env("LOGIN_USER"), repr=False)
    login_pass: str = field(default_factory=lambda: _env("LOGIN_PASS"), repr=False)
    login_url: str = field(default_factory=lambda: _env("LOGIN_URL"))
    target_url: str = field(default_factory=lambda: _env("TARGET_URL"))
    user_selector: str = field(default_factory=lambda: _env("LOGIN_USER_SELECTOR"))
    pass_selector: str = field(default_factory=lambda: _env("LOGIN_PASS_SELECTOR"))
    submit_selector: str = field(default_factory=lambda: _env("LOGIN_SUBMIT_SELECTOR"))
    success_selector: str = field(default_factory=lambda: _env("LOGIN_SUCCESS_SELECTOR"))
    widget_selector: str = field(default_factory=lambda: _env("LOGIN_WIDGET_SELECTOR"))
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", True))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))
    secret_keys: frozenset[str] = field(default_factory=lambda: _env_list("LOG_SECRET_KEYS", DEFAULT_SECRET_KEYS))
    kv_db_path: str = field(default_factory=lambda: _env("KV_DB_PATH", ".authshot_kv.sqlite"))
    session_ttl_days: int = field(default_factory=lambda: int(_env("SESSION_TTL_DAYS", "7")))
    screenshot_ttl_hours: int = field(default_factory=lambda: int(_env("SCREENSHOT_TTL_HOURS", "24")))
    headless: bool = field(default_factory=lambda: _env_flag("HEADLESS", True))

    def selector_config(self) -> SelectorConfig:
        return SelectorConfig(
            username=self.user_selector or None,
            password=self.pass_selector or None,
            submit=self.submit_selector or None,
            success=self.success_selector or None,
            widget=self.widget_selector or None,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.login_user and self.login_pass)

    def credentials(self) -> Credentials:
        """Raises MissingCredentialsError when either secret is unset."""
        if not self.has_credentials:
            raise MissingCredentialsError()
        return Credentials(self.login_user, self.login_pass)


settings = Settings()
