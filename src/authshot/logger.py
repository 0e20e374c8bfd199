"""Logging for the session engine.

Every message carries optional keyword metadata that is rendered as JSON after the
secret-masking rule runs, so credential values never reach a handler at any level.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Mapping
from typing import Any

REDACTED = "****"
DEFAULT_SECRET_KEYS: frozenset[str] = frozenset({"LOGIN_PASS", "LOGIN_USER", "PASSWORD", "PASSWD"})


def normalize_secret_keys(keys: Iterable[str]) -> frozenset[str]:
    return frozenset(k.strip().upper() for k in keys if k and k.strip())


def mask_secrets(meta: Mapping[str, Any], secret_keys: Iterable[str] = DEFAULT_SECRET_KEYS) -> dict[str, Any]:
    """Returns a copy of meta with every secret-designated field replaced by REDACTED.

    Field names are compared case-insensitively against secret_keys.
    """
    keys = normalize_secret_keys(secret_keys)
    masked: dict[str, Any] = {}
    for name, value in meta.items():
        if str(name).upper() in keys:
            masked[name] = REDACTED
        else:
            masked[name] = value
    return masked


class EngineLogger:
    """Thin wrapper over a stdlib logger that masks metadata and honours the debug toggle.

    ``debug=False`` silences this logger completely (the ``DEBUG=false`` switch).
    """

    def __init__(
        self,
        name: str = "authshot",
        *,
        debug: bool = True,
        secret_keys: Iterable[str] = DEFAULT_SECRET_KEYS,
    ) -> None:
        self._logger = logging.getLogger(name)
        self.enabled = debug
        self.secret_keys = normalize_secret_keys(secret_keys)

    def child(self, suffix: str) -> "EngineLogger":
        return EngineLogger(f"{self._logger.name}.{suffix}", debug=self.enabled, secret_keys=self.secret_keys)

    def log(self, level: int, message: str, **meta: Any) -> None:
        if not self.enabled:
            return
        if meta:
            rendered = json.dumps(mask_secrets(meta, self.secret_keys), default=str)
            self._logger.log(level, "%s %s", message, rendered)
        else:
            self._logger.log(level, "%s", message)

    def debug(self, message: str, **meta: Any) -> None:
        self.log(logging.DEBUG, message, **meta)

    def info(self, message: str, **meta: Any) -> None:
        self.log(logging.INFO, message, **meta)

    def warning(self, message: str, **meta: Any) -> None:
        self.log(logging.WARNING, message, **meta)

    def error(self, message: str, **meta: Any) -> None:
        self.log(logging.ERROR, message, **meta)


def configure_logging(log_level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(
        fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)
