from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from authshot.application.ports.browser_port import BrowserFactoryPort
from authshot.application.ports.kv_store_port import KeyValueStorePort
from authshot.application.services.completion_detector import CompletionDetector
from authshot.application.services.login_driver import LoginDriver
from authshot.application.services.session_validator import SessionValidator
from authshot.application.use_cases.capture_screenshot import CaptureScreenshotUseCase
from authshot.application.use_cases.clear_session import ClearSessionUseCase
from authshot.application.use_cases.ensure_session import EnsureSessionUseCase
from authshot.config import Settings, settings
from authshot.infrastructure.adapters.browser.playwright_page import PlaywrightBrowserFactory
from authshot.infrastructure.adapters.kv.sqlite_kv import SQLiteKeyValueStore
from authshot.infrastructure.adapters.session.kv_session_store import KeyValueSessionStore
from authshot.logger import EngineLogger


def get_settings() -> Settings:
    return settings


def build_logger(cfg: Settings) -> EngineLogger:
    return EngineLogger("authshot", debug=cfg.debug, secret_keys=cfg.secret_keys)


@lru_cache(maxsize=None)
def _sqlite_kv(db_path: str) -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(db_path=db_path)


def get_kv_store() -> KeyValueStorePort:
    return _sqlite_kv(get_settings().kv_db_path)


def get_browser_factory() -> BrowserFactoryPort:
    cfg = get_settings()
    return PlaywrightBrowserFactory(build_logger(cfg).child("browser"), headless=cfg.headless)


def build_ensure_session(cfg: Settings, kv: KeyValueStorePort) -> EnsureSessionUseCase:
    log = build_logger(cfg)
    return EnsureSessionUseCase(
        store=KeyValueSessionStore(kv, log.child("session_store")),
        validator=SessionValidator(log.child("validator")),
        driver=LoginDriver(log.child("login")),
        detector=CompletionDetector(log.child("detector")),
        log=log.child("ensure_session"),
        ttl=timedelta(days=cfg.session_ttl_days),
    )


def get_ensure_session() -> EnsureSessionUseCase:
    return build_ensure_session(get_settings(), get_kv_store())


def get_capture_use_case() -> CaptureScreenshotUseCase:
    cfg = get_settings()
    kv = get_kv_store()
    return CaptureScreenshotUseCase(
        kv=kv,
        browsers=get_browser_factory(),
        ensure_session=build_ensure_session(cfg, kv),
        log=build_logger(cfg).child("screenshot"),
        credentials=cfg.credentials,
        selectors=cfg.selector_config(),
        cache_ttl=timedelta(hours=cfg.screenshot_ttl_hours),
    )


def get_clear_use_case() -> ClearSessionUseCase:
    cfg = get_settings()
    return ClearSessionUseCase(KeyValueSessionStore(get_kv_store(), build_logger(cfg).child("session_store")))
