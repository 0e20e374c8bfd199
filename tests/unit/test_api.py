from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from authshot.application.use_cases.capture_screenshot import CaptureScreenshotUseCase
from authshot.application.use_cases.clear_session import ClearSessionUseCase
from authshot.application.use_cases.ensure_session import EnsureSessionResult
from authshot.config import Settings
from authshot.domain.errors import LoginTimedOutError
from authshot.domain.model import Cookie, CookieSet, SessionKey
from authshot.infrastructure.adapters.kv.memory_kv import MemoryKeyValueStore
from authshot.infrastructure.adapters.session.kv_session_store import KeyValueSessionStore
from authshot.logger import EngineLogger
from authshot.presentation.api.main import app
from authshot.presentation.dependencies import (
    get_browser_factory,
    get_capture_use_case,
    get_clear_use_case,
    get_ensure_session,
    get_settings,
)
from tests.unit._fakes_auth import APP_URL, LOGIN_URL, BrokenKV
from tests.unit._fakes_browser import FakeBrowserFactory, FakePage

CONFIGURED = Settings(login_user="alice", login_pass="pw", login_url="", target_url="")


class StubEnsureSession:
    def __init__(self, raises: Exception | None = None) -> None:
        self.raises = raises

    async def execute(self, page, login_url, credentials, *, selectors=None, expected_destination=None):
        if self.raises:
            raise self.raises
        return EnsureSessionResult(
            "REFRESHED", expected_destination, datetime(2025, 1, 8, tzinfo=UTC), "Session refreshed via form login"
        )


@pytest.fixture
def overrides():
    app.dependency_overrides[get_settings] = lambda: CONFIGURED
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides):
    return TestClient(app)


def capture_with(cfg: Settings, ensure=None) -> CaptureScreenshotUseCase:
    return CaptureScreenshotUseCase(
        MemoryKeyValueStore(),
        FakeBrowserFactory(FakePage()),
        ensure or StubEnsureSession(),
        EngineLogger("authshot.test"),
        credentials=cfg.credentials,
    )


def test_health_does_not_expose_credentials(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["credentials_configured"] is True
    assert "pw" not in r.text


def test_metrics_endpoint_serves_prometheus_text(client):
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "authshot_screenshots_total" in r.text


def test_screenshot_returns_jpeg(client, overrides):
    overrides[get_capture_use_case] = lambda: capture_with(CONFIGURED)

    r = client.get("/v1/screenshot", params={"url": APP_URL})

    assert r.status_code == 200
    assert r.headers["content-type"] == "image/jpeg"
    assert r.content.startswith(b"\xff\xd8")


def test_screenshot_without_any_url_is_a_plain_text_hint(client, overrides):
    overrides[get_capture_use_case] = lambda: capture_with(CONFIGURED)

    r = client.get("/v1/screenshot")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "?url=" in r.text


def test_screenshot_with_login_but_no_credentials_is_400(client, overrides):
    bare = Settings(login_user="", login_pass="", login_url="", target_url="")
    overrides[get_settings] = lambda: bare
    overrides[get_capture_use_case] = lambda: capture_with(bare)

    r = client.get("/v1/screenshot", params={"url": APP_URL, "login": LOGIN_URL})

    assert r.status_code == 400
    assert "LOGIN_USER" in r.text


def test_screenshot_login_timeout_is_504(client, overrides):
    overrides[get_capture_use_case] = lambda: capture_with(CONFIGURED, StubEnsureSession(LoginTimedOutError(LOGIN_URL)))

    r = client.get("/v1/screenshot", params={"url": APP_URL, "login": LOGIN_URL})

    assert r.status_code == 504


def test_clear_session_deletes_cookies(client, overrides):
    store = KeyValueSessionStore(MemoryKeyValueStore())
    key = SessionKey.for_login_url(LOGIN_URL)
    store.save(key, CookieSet([Cookie("sid", "x")]), timedelta(days=7))
    overrides[get_clear_use_case] = lambda: ClearSessionUseCase(store)

    r = client.delete("/v1/sessions", params={"login": LOGIN_URL})

    assert r.status_code == 200
    assert r.text == f"Cleared cookies for {LOGIN_URL}"
    assert store.load(key) is None


def test_clear_session_without_login_is_400(client, overrides):
    overrides[get_clear_use_case] = lambda: ClearSessionUseCase(KeyValueSessionStore(MemoryKeyValueStore()))
    assert client.delete("/v1/sessions").status_code == 400


def test_clear_session_store_failure_is_500(client, overrides):
    overrides[get_clear_use_case] = lambda: ClearSessionUseCase(KeyValueSessionStore(BrokenKV()))
    assert client.delete("/v1/sessions", params={"login": LOGIN_URL}).status_code == 500


def test_ensure_session_reports_result(client, overrides):
    browsers = FakeBrowserFactory()
    overrides[get_ensure_session] = lambda: StubEnsureSession()
    overrides[get_browser_factory] = lambda: browsers

    r = client.post("/v1/auth/ensure_session", params={"login": LOGIN_URL, "url": APP_URL})

    assert r.status_code == 200
    assert r.json() == {
        "status": "REFRESHED",
        "final_url": APP_URL,
        "expires_at": "2025-01-08T00:00:00+00:00",
        "message": "Session refreshed via form login",
    }
    assert browsers.closed == 1


def test_ensure_session_timeout_is_504(client, overrides):
    overrides[get_ensure_session] = lambda: StubEnsureSession(LoginTimedOutError(LOGIN_URL))
    overrides[get_browser_factory] = lambda: FakeBrowserFactory()

    r = client.post("/v1/auth/ensure_session", params={"login": LOGIN_URL})

    assert r.status_code == 504


def test_screenshot_with_malformed_url_is_400(client, overrides):
    overrides[get_capture_use_case] = lambda: capture_with(CONFIGURED)

    r = client.get("/v1/screenshot", params={"url": "ex.com/app"})

    assert r.status_code == 400
    assert "Invalid URL" in r.text
