from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from authshot.application.ports.browser_port import BrowserPagePort
from authshot.application.ports.clock_port import Clock, SystemClock
from authshot.application.ports.session_store_port import SessionStorePort
from authshot.application.services.completion_detector import CompletionDetector, CompletionResult
from authshot.application.services.login_driver import LoginDriver
from authshot.application.services.session_validator import SessionValidator
from authshot.domain.errors import LoginTimedOutError
from authshot.domain.model import Credentials, CookieSet, LoginAttempt, PersistedSession, SelectorConfig, SessionKey
from authshot.logger import EngineLogger

SESSION_TTL = timedelta(days=7)


@dataclass(frozen=True)
class EnsureSessionResult:
    status: str  # "ALREADY_ACTIVE" | "REFRESHED"
    final_url: str | None
    expires_at: datetime | None
    message: str
    persisted: bool = False
    completion: CompletionResult | None = None


class EnsureSessionUseCase:
    """Leaves ``page`` authenticated, preferring a cached session when it is still live.

    try-restore -> validate -> (skip or) fresh login -> detect completion -> persist.
    Concurrent calls for the same key are not coordinated; the last save wins.
    """

    def __init__(
        self,
        store: SessionStorePort,
        validator: SessionValidator,
        driver: LoginDriver,
        detector: CompletionDetector,
        log: EngineLogger,
        *,
        ttl: timedelta = SESSION_TTL,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.validator = validator
        self.driver = driver
        self.detector = detector
        self.log = log
        self.ttl = ttl
        self.clock = clock or SystemClock()

    async def execute(
        self,
        page: BrowserPagePort,
        login_url: str,
        credentials: Credentials,
        *,
        selectors: SelectorConfig | None = None,
        expected_destination: str | None = None,
        session_key: SessionKey | None = None,
    ) -> EnsureSessionResult:
        selectors = selectors or SelectorConfig()
        key = session_key or SessionKey.for_login_url(login_url)

        self.log.debug("ensure_session: attempting to restore cookies", cookie_key=key)
        cookies = self.store.load(key)
        if cookies:
            if await self.validator.is_valid(page, cookies, login_url, selectors.success_selector):
                return EnsureSessionResult("ALREADY_ACTIVE", None, None, "Valid session from store")
            self.log.info("ensure_session: restored session is not valid, logging in", cookie_key=key)

        attempt = LoginAttempt(
            login_url=login_url,
            expected_destination=expected_destination,
            selectors=selectors,
        )
        report = await self.driver.fill_credentials(page, login_url, credentials, selectors)
        completion = await self.detector.detect(page, attempt, lambda: self.driver.submit(page, selectors))

        # Persist whatever state the login reached
        session = await self._persist(page, key)

        if not report.any_field_found and not completion.observed_any_signal:
            self.log.error("ensure_session: login timed out", login_url=login_url, reason=attempt.reason)
            raise LoginTimedOutError(login_url)

        message = "Session refreshed via form login"
        if not attempt.succeeded:
            message = f"Login attempt completed, destination unknown ({attempt.reason})"
        return EnsureSessionResult(
            "REFRESHED",
            attempt.final_url,
            session.expires_at if session else None,
            message,
            persisted=session is not None,
            completion=completion,
        )

    async def _persist(self, page: BrowserPagePort, key: SessionKey) -> PersistedSession | None:
        try:
            cookies = CookieSet.from_browser(await page.cookies())
        except Exception as e:
            self.log.warning("ensure_session: failed to read cookies from page", error=str(e))
            return None
        expires_at = self.clock.now() + self.ttl
        if not self.store.save(key, cookies, self.ttl):
            return None
        return PersistedSession(key, cookies, expires_at)
