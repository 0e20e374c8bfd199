from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlsplit, urlunsplit

from authshot.application.ports.browser_port import BrowserFactoryPort, BrowserPagePort
from authshot.application.ports.kv_store_port import KeyValueStorePort
from authshot.application.use_cases.ensure_session import EnsureSessionUseCase
from authshot.domain.errors import InvalidTargetUrlError, MissingTargetError
from authshot.domain.model import Credentials, SelectorConfig
from authshot.logger import EngineLogger

SCREENSHOT_TTL = timedelta(days=1)
JPEG_QUALITY = 80


@dataclass(frozen=True)
class ScreenshotResult:
    image: bytes
    url: str
    from_cache: bool
    session_status: str | None = None
    content_type: str = "image/jpeg"


def normalize_url(url: str) -> str:
    """Lower-cases scheme and host and gives bare hosts a "/" path."""
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        raise InvalidTargetUrlError(f"Invalid URL: {url!r}")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment))


class CaptureScreenshotUseCase:
    """Screenshots a page, logging in first when a login URL is given.

    Targets are cached in the key/value store by URL; a login-only capture is not.
    """

    def __init__(
        self,
        kv: KeyValueStorePort,
        browsers: BrowserFactoryPort,
        ensure_session: EnsureSessionUseCase,
        log: EngineLogger,
        *,
        credentials: Callable[[], Credentials],
        selectors: SelectorConfig | None = None,
        cache_ttl: timedelta = SCREENSHOT_TTL,
    ) -> None:
        self.kv = kv
        self.browsers = browsers
        self.ensure_session = ensure_session
        self.log = log
        self.credentials = credentials
        self.selectors = selectors or SelectorConfig()
        self.cache_ttl = cache_ttl

    async def execute(self, target_url: str | None = None, login_url: str | None = None) -> ScreenshotResult:
        if not target_url:
            if not login_url:
                raise MissingTargetError(
                    "Please add an ?url=https://example.com/ parameter or set TARGET_URL in your environment"
                )
            return await self._capture_after_login(login_url, self.credentials())

        url = normalize_url(target_url)
        self.log.debug("screenshot: checking store for cached screenshot", url=url)
        cached = self._cached(url)
        if cached is not None:
            return ScreenshotResult(cached, url, from_cache=True)

        # Credentials gate the browser launch, not the cache
        creds = self.credentials() if login_url else None
        status: str | None = None
        async with self.browsers.open_page() as page:
            if login_url and creds is not None:
                result = await self.ensure_session.execute(
                    page, login_url, creds, selectors=self.selectors, expected_destination=url
                )
                status = result.status
                screenshot_url = result.final_url or url
                self.log.debug("screenshot: navigating to final screenshot URL", screenshot_url=screenshot_url)
                await self._goto_quietly(page, screenshot_url)
            else:
                await self._goto_quietly(page, url)
            image = await page.screenshot(full_page=True, quality=JPEG_QUALITY)

        self._cache(url, image)
        self.log.info("screenshot: returning screenshot", url=url, size=len(image))
        return ScreenshotResult(image, url, from_cache=False, session_status=status)

    async def _capture_after_login(self, login_url: str, creds: Credentials) -> ScreenshotResult:
        async with self.browsers.open_page() as page:
            result = await self.ensure_session.execute(page, login_url, creds, selectors=self.selectors)
            image = await page.screenshot(full_page=True, quality=JPEG_QUALITY)
            url = page.url
        self.log.info("screenshot: returning post-login screenshot", url=url, size=len(image))
        return ScreenshotResult(image, url, from_cache=False, session_status=result.status)

    async def _goto_quietly(self, page: BrowserPagePort, url: str) -> None:
        try:
            await page.goto(url)
        except Exception as e:
            self.log.warning("screenshot: navigation did not settle, capturing anyway", url=url, error=str(e))

    def _cached(self, url: str) -> bytes | None:
        try:
            return self.kv.get(url)
        except Exception as e:
            self.log.warning("screenshot: cache read failed", url=url, error=str(e))
            return None

    def _cache(self, url: str, image: bytes) -> None:
        try:
            self.kv.put(url, image, ttl=self.cache_ttl)
        except Exception as e:
            self.log.warning("screenshot: failed to cache screenshot", url=url, error=str(e))
            return
        self.log.info("screenshot: cached screenshot", url=url)
