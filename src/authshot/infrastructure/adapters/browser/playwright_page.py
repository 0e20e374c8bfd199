"""Playwright (async API) implementation of the browser ports."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from authshot.application.ports.browser_port import BrowserFactoryPort, BrowserPagePort, BrowserTimeoutError, FramePort
from authshot.logger import EngineLogger

DEFAULT_NAVIGATION_TIMEOUT_MS = 30_000

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class PlaywrightPage(BrowserPagePort):
    """Adapts a Playwright page (and its context, for cookies) to BrowserPagePort."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, *, timeout_ms: float | None = None) -> None:
        try:
            await self._page.goto(
                url, wait_until="networkidle", timeout=timeout_ms or DEFAULT_NAVIGATION_TIMEOUT_MS
            )
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError(f"goto {url} timed out") from e

    async def has_element(self, selector: str) -> bool:
        return await self._page.locator(selector).count() > 0

    async def type_into(self, selector: str, text: str) -> None:
        await self._page.locator(selector).first.fill(text)

    async def click(self, selector: str, *, timeout_ms: float | None = None) -> None:
        try:
            await self._page.locator(selector).first.click(timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError(f"click {selector} timed out") from e

    def frames(self) -> Sequence[FramePort]:
        # Playwright frames already expose url and evaluate()
        return list(self._page.frames)

    async def wait_for_selector(self, selector: str, *, timeout_ms: float) -> None:
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError(f"selector {selector} not found") from e

    async def wait_for_navigation(self, *, timeout_ms: float) -> None:
        main_frame = self._page.main_frame
        started = time.monotonic()
        try:
            await self._page.wait_for_event(
                "framenavigated", predicate=lambda frame: frame == main_frame, timeout=timeout_ms
            )
            remaining = max(timeout_ms - (time.monotonic() - started) * 1000, 1)
            await self._page.wait_for_load_state("networkidle", timeout=remaining)
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError("no navigation within timeout") from e

    async def wait_for_url(self, predicate: Callable[[str], bool], *, timeout_ms: float) -> None:
        try:
            await self._page.wait_for_url(predicate, wait_until="commit", timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError("url condition not met within timeout") from e

    async def wait_for_network_idle(self, *, timeout_ms: float) -> None:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise BrowserTimeoutError("network did not become idle") from e

    async def cookies(self) -> list[dict[str, Any]]:
        return [dict(c) for c in await self._page.context.cookies()]

    async def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        await self._page.context.add_cookies(cookies)  # type: ignore[arg-type]

    async def screenshot(self, *, full_page: bool = True, quality: int = 80) -> bytes:
        return await self._page.screenshot(type="jpeg", full_page=full_page, quality=quality)


class PlaywrightBrowserFactory(BrowserFactoryPort):
    """Launches Chromium for one request and tears it down afterwards."""

    def __init__(self, log: EngineLogger, *, headless: bool = True, user_agent: str = _DEFAULT_USER_AGENT) -> None:
        self.log = log
        self.headless = headless
        self.user_agent = user_agent

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[BrowserPagePort]:
        self.log.info("browser: launching")
        async with async_playwright() as pw:
            browser: Browser = await pw.chromium.launch(
                headless=self.headless,
                args=["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"],
            )
            try:
                context = await browser.new_context(user_agent=self.user_agent)
                page = await context.new_page()
                yield PlaywrightPage(page)
            finally:
                try:
                    await browser.close()
                except PlaywrightError as e:
                    self.log.warning("browser: close failed", error=str(e))
                self.log.info("browser: closed")
