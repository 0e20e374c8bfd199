from __future__ import annotations

from dataclasses import dataclass

from authshot.application.ports.browser_port import BrowserPagePort, BrowserTimeoutError
from authshot.domain.model import Credentials, LoginTimeouts, SelectorConfig
from authshot.logger import EngineLogger


@dataclass(frozen=True)
class FillReport:
    username_filled: bool
    password_filled: bool

    @property
    def any_field_found(self) -> bool:
        return self.username_filled or self.password_filled


class LoginDriver:
    """Fills and submits a login form whose exact shape is unknown in advance.

    Each step is best-effort: a missing widget, field or button is logged and the
    flow moves on, since a later auto-submit relay may still complete the login.
    Credential values are only ever handed to the page, never to the logger.
    """

    def __init__(self, log: EngineLogger, timeouts: LoginTimeouts | None = None) -> None:
        self.log = log
        self.timeouts = timeouts or LoginTimeouts()

    async def fill_credentials(
        self,
        page: BrowserPagePort,
        login_url: str,
        credentials: Credentials,
        selectors: SelectorConfig,
    ) -> FillReport:
        self.log.info("login: navigating to login page", login_url=login_url)
        try:
            await page.goto(login_url)
        except Exception as e:
            self.log.warning("login: navigation to login page failed", login_url=login_url, error=str(e))

        # Rich login widget (Auth0 Lock); plain forms never render it
        try:
            await page.wait_for_selector(selectors.widget_selector, timeout_ms=self.timeouts.widget)
        except BrowserTimeoutError:
            self.log.debug("login: no login widget container", widget_selector=selectors.widget_selector)
        except Exception as e:
            self.log.debug("login: waiting for login widget failed", error=str(e))

        user_selector = selectors.username_selector
        try:
            await page.wait_for_selector(user_selector, timeout_ms=self.timeouts.username_field)
        except Exception:
            self.log.warning("login: username selector not found within timeout", user_selector=user_selector)

        username_filled = await self._fill(page, user_selector, credentials.username, field="username")
        password_filled = await self._fill(page, selectors.password_selector, credentials.password, field="password")
        return FillReport(username_filled=username_filled, password_filled=password_filled)

    async def _fill(self, page: BrowserPagePort, selector: str, secret: str, *, field: str) -> bool:
        try:
            if not await page.has_element(selector):
                self.log.warning(f"login: {field} selector not found", selector=selector)
                return False
            self.log.debug(f"login: typing {field}", selector=selector)
            await page.type_into(selector, secret)
            return True
        except Exception as e:
            self.log.error(f"login: failed to type {field}", selector=selector, error=type(e).__name__)
            return False

    async def submit(self, page: BrowserPagePort, selectors: SelectorConfig) -> bool:
        submit_selector = selectors.submit_selector
        self.log.debug("login: attempting to click submit", submit_selector=submit_selector)
        try:
            await page.click(submit_selector, timeout_ms=self.timeouts.submit_click)
        except Exception as e:
            self.log.warning("login: click submit failed", submit_selector=submit_selector, error=str(e))
            return False
        return True
