from __future__ import annotations

from authshot.application.ports.browser_port import BrowserPagePort
from authshot.domain.model import DEFAULT_SUCCESS_INDICATOR, CookieSet
from authshot.logger import EngineLogger


class SessionValidator:
    """Decides whether restored cookies still carry an authenticated session.

    Validation is advisory: any failure while probing reads as "not valid" so the
    caller can always fall through to a fresh login.
    """

    def __init__(self, log: EngineLogger, *, default_indicator: str = DEFAULT_SUCCESS_INDICATOR) -> None:
        self.log = log
        self.default_indicator = default_indicator

    async def is_valid(
        self,
        page: BrowserPagePort,
        cookies: CookieSet,
        probe_url: str,
        success_selector: str | None = None,
    ) -> bool:
        if not cookies:
            return False
        indicator = success_selector or self.default_indicator
        try:
            await page.set_cookies(cookies.to_browser())
            self.log.debug("validator: set cookies on page", count=len(cookies))
            await page.goto(probe_url)
            self.log.debug("validator: navigated to probe url", probe_url=probe_url)
            found = await page.has_element(indicator)
        except Exception as e:
            self.log.warning("validator: probe failed, will attempt fresh login", error=str(e))
            return False
        if found:
            self.log.info("validator: session appears valid", selector=indicator)
        else:
            self.log.info("validator: logged-in indicator not found", selector=indicator)
        return found
