"""Decides when a submitted login has concluded and where the browser ended up.

Sites signal completion differently: a classic navigation, a client-side redirect that
only mutates the DOM, or an identity-provider relay page holding a POST form that has to
be submitted to the application's callback. The detector arms watchers for the first two
before the submit action runs, pushes any relay form through, races the watchers, and
finally waits for the expected destination (or simply for the login URL to be left).

Every wait is bounded and a timeout only moves the machine to its next phase.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup  # type: ignore[import-untyped]

from authshot.application.ports.browser_port import BrowserPagePort, FramePort
from authshot.domain.model import LoginAttempt, LoginTimeouts
from authshot.logger import EngineLogger

NAVIGATION = "navigation"
SUCCESS_SELECTOR = "success_selector"
CALLBACK_MARKER = "callback"

# Shallow copies of the live form elements, in querySelectorAll order. Forms that only
# exist as markup (inside <noscript> or <template>) are not part of this list.
FORMS_SNAPSHOT_JS = """
() => Array.from(document.querySelectorAll('form'), (form) => form.cloneNode(false).outerHTML).join('')
"""

# Bypasses inputs named "submit" that shadow form.submit
SUBMIT_FORM_JS = """
(index) => {
  const form = document.querySelectorAll('form')[index];
  if (!form) return false;
  HTMLFormElement.prototype.submit.call(form);
  return true;
}
"""


class DetectorState(str, Enum):
    SUBMITTING = "SUBMITTING"
    RACING_SIGNALS = "RACING_SIGNALS"
    POST_FORM_RELAY = "POST_FORM_RELAY"
    AWAITING_DESTINATION = "AWAITING_DESTINATION"
    DONE = "DONE"
    TIMED_OUT = "TIMED_OUT"


@dataclass(frozen=True)
class RelayForm:
    index: int  # position among all <form> elements of the frame document
    action: str


@dataclass(frozen=True)
class CompletionResult:
    state: DetectorState
    final_url: str | None = None
    race_winner: str | None = None
    signalled: bool = False
    relay_action: str | None = None
    destination_reached: bool = False
    history: tuple[DetectorState, ...] = field(default_factory=tuple)

    @property
    def observed_any_signal(self) -> bool:
        return self.signalled or self.relay_action is not None or self.destination_reached


def find_post_forms(html: str, base_url: str) -> list[RelayForm]:
    """POST forms of a form snapshot, in order, with actions resolved against base_url.

    ``index`` is the position among all forms of ``html``; fed a FORMS_SNAPSHOT_JS result
    it matches the frame's ``querySelectorAll("form")`` order.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    forms: list[RelayForm] = []
    for index, form in enumerate(soup.find_all("form")):
        if (form.get("method") or "").strip().lower() != "post":
            continue
        raw_action = (form.get("action") or "").strip()
        action = urljoin(base_url, raw_action) if raw_action else base_url
        forms.append(RelayForm(index=index, action=action))
    return forms


def is_relay_target(action: str, expected_destination: str | None) -> bool:
    if not expected_destination:
        return True
    return CALLBACK_MARKER in action or expected_destination in action


class CompletionDetector:
    def __init__(self, log: EngineLogger, timeouts: LoginTimeouts | None = None) -> None:
        self.log = log
        self.timeouts = timeouts or LoginTimeouts()

    async def detect(
        self,
        page: BrowserPagePort,
        attempt: LoginAttempt,
        submit: Callable[[], Awaitable[Any]],
    ) -> CompletionResult:
        """Runs ``submit`` with watchers armed and follows the login to its conclusion."""
        history: list[DetectorState] = [DetectorState.SUBMITTING]
        settled: list[str] = []
        watchers = self._arm_watchers(page, attempt.selectors.success_selector, settled)
        try:
            # Let the watchers register before the page can start moving
            await asyncio.sleep(0)
            await submit()
            history.append(DetectorState.RACING_SIGNALS)

            relay_action = await self._submit_relay_form(page, attempt.expected_destination)
            if relay_action is not None:
                history.append(DetectorState.POST_FORM_RELAY)

            winner, signalled = await self._race(watchers, settled)
        finally:
            await self._cancel(watchers.values())

        self.log.debug("detector: race settled", winner=winner, signalled=signalled)
        history.append(DetectorState.AWAITING_DESTINATION)
        state, final_url, reached = await self._await_destination(
            page, attempt.login_url, attempt.expected_destination
        )
        history.append(state)

        if state is DetectorState.DONE:
            attempt.succeed(final_url)
        else:
            attempt.fail("destination not confirmed before timeout")
        return CompletionResult(
            state=state,
            final_url=final_url,
            race_winner=winner,
            signalled=signalled,
            relay_action=relay_action,
            destination_reached=reached,
            history=tuple(history),
        )

    # ---------- SUBMITTING ----------
    def _arm_watchers(
        self, page: BrowserPagePort, success_selector: str | None, settled: list[str]
    ) -> dict[str, asyncio.Task[bool]]:
        watchers = {
            NAVIGATION: asyncio.create_task(self._watch_navigation(page)),
            SUCCESS_SELECTOR: asyncio.create_task(self._watch_selector(page, success_selector)),
        }
        for label, task in watchers.items():
            task.add_done_callback(lambda _t, label=label: settled.append(label))
        return watchers

    async def _watch_navigation(self, page: BrowserPagePort) -> bool:
        try:
            await page.wait_for_navigation(timeout_ms=self.timeouts.navigation)
        except Exception as e:
            self.log.debug("detector: no navigation observed", error=str(e))
            return False
        return True

    async def _watch_selector(self, page: BrowserPagePort, selector: str | None) -> bool:
        if not selector:
            return False
        try:
            await page.wait_for_selector(selector, timeout_ms=self.timeouts.success_selector)
        except Exception as e:
            self.log.debug("detector: success selector did not appear", selector=selector, error=str(e))
            return False
        return True

    # ---------- POST_FORM_RELAY ----------
    async def _submit_relay_form(self, page: BrowserPagePort, expected_destination: str | None) -> str | None:
        """Submits the first matching POST form across all frames. Returns its action."""
        try:
            frames = list(page.frames())
        except Exception as e:
            self.log.debug("detector: error checking for post forms", error=str(e))
            return None

        for frame in frames:
            try:
                forms = find_post_forms(await frame.evaluate(FORMS_SNAPSHOT_JS) or "", frame.url)
            except Exception as e:
                self.log.debug("detector: error scanning frame for post forms", frame=frame.url, error=str(e))
                continue
            if not forms:
                continue
            self.log.debug("detector: found post forms in frame", frame=frame.url, count=len(forms))
            for form in forms:
                self.log.debug("detector: post form action", action=form.action, frame=frame.url)
                if not is_relay_target(form.action, expected_destination):
                    continue
                # One attempt per login, whether or not the browser accepted it
                if await self._relay(page, frame, form):
                    return form.action
                return None

        self.log.debug("detector: no post forms submitted")
        return None

    async def _relay(self, page: BrowserPagePort, frame: FramePort, form: RelayForm) -> bool:
        """Submits ``form`` and waits for the navigation it starts. False when nothing was submitted."""
        self.log.info("detector: submitting post form in frame", action=form.action, frame=frame.url)
        navigation = asyncio.create_task(page.wait_for_navigation(timeout_ms=self.timeouts.relay_navigation))
        await asyncio.sleep(0)
        try:
            submitted = await frame.evaluate(SUBMIT_FORM_JS, form.index) is True
        except Exception as e:
            self.log.debug("detector: error submitting a post form", action=form.action, error=str(e))
            submitted = False
        if not submitted:
            self.log.warning("detector: post form was not submitted", action=form.action, index=form.index)
            await self._cancel([navigation])
            return False
        try:
            await navigation
            self.log.info("detector: post form submitted and navigation complete", url=page.url)
        except Exception as e:
            self.log.debug("detector: no navigation after post form", error=str(e))
        return True

    # ---------- RACING_SIGNALS ----------
    async def _race(
        self, watchers: dict[str, asyncio.Task[bool]], settled: list[str]
    ) -> tuple[str | None, bool]:
        bound = max(self.timeouts.navigation, self.timeouts.success_selector) / 1000 + 1
        done, _pending = await asyncio.wait(
            list(watchers.values()), return_when=asyncio.FIRST_COMPLETED, timeout=bound
        )
        if not done or not settled:
            return None, False
        winner = settled[0]
        task = watchers[winner]
        signalled = bool(task.result()) if not task.cancelled() else False
        return winner, signalled

    @staticmethod
    async def _cancel(tasks: Any) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    # ---------- AWAITING_DESTINATION ----------
    async def _await_destination(
        self, page: BrowserPagePort, login_url: str, expected_destination: str | None
    ) -> tuple[DetectorState, str | None, bool]:
        if expected_destination:
            self.log.info("detector: waiting for expected redirect URL", expected_destination=expected_destination)
            try:
                await page.wait_for_url(
                    lambda url: url.startswith(expected_destination), timeout_ms=self.timeouts.destination
                )
            except Exception as e:
                self.log.warning("detector: redirect wait failed or timed out", error=str(e))
                return DetectorState.TIMED_OUT, None, False
            await self._settle_network(page)
            self.log.info("detector: expected redirect reached", url=page.url)
            return DetectorState.DONE, page.url, True

        self.log.debug("detector: waiting for navigation away from login url", login_url=login_url)
        try:
            await page.wait_for_url(lambda url: url != login_url, timeout_ms=self.timeouts.destination)
            left = True
        except Exception as e:
            self.log.warning("detector: still on login url after timeout", error=str(e))
            left = False
        await self._settle_network(page)
        self.log.info("detector: navigation after login complete", url=page.url)
        return (DetectorState.DONE if left else DetectorState.TIMED_OUT), None, left

    async def _settle_network(self, page: BrowserPagePort) -> None:
        try:
            await page.wait_for_network_idle(timeout_ms=self.timeouts.network_idle)
        except Exception as e:
            self.log.debug("detector: network did not settle", error=str(e))
