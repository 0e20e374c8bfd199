from __future__ import annotations

from authshot.application.services.login_driver import LoginDriver
from authshot.application.services.session_validator import SessionValidator
from authshot.domain.model import DEFAULT_SUCCESS_INDICATOR, Cookie, CookieSet, SelectorConfig
from authshot.logger import EngineLogger
from tests.unit._fakes_auth import APP_URL, CREDS, FAST, LOGIN_FORM, LOGIN_URL, PASSWORD, USERNAME
from tests.unit._fakes_browser import FakePage

LOG = EngineLogger("authshot.test")
COOKIES = CookieSet([Cookie("sid", "abc")])


# ---------- LoginDriver ----------
async def test_fill_types_both_fields_with_default_selectors():
    page = FakePage(elements=set(LOGIN_FORM))

    report = await LoginDriver(LOG, FAST).fill_credentials(page, LOGIN_URL, CREDS, SelectorConfig())

    assert report.username_filled and report.password_filled
    assert [text for _sel, text in page.typed] == [USERNAME, PASSWORD]
    assert page.gotos == [LOGIN_URL]


async def test_custom_selectors_are_used():
    selectors = SelectorConfig(username="#u", password="#p", submit="#go")
    page = FakePage(elements={"#u", "#p", "#go"})
    driver = LoginDriver(LOG, FAST)

    await driver.fill_credentials(page, LOGIN_URL, CREDS, selectors)
    clicked = await driver.submit(page, selectors)

    assert [sel for sel, _text in page.typed] == ["#u", "#p"]
    assert clicked is True and page.clicked == ["#go"]


async def test_missing_fields_are_skipped_not_raised():
    page = FakePage(elements={SelectorConfig().password_selector})

    report = await LoginDriver(LOG, FAST).fill_credentials(page, LOGIN_URL, CREDS, SelectorConfig())

    assert report.username_filled is False
    assert report.password_filled is True
    assert report.any_field_found is True


async def test_failed_navigation_still_attempts_the_form():
    page = FakePage(elements=set(LOGIN_FORM))
    page.fail_goto = True

    report = await LoginDriver(LOG, FAST).fill_credentials(page, LOGIN_URL, CREDS, SelectorConfig())

    assert report.any_field_found


async def test_submit_without_button_returns_false():
    assert await LoginDriver(LOG, FAST).submit(FakePage(), SelectorConfig()) is False


# ---------- SessionValidator ----------
async def test_valid_when_indicator_present_after_restoring_cookies():
    page = FakePage(elements={DEFAULT_SUCCESS_INDICATOR})

    assert await SessionValidator(LOG).is_valid(page, COOKIES, APP_URL) is True
    assert [c["name"] for c in page.jar] == ["sid"]
    assert page.gotos == [APP_URL]


async def test_custom_success_selector_overrides_default():
    page = FakePage(elements={DEFAULT_SUCCESS_INDICATOR})

    assert await SessionValidator(LOG).is_valid(page, COOKIES, APP_URL, "#dashboard") is False
    page.show("#dashboard")
    assert await SessionValidator(LOG).is_valid(page, COOKIES, APP_URL, "#dashboard") is True


async def test_empty_cookies_are_never_valid():
    page = FakePage(elements={DEFAULT_SUCCESS_INDICATOR})

    assert await SessionValidator(LOG).is_valid(page, CookieSet(), APP_URL) is False
    assert page.gotos == []


async def test_navigation_failure_reads_as_invalid():
    page = FakePage(elements={DEFAULT_SUCCESS_INDICATOR})
    page.fail_goto = True

    assert await SessionValidator(LOG).is_valid(page, COOKIES, APP_URL) is False
