from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from authshot.application.services.completion_detector import DetectorState
from authshot.domain.errors import LoginTimedOutError
from authshot.domain.model import DEFAULT_SUCCESS_INDICATOR, Cookie, CookieSet, SelectorConfig, SessionKey
from tests.unit._fakes_auth import (
    APP_URL,
    CREDS,
    LOGIN_FORM,
    LOGIN_URL,
    PASSWORD,
    USERNAME,
    BrokenKV,
    CountingKV,
    MutableClock,
    make_use_case,
)
from tests.unit._fakes_browser import FakeFrame, FakePage

SID = {"name": "sid", "value": "abc123", "domain": "ex.com", "path": "/", "expires": -1}


def login_page(**kwargs) -> FakePage:
    page = FakePage(elements=set(LOGIN_FORM), **kwargs)

    def complete() -> None:
        page.jar.append(dict(SID))
        page.navigate(APP_URL)

    page.on_click = lambda: page.later(0.01, complete)
    return page


async def test_fresh_login_returns_destination_and_persists_cookies():
    kv = CountingKV()
    uc, store = make_use_case(kv)
    page = login_page()

    res = await uc.execute(page, LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.status == "REFRESHED"
    assert res.final_url == APP_URL
    assert res.persisted is True
    assert page.typed == [(SelectorConfig().username_selector, USERNAME), (SelectorConfig().password_selector, PASSWORD)]
    saved = store.load(SessionKey("cookies:https://ex.com/login"))
    assert saved is not None and saved.names == ["sid"]


async def test_relay_form_is_submitted_once_before_navigation():
    kv = CountingKV()
    uc, _store = make_use_case(kv)
    page = FakePage(elements=set(LOGIN_FORM))
    relay = FakeFrame(
        "https://idp.ex.com/relay",
        '<form method="post" action="https://ex.com/callback"><input name="code" value="c"></form>',
        on_submit=lambda: page.later(0.01, page.navigate, APP_URL),
    )
    page.extra_frames.append(relay)

    res = await uc.execute(page, LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert relay.submitted == [0]
    assert res.final_url == APP_URL
    assert res.completion is not None
    assert res.completion.relay_action == "https://ex.com/callback"
    assert DetectorState.POST_FORM_RELAY in res.completion.history
    assert kv.puts == 1


async def test_valid_stored_session_skips_login_and_store_writes():
    kv = CountingKV()
    uc, store = make_use_case(kv)
    key = SessionKey.for_login_url(LOGIN_URL)
    store.save(key, CookieSet([Cookie("sid", "abc123", domain="ex.com")]), timedelta(days=7))
    puts_before = kv.puts
    page = FakePage(elements={DEFAULT_SUCCESS_INDICATOR, *LOGIN_FORM})

    res = await uc.execute(page, LOGIN_URL, CREDS)

    assert res.status == "ALREADY_ACTIVE"
    assert res.final_url is None
    assert page.typed == [] and page.clicked == []
    assert page.gotos == [LOGIN_URL]
    assert [c["name"] for c in page.jar] == ["sid"]
    assert kv.puts == puts_before


async def test_stale_stored_session_falls_back_to_fresh_login():
    uc, store = make_use_case()
    key = SessionKey.for_login_url(LOGIN_URL)
    store.save(key, CookieSet([Cookie("sid", "expired")]), timedelta(days=7))
    page = login_page()

    res = await uc.execute(page, LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.status == "REFRESHED"
    assert page.clicked


async def test_corrupted_stored_session_never_raises():
    kv = CountingKV()
    kv.put("cookies:" + LOGIN_URL, b"{not json", ttl=timedelta(days=1))
    uc, _store = make_use_case(kv)

    res = await uc.execute(login_page(), LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.status == "REFRESHED"


async def test_unavailable_store_degrades_to_fresh_login_without_persisting():
    uc, _store = make_use_case(BrokenKV())

    res = await uc.execute(login_page(), LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.status == "REFRESHED"
    assert res.final_url == APP_URL
    assert res.persisted is False
    assert res.expires_at is None


async def test_expires_at_is_seven_days_after_login():
    clock = MutableClock()
    uc, _store = make_use_case(clock=clock)

    res = await uc.execute(login_page(), LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.expires_at == clock.now() + timedelta(days=7)


async def test_unconfirmed_destination_is_a_degraded_result_not_an_error():
    uc, _store = make_use_case()
    page = FakePage(elements=set(LOGIN_FORM))  # submit does nothing

    res = await uc.execute(page, LOGIN_URL, CREDS, expected_destination=APP_URL)

    assert res.status == "REFRESHED"
    assert res.final_url is None
    assert "destination unknown" in res.message


async def test_no_fields_and_no_signal_times_out():
    uc, _store = make_use_case()
    page = FakePage()

    with pytest.raises(LoginTimedOutError):
        await uc.execute(page, LOGIN_URL, CREDS)


async def test_credentials_never_reach_the_logs(caplog):
    caplog.set_level(logging.DEBUG)
    uc, _store = make_use_case(BrokenKV())
    page = FakePage(elements={SelectorConfig().username_selector})  # password field missing

    await uc.execute(page, LOGIN_URL, CREDS)

    assert caplog.records
    assert USERNAME not in caplog.text
    assert PASSWORD not in caplog.text
