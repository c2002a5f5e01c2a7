"""Tests for authentication detection."""

from __future__ import annotations

import asyncio
import time

import pytest

from pagepilot.auth import evaluators
from pagepilot.auth.monitor import AuthMonitor
from pagepilot.exceptions import AuthError, ConfigurationError, PredicateError, WaitTimeoutError
from pagepilot.models import AuthState, AuthStatus, Cookie
from pagepilot.settings import PageSettings


def _flips_on(n: int):
    calls = 0

    def evaluator(_page) -> bool:
        nonlocal calls
        calls += 1
        return calls >= n

    return evaluator


@pytest.mark.asyncio
async def test_authenticate_times_out_with_auth_error(page, surface):
    start = time.monotonic()
    with pytest.raises(AuthError) as exc_info:
        await page.authenticate(
            "https://app.example.com/login", lambda _p: False, timeout=0.1, interval=0.02
        )
    elapsed = time.monotonic() - start

    assert elapsed >= 0.095
    assert isinstance(exc_info.value.__cause__, WaitTimeoutError)
    assert exc_info.value.attempts >= 2
    assert surface.navigations == ["https://app.example.com/login"]


@pytest.mark.asyncio
async def test_authenticate_succeeds_on_third_check(page):
    start = time.monotonic()
    status = await page.authenticate(
        "https://app.example.com/login", _flips_on(3), timeout=5, interval=0.05
    )
    elapsed = time.monotonic() - start

    assert status is AuthStatus.AUTHENTICATED
    assert 0.09 <= elapsed < 0.5


@pytest.mark.asyncio
async def test_wait_for_authentication_accepts_async_evaluator(page, surface):
    surface.url = "https://app.example.com/home"

    async def evaluator(p):
        return "/home" in await p.current_url()

    assert await page.wait_for_authentication(evaluator) is AuthStatus.AUTHENTICATED


@pytest.mark.asyncio
async def test_page_close_cancels_auth_wait(page):
    task = asyncio.create_task(
        page.wait_for_authentication(lambda _p: False, timeout=30, interval=0.02)
    )
    await asyncio.sleep(0.05)
    await page.close()
    status = await asyncio.wait_for(task, timeout=1)
    assert status is AuthStatus.CANCELLED


@pytest.mark.asyncio
async def test_page_close_during_evaluator_cancels_auth_wait(page):
    async def evaluator(p):
        await asyncio.sleep(0.05)
        return "/home" in await p.current_url()

    task = asyncio.create_task(
        page.wait_for_authentication(evaluator, timeout=5, interval=0.01)
    )
    await asyncio.sleep(0.02)
    await page.close()
    status = await asyncio.wait_for(task, timeout=1)
    assert status is AuthStatus.CANCELLED


@pytest.mark.asyncio
async def test_navigation_wakes_auth_poll(page, surface):
    task = asyncio.create_task(
        page.wait_for_authentication(
            evaluators.url_contains("/dashboard"), timeout=30, interval=10
        )
    )
    await asyncio.sleep(0.05)
    start = time.monotonic()
    await surface.navigate("https://app.example.com/dashboard")
    status = await asyncio.wait_for(task, timeout=1)
    assert status is AuthStatus.AUTHENTICATED
    assert time.monotonic() - start < 1


@pytest.mark.asyncio
async def test_monitor_states(page):
    monitor = AuthMonitor(page, timeout=1, interval=0.01)
    assert monitor.state is AuthState.IDLE
    assert await monitor.run(_flips_on(2)) is AuthStatus.AUTHENTICATED
    assert monitor.state is AuthState.AUTHENTICATED
    with pytest.raises(RuntimeError):
        await monitor.run(_flips_on(1))


@pytest.mark.asyncio
async def test_monitor_timed_out_state(page):
    monitor = AuthMonitor(page, timeout=0.05, interval=0.01)
    with pytest.raises(AuthError):
        await monitor.run(lambda _p: False)
    assert monitor.state is AuthState.TIMED_OUT


@pytest.mark.asyncio
async def test_evaluator_error_is_not_a_timeout(page):
    monitor = AuthMonitor(page, timeout=5, interval=0.01)
    boom = ValueError("bad evaluator")

    def evaluator(_page):
        raise boom

    with pytest.raises(PredicateError) as exc_info:
        await monitor.run(evaluator)
    assert exc_info.value.__cause__ is boom
    assert monitor.state is AuthState.FAILED


@pytest.mark.asyncio
async def test_cancelled_monitor_state(page):
    cancel = asyncio.Event()
    cancel.set()
    monitor = AuthMonitor(page, timeout=5, interval=0.01)
    assert await monitor.run(lambda _p: True, cancel=cancel) is AuthStatus.CANCELLED
    assert monitor.state is AuthState.CANCELLED


# ---- evaluators ----


@pytest.mark.asyncio
async def test_url_contains(page, surface):
    check = evaluators.url_contains("/Feed", "/home")
    surface.url = "https://x.com/login"
    assert await check(page) is False
    surface.url = "https://x.com/feed?x=1"
    assert await check(page) is True


@pytest.mark.asyncio
async def test_selector_exists(page, surface):
    check = evaluators.selector_exists("nav.global-nav", "img.avatar")
    assert await check(page) is False
    surface.selectors.add("img.avatar")
    assert await check(page) is True


@pytest.mark.asyncio
async def test_cookie_present(page, surface):
    surface.url = "https://app.example.com/"
    check = evaluators.cookie_present("session_id")
    assert await check(page) is False
    surface.cookie_jar.append(Cookie(name="session_id", value="s", domain="example.com"))
    assert await check(page) is True


@pytest.mark.asyncio
async def test_any_of_and_all_of(page, surface):
    surface.url = "https://app.example.com/home"
    url_ok = evaluators.url_contains("/home")
    avatar = evaluators.selector_exists("img.avatar")
    assert await evaluators.any_of(avatar, url_ok)(page) is True
    assert await evaluators.all_of(avatar, url_ok)(page) is False
    surface.selectors.add("img.avatar")
    assert await evaluators.all_of(avatar, url_ok, lambda _p: True)(page) is True


@pytest.mark.asyncio
async def test_from_settings(page, surface):
    check = evaluators.from_settings(
        PageSettings(auth_success_url_fragments=["/dashboard"], auth_success_selectors=["#me"])
    )
    surface.url = "https://app.example.com/login"
    assert await check(page) is False
    surface.selectors.add("#me")
    assert await check(page) is True


def test_from_settings_requires_a_signal():
    with pytest.raises(ConfigurationError):
        evaluators.from_settings(PageSettings())
