"""Host-facing page façade.

A :class:`Page` wraps exactly one embedded page.  It forwards plain
browser operations to the surface and adds the parts PagePilot owns:
request interception, the wait family and authentication detection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from pagepilot.auth.monitor import AuthMonitor, Evaluator
from pagepilot.browser.base import BrowserSurface
from pagepilot.events import EventBridge, Listener
from pagepilot.exceptions import PageClosedError
from pagepilot.interception.headers import merged_headers
from pagepilot.interception.ledger import MatcherLike, RequestLedger, resolve_matcher
from pagepilot.models import (
    AuthStatus,
    Cookie,
    NativeRequest,
    NativeResponse,
    PageEvent,
    RequestRecord,
)
from pagepilot.settings import PageSettings
from pagepilot.waiting.poller import Predicate, WaitResult, wait_for

logger = logging.getLogger(__name__)

_SELECTOR_PRESENT_JS = "(selector) => document.querySelector(selector) !== null"


class Page:
    """One controlled page and everything observed on it."""

    def __init__(self, surface: BrowserSurface, settings: PageSettings | None = None) -> None:
        self._surface = surface
        self._settings = settings or PageSettings()
        self._ledger = RequestLedger(self._settings.max_ledger_records)
        self._active_waits: set[asyncio.Event] = set()
        self._nav_wakers: set[asyncio.Event] = set()
        self._closed = False
        self._closed_emitted = False
        self._surface_released = False

        self.events = EventBridge()
        # Registered before any host listener so the ledger is current
        # by the time host code sees a response.
        self.events.on(PageEvent.RESPONSE, self._on_response)
        self.events.on(PageEvent.LOCATION_CHANGE, self._on_navigation)
        self.events.on(PageEvent.FINISHED, self._on_navigation)
        self.events.on(PageEvent.CLOSED, self._on_closed)
        surface.bind(self.events)

    async def __aenter__(self) -> "Page":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def settings(self) -> PageSettings:
        return self._settings

    # --- events ---

    def on(self, event: PageEvent | str, handler: Listener) -> Listener:
        return self.events.on(event, handler)

    def off(self, event: PageEvent | str, handler: Listener) -> None:
        self.events.off(event, handler)

    def once(self, event: PageEvent | str, handler: Listener) -> Listener:
        return self.events.once(event, handler)

    def _on_response(self, record: Any) -> None:
        if isinstance(record, RequestRecord):
            self._ledger.record(record)
        else:
            logger.debug("Ignoring response event without a request record: %r", record)

    def _on_navigation(self, _payload: Any) -> None:
        for waker in self._nav_wakers:
            waker.set()

    def _on_closed(self, _payload: Any) -> None:
        self._closed_emitted = True
        self._teardown()

    def _teardown(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._active_waits:
            logger.info("Page closed — cancelling %d pending wait(s).", len(self._active_waits))
        for cancel in self._active_waits:
            cancel.set()
        self._ledger.clear()

    # --- delegated surface operations ---

    def _ensure_open(self) -> None:
        if self._closed:
            raise PageClosedError("Page has been closed.")

    async def navigate(self, url: str) -> None:
        self._ensure_open()
        logger.info("Navigating to %s", url)
        await self._surface.navigate(url)

    async def evaluate(self, script: str, *args: Any) -> Any:
        self._ensure_open()
        return await self._surface.evaluate(script, args)

    async def current_url(self) -> str:
        self._ensure_open()
        return await self._surface.current_url()

    async def show(self) -> None:
        self._ensure_open()
        await self._surface.show()

    async def hide(self) -> None:
        self._ensure_open()
        await self._surface.hide()

    async def screenshot(self, **options: Any) -> bytes:
        self._ensure_open()
        return await self._surface.screenshot(**options)

    async def cookies(self, url: str | None = None) -> list[Cookie]:
        """Return cookies for *url* (defaults to the current page URL)."""
        self._ensure_open()
        if url is None:
            url = await self._surface.current_url()
        return await self._surface.cookies(url)

    async def has_selector(self, selector: str) -> bool:
        """Return ``True`` if *selector* currently matches an element."""
        return bool(await self.evaluate(_SELECTOR_PRESENT_JS, selector))

    async def click(self, selector: str, **options: Any) -> None:
        self._ensure_open()
        await self._surface.click(selector, **options)

    async def input(self, selector: str, text: str, **options: Any) -> None:
        self._ensure_open()
        await self._surface.input(selector, text, **options)

    async def native_request(self, request: NativeRequest | str, **kwargs: Any) -> NativeResponse:
        """Send a request through the browser, sharing its cookies and session."""
        self._ensure_open()
        if isinstance(request, str):
            request = NativeRequest(url=request, **kwargs)
        return await self._surface.native_request(request)

    # --- waits ---

    async def _wait(
        self,
        predicate: Predicate,
        *,
        timeout: float | None,
        interval: float | None,
        times: int | None = None,
        wake: asyncio.Event | None = None,
    ) -> WaitResult:
        if timeout is None and times is None:
            timeout = self._settings.default_timeout
        if interval is None:
            interval = self._settings.poll_interval
        cancel = asyncio.Event()
        self._active_waits.add(cancel)
        try:
            return await wait_for(
                predicate,
                timeout=timeout,
                interval=interval,
                times=times,
                cancel=cancel,
                wake=wake,
            )
        finally:
            self._active_waits.discard(cancel)

    async def wait_for_selector(
        self,
        selector: str,
        *,
        times: int | None = None,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Wait until *selector* matches an element in the DOM."""
        await self._wait(
            lambda: self.has_selector(selector),
            timeout=timeout,
            interval=interval,
            times=times,
        )
        return True

    async def wait_for_function(
        self,
        fn: str | Callable[..., Any],
        *args: Any,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> Any:
        """Wait until *fn* returns a truthy value and return that value.

        *fn* is either JS function source evaluated in the page with *args*,
        or a Python callable invoked as ``fn(page, *args)``.
        """
        if isinstance(fn, str):
            predicate: Predicate = lambda: self.evaluate(fn, *args)
        elif callable(fn):
            predicate = lambda: fn(self, *args)
        else:
            raise TypeError(f"Expected JS source or a callable, got {type(fn).__name__}.")
        result = await self._wait(predicate, timeout=timeout, interval=interval)
        return result.value

    async def wait_for_request(
        self,
        matcher: MatcherLike,
        *,
        times: int | None = None,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> RequestRecord:
        """Wait for a request matching *matcher* observed after this call.

        Traffic recorded before the call never satisfies the wait.
        """
        match = resolve_matcher(matcher)
        since = self._ledger.mark()
        result = await self._wait(
            lambda: self._ledger.find(match, since=since),
            timeout=timeout,
            interval=interval,
            times=times,
        )
        return result.value

    # --- intercepted requests ---

    def get_requests(self) -> list[RequestRecord]:
        """Return a snapshot of every intercepted request, oldest first."""
        return self._ledger.all()

    def get_request_headers(self, matcher: MatcherLike) -> dict[str, str]:
        """Merge request headers of matching requests; the newest value wins."""
        return merged_headers(self._ledger, matcher)

    # --- authentication ---

    async def authenticate(
        self,
        start_url: str,
        evaluator: Evaluator,
        *,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> AuthStatus:
        """Open *start_url* and wait until *evaluator(page)* reports a login.

        Raises :class:`~pagepilot.exceptions.AuthError` on timeout.
        """
        await self.navigate(start_url)
        return await self.wait_for_authentication(evaluator, timeout=timeout, interval=interval)

    async def wait_for_authentication(
        self,
        evaluator: Evaluator,
        *,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> AuthStatus:
        """Poll *evaluator(page)* on every tick and navigation until it is truthy."""
        monitor = AuthMonitor(
            self,
            timeout=self._settings.auth_timeout,
            interval=self._settings.auth_interval,
        )
        cancel = asyncio.Event()
        wake = asyncio.Event()
        self._active_waits.add(cancel)
        self._nav_wakers.add(wake)
        try:
            return await monitor.run(
                evaluator, timeout=timeout, interval=interval, cancel=cancel, wake=wake
            )
        finally:
            self._active_waits.discard(cancel)
            self._nav_wakers.discard(wake)

    # --- lifecycle ---

    async def close(self) -> None:
        """Close the page, cancelling pending waits and dropping the ledger.

        The surface is released exactly once, even when the browser closed
        the page first.
        """
        if not self._closed:
            await self.events.emit(PageEvent.CLOSE)
            self._teardown()
        if not self._surface_released:
            self._surface_released = True
            await self._surface.close()
        if not self._closed_emitted:
            self._closed_emitted = True
            await self.events.emit(PageEvent.CLOSED)
        logger.info("Page closed.")
