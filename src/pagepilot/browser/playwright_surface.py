"""Playwright-backed implementation of BrowserSurface."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Sequence
from urllib.parse import urlparse

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Frame,
    Page,
    Request,
    Response,
    Route,
    async_playwright,
)

from pagepilot.browser.observers import install_observers
from pagepilot.events import EventBridge
from pagepilot.exceptions import SurfaceError
from pagepilot.interception.headers import normalize_headers
from pagepilot.models import (
    Cookie,
    NativeRequest,
    NativeResponse,
    PageEvent,
    RequestRecord,
    ResponseRecord,
)
from pagepilot.settings import PageSettings

logger = logging.getLogger(__name__)


def host_is_blocked(url: str, blocked_hosts: Iterable[str]) -> bool:
    """Return ``True`` if *url*'s host is, or is a subdomain of, a blocked host."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    return any(host == b or host.endswith("." + b) for b in blocked_hosts)


class PlaywrightSurface:
    """Embedded browser surface built on Playwright Chromium."""

    def __init__(self, settings: PageSettings | None = None) -> None:
        self._settings = settings or PageSettings()
        self._pw: Any = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._bridge: EventBridge | None = None
        self._closing = False

    @property
    def page(self) -> Page:
        assert self._page is not None, "Browser not launched — call launch() first."
        return self._page

    def bind(self, bridge: EventBridge) -> None:
        self._bridge = bridge

    async def _emit(self, event: PageEvent, payload: Any = None) -> None:
        if self._bridge is not None:
            await self._bridge.emit(event, payload)

    # --- lifecycle ---

    async def launch(self) -> None:
        settings = self._settings
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(
                headless=settings.headless,
                slow_mo=settings.slow_mo,
                args=["--disable-dev-shm-usage"],
            )
            ctx_kwargs: dict[str, Any] = {"viewport": {"width": 1280, "height": 900}}
            if settings.storage_state_path and Path(settings.storage_state_path).exists():
                ctx_kwargs["storage_state"] = settings.storage_state_path

            self._context = await self._browser.new_context(**ctx_kwargs)
            await install_observers(self._context, self._on_dom_change, self._on_dispatch)
            if settings.blocked_hosts:
                await self._context.route("**/*", self._on_route)

            self._page = await self._context.new_page()
            self._wire(self._page)
            logger.info("Browser launched (headless=%s).", settings.headless)
        except Exception as exc:
            try:
                await self.close()
            except Exception as cleanup_exc:
                logger.warning("Cleanup after failed launch also failed: %s", cleanup_exc)
            raise SurfaceError(f"Failed to start Playwright Chromium: {exc}") from exc

    async def close(self) -> None:
        self._closing = True
        context, browser, pw = self._context, self._browser, self._pw
        self._context = self._browser = self._pw = None
        if context:
            await context.close()
        if browser:
            await browser.close()
        if pw:
            await pw.stop()
        logger.info("Browser closed.")

    # --- native events ---

    def _wire(self, page: Page) -> None:
        page.on("request", self._on_request)
        page.on("response", self._on_response)
        page.on("framenavigated", self._on_frame_navigated)
        page.on("load", self._on_load)
        page.on("close", self._on_close)

    async def _on_request(self, request: Request) -> None:
        if request.is_navigation_request() and request.frame == self.page.main_frame:
            await self._emit(PageEvent.STARTED, request.url)
        await self._emit(
            PageEvent.REQUEST,
            {"url": request.url, "method": request.method, "resource_type": request.resource_type},
        )

    async def _on_response(self, response: Response) -> None:
        request = response.request
        try:
            request_headers = await request.all_headers()
            response_headers = await response.all_headers()
        except PlaywrightError:
            # Raw headers are unavailable once the page is gone.
            request_headers = request.headers
            response_headers = response.headers

        try:
            request_body = request.post_data
        except UnicodeDecodeError:
            request_body = None

        response_body = None
        if self._settings.capture_bodies:
            try:
                response_body = await response.body()
            except PlaywrightError as exc:
                logger.debug("No body for %s: %s", response.url, exc)

        record = RequestRecord(
            url=request.url,
            method=request.method,
            request_headers=normalize_headers(request_headers),
            request_body=request_body,
            response=ResponseRecord(
                status=response.status,
                response_headers=normalize_headers(response_headers),
                response_body=response_body,
            ),
            resource_type=request.resource_type,
        )
        await self._emit(PageEvent.RESPONSE, record)

    async def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self.page.main_frame:
            await self._emit(PageEvent.LOCATION_CHANGE, frame.url)

    async def _on_load(self, page: Page) -> None:
        await self._emit(PageEvent.FINISHED, page.url)

    async def _on_close(self, _page: Page) -> None:
        if self._closing:
            return
        logger.info("Page closed by the browser.")
        await self._emit(PageEvent.CLOSED)

    async def _on_dom_change(self, source: dict[str, Any], count: int) -> None:
        frame = source.get("frame")
        await self._emit(
            PageEvent.DOM_CHANGE,
            {"url": frame.url if frame is not None else "", "mutations": count},
        )

    async def _on_dispatch(self, _source: dict[str, Any], message: Any) -> None:
        await self._emit(PageEvent.DISPATCH, message)

    async def _on_route(self, route: Route, request: Request) -> None:
        if host_is_blocked(request.url, self._settings.blocked_hosts):
            logger.info("Blocked request to %s", request.url)
            await route.abort("blockedbyclient")
            await self._emit(PageEvent.HOST_BLOCKED, request.url)
            return
        await route.continue_()

    # --- navigation & scripting ---

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="domcontentloaded")

    async def evaluate(self, script: str, args: Sequence[Any] = ()) -> Any:
        if not args:
            return await self.page.evaluate(script)
        if len(args) == 1:
            return await self.page.evaluate(script, args[0])
        # Playwright passes a single argument; spread the list into the function.
        return await self.page.evaluate(f"(args) => ({script})(...args)", list(args))

    async def current_url(self) -> str:
        return self.page.url

    # --- window ---

    async def show(self) -> None:
        await self._set_window_state("normal")
        await self.page.bring_to_front()

    async def hide(self) -> None:
        await self._set_window_state("minimized")

    async def _set_window_state(self, state: str) -> None:
        assert self._context is not None
        session = await self._context.new_cdp_session(self.page)
        try:
            info = await session.send("Browser.getWindowForTarget")
            await session.send(
                "Browser.setWindowBounds",
                {"windowId": info["windowId"], "bounds": {"windowState": state}},
            )
        finally:
            await session.detach()

    async def screenshot(self, **options: Any) -> bytes:
        return await self.page.screenshot(**options)

    # --- interaction ---

    async def click(self, selector: str, **options: Any) -> None:
        await self.page.click(selector, **options)

    async def input(self, selector: str, text: str, **options: Any) -> None:
        await self.page.fill(selector, text, **options)

    # --- state ---

    async def cookies(self, url: str) -> list[Cookie]:
        assert self._context is not None
        raw = await self._context.cookies(url)
        return [
            Cookie(
                name=c["name"],
                value=c["value"],
                domain=c.get("domain", ""),
                path=c.get("path", "/"),
                expires=c.get("expires", -1),
                http_only=c.get("httpOnly", False),
                secure=c.get("secure", False),
                same_site=c.get("sameSite", ""),
            )
            for c in raw
        ]

    async def save_storage_state(self, path: str) -> None:
        if self._context is None:
            return
        await self._context.storage_state(path=path)
        logger.debug("Storage state saved to %s.", path)

    async def native_request(self, request: NativeRequest) -> NativeResponse:
        assert self._context is not None
        response = await self._context.request.fetch(
            request.url,
            method=request.method,
            headers=dict(request.headers) or None,
            data=request.body,
        )
        try:
            body = await response.body()
            return NativeResponse(
                url=response.url,
                status=response.status,
                headers=normalize_headers(response.headers),
                body=body,
            )
        finally:
            await response.dispose()
