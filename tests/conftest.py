"""Shared test fixtures."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from pagepilot.events import EventBridge
from pagepilot.models import (
    Cookie,
    NativeRequest,
    NativeResponse,
    PageEvent,
    RequestRecord,
    ResponseRecord,
)
from pagepilot.page import Page
from pagepilot.settings import PageSettings


class FakeSurface:
    """In-memory stand-in for an embedded browser surface."""

    def __init__(self) -> None:
        self.bridge: EventBridge | None = None
        self.url = "about:blank"
        self.selectors: set[str] = set()
        self.js_results: dict[str, Any] = {}
        self.cookie_jar: list[Cookie] = []
        self.navigations: list[str] = []
        self.scripts: list[tuple[str, tuple]] = []
        self.clicks: list[str] = []
        self.inputs: list[tuple[str, str]] = []
        self.visible = True
        self.closed = False

    def bind(self, bridge: EventBridge) -> None:
        self.bridge = bridge

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)
        self.url = url
        await self.bridge.emit(PageEvent.LOCATION_CHANGE, url)

    async def evaluate(self, script: str, args: Sequence[Any] = ()) -> Any:
        self.scripts.append((script, tuple(args)))
        if "querySelector" in script:
            return args[0] in self.selectors
        value = self.js_results.get(script)
        return value(*args) if callable(value) else value

    async def current_url(self) -> str:
        return self.url

    async def show(self) -> None:
        self.visible = True

    async def hide(self) -> None:
        self.visible = False

    async def screenshot(self, **options: Any) -> bytes:
        return b"\x89PNG-fake"

    async def cookies(self, url: str) -> list[Cookie]:
        return [c for c in self.cookie_jar if c.domain in url]

    async def click(self, selector: str, **options: Any) -> None:
        self.clicks.append(selector)

    async def input(self, selector: str, text: str, **options: Any) -> None:
        self.inputs.append((selector, text))

    async def native_request(self, request: NativeRequest) -> NativeResponse:
        return NativeResponse(
            url=request.url,
            status=200,
            headers={"x-method": request.method},
            body=b"ok",
        )

    async def close(self) -> None:
        self.closed = True

    # --- test helpers ---

    async def respond(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        status: int = 200,
        method: str = "GET",
    ) -> RequestRecord:
        """Emit a response event as if the page had fetched *url*."""
        record = RequestRecord(
            url=url,
            method=method,
            request_headers=headers or {},
            response=ResponseRecord(status=status),
        )
        await self.bridge.emit(PageEvent.RESPONSE, record)
        return record


@pytest.fixture()
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture()
def settings() -> PageSettings:
    return PageSettings(
        default_timeout=2.0,
        poll_interval=0.01,
        auth_timeout=2.0,
        auth_interval=0.01,
    )


@pytest.fixture()
def page(surface, settings) -> Page:
    return Page(surface, settings)


@pytest.fixture()
def tmp_settings_yaml(tmp_path):
    """Write a minimal pagepilot.yaml and return its path."""
    content = """\
start_url: "https://app.example.com/login"
headless: true
default_timeout: 30
poll_interval: 0.5
auth_timeout: 90
auth_success_url_fragments:
  - "/dashboard"
auth_cookie_names:
  - "session_id"
blocked_hosts:
  - " Ads.Example.net "
capture_bodies: true
max_ledger_records: 500
export_dir: "{export}"
export_format: "CSV"
""".format(export=str(tmp_path / "exports"))
    p = tmp_path / "pagepilot.yaml"
    p.write_text(content)
    return p
