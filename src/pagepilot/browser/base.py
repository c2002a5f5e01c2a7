"""Protocol definition for embedded browser surfaces."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from pagepilot.events import EventBridge
from pagepilot.models import Cookie, NativeRequest, NativeResponse


@runtime_checkable
class BrowserSurface(Protocol):
    """Capabilities PagePilot needs from the browser hosting the page.

    Every call is async so the page façade can ``await`` each one.  The
    surface reports lifecycle and network activity by emitting
    :class:`~pagepilot.models.PageEvent` values on the bridge given to
    :meth:`bind`.
    """

    def bind(self, bridge: EventBridge) -> None:
        """Attach the bridge that receives this surface's events."""
        ...

    async def navigate(self, url: str) -> None:
        """Load *url* in the page."""
        ...

    async def evaluate(self, script: str, args: Sequence[Any] = ()) -> Any:
        """Run JS *script* (an expression or function source) with *args*."""
        ...

    async def current_url(self) -> str:
        """Return the URL currently shown by the page."""
        ...

    async def show(self) -> None:
        """Make the browser UI visible."""
        ...

    async def hide(self) -> None:
        """Hide the browser UI."""
        ...

    async def screenshot(self, **options: Any) -> bytes:
        """Return an encoded image of the page."""
        ...

    async def cookies(self, url: str) -> list[Cookie]:
        """Return cookies that would be sent to *url*."""
        ...

    async def click(self, selector: str, **options: Any) -> None:
        """Click the element matching *selector*."""
        ...

    async def input(self, selector: str, text: str, **options: Any) -> None:
        """Type *text* into the element matching *selector*."""
        ...

    async def native_request(self, request: NativeRequest) -> NativeResponse:
        """Send *request* through the browser's own network stack."""
        ...

    async def close(self) -> None:
        """Tear the page down and free resources."""
        ...
