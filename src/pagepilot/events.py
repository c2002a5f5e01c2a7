"""Per-page publish/subscribe registry for surface lifecycle events."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from pagepilot.models import PageEvent

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


def _as_event(event: PageEvent | str) -> PageEvent:
    try:
        return PageEvent(event)
    except ValueError:
        raise ValueError(f"Unknown page event {event!r}.") from None


class EventBridge:
    """Relays surface events to listeners in registration order.

    Listeners may be plain functions or coroutine functions.  A listener
    that raises is logged and skipped; the rest still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[PageEvent, list[Listener]] = {e: [] for e in PageEvent}

    def on(self, event: PageEvent | str, listener: Listener) -> Listener:
        self._listeners[_as_event(event)].append(listener)
        return listener

    def off(self, event: PageEvent | str, listener: Listener) -> None:
        try:
            self._listeners[_as_event(event)].remove(listener)
        except ValueError:
            pass

    def once(self, event: PageEvent | str, listener: Listener) -> Listener:
        """Register *listener* for the next occurrence of *event* only."""
        ev = _as_event(event)

        def _wrapper(payload: Any) -> Any:
            self.off(ev, _wrapper)
            return listener(payload)

        return self.on(ev, _wrapper)

    def listeners(self, event: PageEvent | str) -> list[Listener]:
        return list(self._listeners[_as_event(event)])

    def clear(self) -> None:
        for bucket in self._listeners.values():
            bucket.clear()

    async def emit(self, event: PageEvent | str, payload: Any = None) -> None:
        ev = _as_event(event)
        for listener in list(self._listeners[ev]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener %r failed on %s event.", listener, ev.value)
