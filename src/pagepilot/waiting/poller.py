"""Generic wait-until-condition loop.

Every wait in PagePilot (selectors, page functions, requests, auth
detection) is a predicate handed to :func:`wait_for`.  The loop suspends
only the calling task, so independent waits run side by side on the same
event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from pagepilot.exceptions import CancellationError, PredicateError, WaitTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_INTERVAL = 0.25

Predicate = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class WaitDescriptor:
    """Book-keeping for one in-flight wait."""

    predicate: Predicate
    interval: float
    timeout: float | None
    times: int | None
    started_at: float = field(default_factory=time.monotonic)
    attempts: int = 0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def exhausted(self) -> bool:
        if self.times is not None and self.attempts >= self.times:
            return True
        return self.timeout is not None and self.elapsed >= self.timeout

    def next_pause(self) -> float:
        """Seconds to sleep before the next check, clamped to the remaining budget."""
        pause = max(self.interval, 0.0)
        if self.timeout is not None:
            pause = min(pause, max(self.timeout - self.elapsed, 0.0))
        return pause


@dataclass(frozen=True)
class WaitResult:
    """Outcome of a successful wait."""

    value: Any
    elapsed: float
    attempts: int
    settled: bool = True


async def wait_for(
    predicate: Predicate,
    *,
    timeout: float | None = None,
    interval: float = DEFAULT_INTERVAL,
    times: int | None = None,
    cancel: asyncio.Event | None = None,
    wake: asyncio.Event | None = None,
) -> WaitResult:
    """Evaluate *predicate* until it is truthy.

    The predicate runs immediately, then every *interval* seconds.  The wait
    fails with :class:`WaitTimeoutError` once *timeout* seconds have elapsed
    or *times* evaluations have been made, whichever comes first.  With
    neither bound, :data:`DEFAULT_TIMEOUT` applies.

    Setting *cancel* aborts the wait with :class:`CancellationError`; setting
    *wake* cuts the current pause short.  A predicate that raises aborts the
    wait with :class:`PredicateError` chained to the original error, unless
    *cancel* was set meanwhile, in which case it is a cancellation.
    """
    if times is not None and times < 1:
        raise ValueError("times must be >= 1")
    if timeout is None and times is None:
        timeout = DEFAULT_TIMEOUT

    desc = WaitDescriptor(predicate=predicate, interval=interval, timeout=timeout, times=times)
    deadline_reached = False

    while True:
        _check_cancel(desc, cancel)

        try:
            value = await _evaluate(desc)
        except PredicateError as exc:
            # A predicate that fails because the page went away mid-check is a cancellation.
            _check_cancel(desc, cancel, cause=exc.__cause__ or exc)
            raise
        if value:
            return WaitResult(value=value, elapsed=desc.elapsed, attempts=desc.attempts)
        _check_cancel(desc, cancel)

        if deadline_reached or desc.exhausted():
            raise WaitTimeoutError(
                f"Condition not met after {desc.elapsed:.3f}s and {desc.attempts} attempt(s).",
                elapsed=desc.elapsed,
                attempts=desc.attempts,
            )

        pause = desc.next_pause()
        # The last pause runs out the clock; the check after it is the final one.
        deadline_reached = (
            desc.timeout is not None and desc.elapsed + pause >= desc.timeout
        )
        await _pause(pause, cancel, wake)


def _check_cancel(
    desc: WaitDescriptor,
    cancel: asyncio.Event | None,
    cause: BaseException | None = None,
) -> None:
    if cancel is None or not cancel.is_set():
        return
    raise CancellationError(
        f"Wait cancelled after {desc.elapsed:.3f}s and {desc.attempts} attempt(s)."
    ) from cause


async def _evaluate(desc: WaitDescriptor) -> Any:
    desc.attempts += 1
    try:
        value = desc.predicate()
        if inspect.isawaitable(value):
            value = await value
    except (PredicateError, CancellationError):
        raise
    except Exception as exc:
        logger.debug("Predicate raised on attempt %d: %s", desc.attempts, exc)
        raise PredicateError(f"Predicate raised {type(exc).__name__}: {exc}") from exc
    return value


async def _pause(
    delay: float,
    cancel: asyncio.Event | None,
    wake: asyncio.Event | None,
) -> None:
    """Sleep for *delay* seconds, returning early if *cancel* or *wake* is set."""
    events = [e for e in (cancel, wake) if e is not None]
    if delay <= 0 or not events:
        await asyncio.sleep(delay)
        return

    waiters = [asyncio.ensure_future(e.wait()) for e in events]
    try:
        await asyncio.wait(waiters, timeout=delay, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for w in waiters:
            w.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)
    if wake is not None and wake.is_set():
        wake.clear()
