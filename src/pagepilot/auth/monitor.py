"""Authentication detection on top of the condition poller."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from pagepilot.exceptions import AuthError, CancellationError, PredicateError, WaitTimeoutError
from pagepilot.models import AuthState, AuthStatus
from pagepilot.waiting.poller import wait_for

if TYPE_CHECKING:
    from pagepilot.page import Page

logger = logging.getLogger(__name__)

Evaluator = Callable[["Page"], Union[Any, Awaitable[Any]]]

_TERMINAL = frozenset(
    {AuthState.AUTHENTICATED, AuthState.TIMED_OUT, AuthState.CANCELLED, AuthState.FAILED}
)


class AuthMonitor:
    """Single-use state machine: ``IDLE -> POLLING -> terminal``.

    ``AUTHENTICATED`` and ``CANCELLED`` come back as :class:`AuthStatus`
    values.  ``TIMED_OUT`` raises :class:`AuthError`; an evaluator that
    raises ends in ``FAILED`` and its :class:`PredicateError` propagates.
    """

    def __init__(self, page: Page, *, timeout: float = 60.0, interval: float = 0.5) -> None:
        self._page = page
        self._timeout = timeout
        self._interval = interval
        self._state = AuthState.IDLE

    @property
    def state(self) -> AuthState:
        return self._state

    async def run(
        self,
        evaluator: Evaluator,
        *,
        timeout: float | None = None,
        interval: float | None = None,
        cancel: asyncio.Event | None = None,
        wake: asyncio.Event | None = None,
    ) -> AuthStatus:
        """Poll *evaluator(page)* until it is truthy, times out or is cancelled."""
        if self._state in _TERMINAL:
            raise RuntimeError(f"Auth monitor already finished ({self._state.value}).")
        if self._state is AuthState.POLLING:
            raise RuntimeError("Auth monitor is already polling.")

        timeout = self._timeout if timeout is None else timeout
        interval = self._interval if interval is None else interval
        self._state = AuthState.POLLING
        logger.info("Waiting for authentication (timeout %.1fs)…", timeout)

        try:
            result = await wait_for(
                lambda: evaluator(self._page),
                timeout=timeout,
                interval=interval,
                cancel=cancel,
                wake=wake,
            )
        except WaitTimeoutError as exc:
            self._state = AuthState.TIMED_OUT
            logger.warning("Authentication not detected within %.1fs.", timeout)
            raise AuthError(
                f"Authentication not detected after {exc.elapsed:.3f}s "
                f"({exc.attempts} check(s)).",
                elapsed=exc.elapsed,
                attempts=exc.attempts,
            ) from exc
        except CancellationError:
            self._state = AuthState.CANCELLED
            logger.info("Authentication wait cancelled — page closed.")
            return AuthStatus.CANCELLED
        except PredicateError:
            self._state = AuthState.FAILED
            raise

        self._state = AuthState.AUTHENTICATED
        logger.info(
            "Authenticated after %.2fs (%d check(s)).", result.elapsed, result.attempts
        )
        return AuthStatus.AUTHENTICATED
