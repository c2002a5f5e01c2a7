"""Tests for the condition poller."""

from __future__ import annotations

import asyncio
import math
import time

import pytest

from pagepilot.exceptions import CancellationError, PredicateError, WaitTimeoutError
from pagepilot.waiting.poller import wait_for

pytestmark = pytest.mark.asyncio


class Counter:
    """Predicate that turns truthy on the *succeed_on*-th call."""

    def __init__(self, succeed_on: int | None = None) -> None:
        self.calls = 0
        self.succeed_on = succeed_on

    def __call__(self) -> bool:
        self.calls += 1
        return self.succeed_on is not None and self.calls >= self.succeed_on


async def test_truthy_first_check_returns_immediately():
    pred = Counter(succeed_on=1)
    result = await wait_for(pred, timeout=5, interval=1)
    assert result.settled is True
    assert result.attempts == 1
    assert pred.calls == 1
    assert result.elapsed < 0.05


async def test_result_carries_predicate_value():
    result = await wait_for(lambda: {"token": "abc"}, timeout=1)
    assert result.value == {"token": "abc"}


async def test_async_predicate():
    calls = 0

    async def pred():
        nonlocal calls
        calls += 1
        return calls == 2

    result = await wait_for(pred, timeout=1, interval=0.01)
    assert result.attempts == 2


async def test_timeout_bounds_evaluations_and_elapsed():
    timeout, interval = 0.1, 0.03
    pred = Counter()
    with pytest.raises(WaitTimeoutError) as exc_info:
        await wait_for(pred, timeout=timeout, interval=interval)
    exc = exc_info.value
    assert pred.calls == exc.attempts
    assert exc.attempts <= math.ceil(timeout / interval) + 1
    assert exc.elapsed >= timeout - 0.005


async def test_succeeds_on_third_check():
    pred = Counter(succeed_on=3)
    start = time.monotonic()
    result = await wait_for(pred, timeout=2, interval=0.02)
    assert result.attempts == 3
    assert time.monotonic() - start >= 0.035


async def test_times_bound():
    pred = Counter()
    with pytest.raises(WaitTimeoutError) as exc_info:
        await wait_for(pred, times=3, interval=0)
    assert exc_info.value.attempts == 3
    assert pred.calls == 3


async def test_first_bound_to_trigger_wins():
    pred = Counter()
    start = time.monotonic()
    with pytest.raises(WaitTimeoutError):
        await wait_for(pred, times=2, timeout=10, interval=0.01)
    assert pred.calls == 2
    assert time.monotonic() - start < 1


async def test_times_must_be_positive():
    with pytest.raises(ValueError):
        await wait_for(lambda: True, times=0)


async def test_zero_interval_yields_to_other_tasks():
    flag = False

    async def flip():
        nonlocal flag
        await asyncio.sleep(0)
        flag = True

    task = asyncio.create_task(flip())
    result = await wait_for(lambda: flag, timeout=1, interval=0)
    await task
    assert result.value is True


async def test_predicate_error_aborts_wait():
    boom = RuntimeError("selector engine crashed")
    calls = 0

    def pred():
        nonlocal calls
        calls += 1
        raise boom

    with pytest.raises(PredicateError) as exc_info:
        await wait_for(pred, timeout=5, interval=0.01)
    assert exc_info.value.__cause__ is boom
    assert calls == 1


async def test_cancel_before_first_check():
    cancel = asyncio.Event()
    cancel.set()
    pred = Counter(succeed_on=1)
    with pytest.raises(CancellationError):
        await wait_for(pred, timeout=5, cancel=cancel)
    assert pred.calls == 0


async def test_cancel_interrupts_pause():
    cancel = asyncio.Event()
    task = asyncio.create_task(wait_for(Counter(), timeout=60, interval=10, cancel=cancel))
    await asyncio.sleep(0.05)
    cancel.set()
    with pytest.raises(CancellationError):
        await asyncio.wait_for(task, timeout=1)


async def test_predicate_failing_after_cancel_is_a_cancellation():
    cancel = asyncio.Event()
    gone = RuntimeError("page gone")

    async def pred():
        cancel.set()
        raise gone

    with pytest.raises(CancellationError) as exc_info:
        await wait_for(pred, timeout=5, interval=0.01, cancel=cancel)
    assert exc_info.value.__cause__ is gone


async def test_falsy_result_after_cancel_stops_immediately():
    cancel = asyncio.Event()
    calls = 0

    def pred():
        nonlocal calls
        calls += 1
        cancel.set()
        return False

    with pytest.raises(CancellationError):
        await wait_for(pred, timeout=5, interval=10, cancel=cancel)
    assert calls == 1


async def test_wake_shortens_pause():
    wake = asyncio.Event()
    ready = False

    async def trigger():
        nonlocal ready
        await asyncio.sleep(0.05)
        ready = True
        wake.set()

    task = asyncio.create_task(trigger())
    start = time.monotonic()
    result = await wait_for(lambda: ready, timeout=60, interval=10, wake=wake)
    await task
    assert result.attempts == 2
    assert time.monotonic() - start < 1
    assert not wake.is_set()


async def test_independent_waits_do_not_serialise():
    start = time.monotonic()
    first, second = Counter(succeed_on=5), Counter(succeed_on=5)
    await asyncio.gather(
        wait_for(first, timeout=2, interval=0.05),
        wait_for(second, timeout=2, interval=0.05),
    )
    # Each wait needs ~0.2s on its own.
    assert time.monotonic() - start < 0.35
