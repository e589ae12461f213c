"""
Tests for the timer abstractions
"""

import asyncio

import pytest

from shortener_design.scheduling import AsyncioScheduler, VirtualScheduler


def test_virtual_scheduler_fires_in_due_order():
    """Callbacks fire in due-time order regardless of scheduling order"""
    scheduler = VirtualScheduler()
    fired = []
    scheduler.call_later(300, lambda: fired.append("c"))
    scheduler.call_later(100, lambda: fired.append("a"))
    scheduler.call_later(200, lambda: fired.append("b"))

    assert scheduler.advance(1000) == 3
    assert fired == ["a", "b", "c"]
    assert scheduler.now_ms == 1000


def test_virtual_scheduler_ties_fire_in_scheduling_order():
    scheduler = VirtualScheduler()
    fired = []
    for label in ("first", "second", "third"):
        scheduler.call_later(50, lambda label=label: fired.append(label))

    scheduler.advance(50)
    assert fired == ["first", "second", "third"]


def test_virtual_scheduler_clock_during_callback():
    """now_ms equals the due time while a callback runs"""
    scheduler = VirtualScheduler()
    seen = []
    scheduler.call_later(250, lambda: seen.append(scheduler.now_ms))
    scheduler.advance(1000)
    assert seen == [250]


def test_virtual_scheduler_cancel():
    """Cancelled callbacks never fire"""
    scheduler = VirtualScheduler()
    fired = []
    handle = scheduler.call_later(100, lambda: fired.append("x"))
    assert scheduler.pending == 1

    handle.cancel()
    assert scheduler.pending == 0
    assert scheduler.advance(500) == 0
    assert fired == []


def test_virtual_scheduler_does_not_fire_early():
    scheduler = VirtualScheduler()
    fired = []
    scheduler.call_later(100, lambda: fired.append(1))
    scheduler.advance(99)
    assert fired == []
    scheduler.advance(1)
    assert fired == [1]


def test_virtual_scheduler_chained_callbacks():
    """Callbacks scheduled from callbacks fire within the same advance"""
    scheduler = VirtualScheduler()
    fired = []

    def chain(n):
        fired.append((n, scheduler.now_ms))
        if n < 3:
            scheduler.call_later(10, lambda: chain(n + 1))

    scheduler.call_later(10, lambda: chain(1))
    scheduler.advance(100)
    assert fired == [(1, 10), (2, 20), (3, 30)]


def test_run_until_idle():
    scheduler = VirtualScheduler()
    fired = []
    scheduler.call_later(5000, lambda: fired.append("late"))
    assert scheduler.run_until_idle() == 1
    assert scheduler.now_ms == 5000
    assert fired == ["late"]


def test_run_until_idle_limit():
    """A callback that keeps rescheduling itself trips the safety limit"""
    scheduler = VirtualScheduler()

    def forever():
        scheduler.call_later(1, forever)

    scheduler.call_later(1, forever)
    with pytest.raises(RuntimeError):
        scheduler.run_until_idle(limit=50)


def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        VirtualScheduler().call_later(-1, lambda: None)


def test_asyncio_scheduler_fires_and_cancels():
    """The asyncio scheduler converts milliseconds and supports cancel"""

    async def scenario():
        scheduler = AsyncioScheduler()
        fired = []
        scheduler.call_later(5, lambda: fired.append("kept"))
        cancelled = scheduler.call_later(5, lambda: fired.append("dropped"))
        cancelled.cancel()
        await asyncio.sleep(0.05)
        return fired

    assert asyncio.run(scenario()) == ["kept"]
