"""
Timer abstractions used by the step sequencer
Provides an asyncio-backed scheduler and a virtual clock for deterministic replay
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Anything with a cancel() that prevents a pending callback from firing"""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Delayed-callback source: fire `callback` once after `delay_ms` milliseconds"""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop

    Callbacks run on the loop thread, so ticks of one sequencer are
    serialized by the loop itself.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay_ms / 1000.0, callback)


class VirtualTimer:
    """Pending callback on a VirtualScheduler"""

    def __init__(self, due_ms: float, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """
    Simulated clock for deterministic timing

    Time only moves when advance() or run_until_idle() is called. Callbacks
    fire in due-time order; callbacks due at the same instant fire in the
    order they were scheduled.

    Attributes:
        now_ms: Current simulated time in milliseconds
    """

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = start_ms
        self._queue: List[Tuple[float, int, VirtualTimer]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> VirtualTimer:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got {delay_ms}")
        timer = VirtualTimer(self.now_ms + delay_ms, callback)
        heapq.heappush(self._queue, (timer.due_ms, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not fired or been cancelled"""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _pop_due(self, until_ms: float) -> Optional[VirtualTimer]:
        while self._queue and self._queue[0][0] <= until_ms:
            _, _, timer = heapq.heappop(self._queue)
            if not timer.cancelled:
                return timer
        return None

    def advance(self, delta_ms: float) -> int:
        """
        Move the clock forward, firing every callback that falls due

        Args:
            delta_ms: Milliseconds to advance

        Returns:
            Number of callbacks fired
        """
        target = self.now_ms + delta_ms
        fired = 0
        while True:
            timer = self._pop_due(target)
            if timer is None:
                break
            self.now_ms = timer.due_ms
            timer.callback()
            fired += 1
        self.now_ms = target
        return fired

    def run_until_idle(self, limit: int = 100_000) -> int:
        """
        Fire callbacks until nothing is pending

        Args:
            limit: Safety bound on the number of callbacks fired

        Returns:
            Number of callbacks fired

        Raises:
            RuntimeError: If the limit is reached with work still pending
        """
        fired = 0
        while self.pending:
            if fired >= limit:
                raise RuntimeError(f"Scheduler still busy after {limit} callbacks")
            next_due = min(due for due, _, timer in self._queue if not timer.cancelled)
            fired += self.advance(next_due - self.now_ms)
        return fired
