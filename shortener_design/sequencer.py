"""
Step sequencer for animated flow visualizations
Advances a cursor over an ordered list of steps at a fixed cadence
"""

from typing import Callable, NamedTuple, Optional
import logging
import math

from shortener_design.exceptions import (
    InvalidStepCountError,
    SequencerError,
    TimerConflictError,
)
from shortener_design.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class SequencerState(NamedTuple):
    """Cursor snapshot; cursor is None while idle"""

    cursor: Optional[int]
    running: bool


class StepSequencer:
    """
    Timed state machine that walks a cursor from 0 to N-1

    A run starts at cursor 0 and moves forward by exactly one step per tick.
    The tick that finds the cursor on the last step ends the run. With
    reset_on_complete the cursor goes back to idle (None) after
    settle_delay_ms; otherwise it stays parked on the last step until the
    next start().

    At most one timer drives the cursor: start() cancels whatever the
    previous run had scheduled, and every callback carries the generation
    of the run that scheduled it so a stale callback can never touch a newer run.

    Attributes:
        cursor: Current step index, or None while idle
        running: True while ticks are being scheduled
        step_count: Number of steps of the current or last run
        tick_interval_ms: Tick interval of the current or last run
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        reset_on_complete: bool = False,
        settle_delay_ms: float = 1000,
        on_step: Optional[Callable[[Optional[int]], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        name: str = "sequencer",
    ):
        """
        Initialize an idle sequencer

        Args:
            scheduler: Timer source (AsyncioScheduler or VirtualScheduler)
            reset_on_complete: Return to idle after the run finishes
            settle_delay_ms: Delay between completion and reset
            on_step: Called with each new cursor value, and with None on reset
            on_complete: Called once when a run finishes on its own
            name: Label used in log messages
        """
        if not math.isfinite(settle_delay_ms) or settle_delay_ms < 0:
            raise SequencerError(
                code="invalid_settle_delay",
                message=f"Settle delay must be non-negative, got {settle_delay_ms}",
            )
        self.scheduler = scheduler
        self.reset_on_complete = reset_on_complete
        self.settle_delay_ms = settle_delay_ms
        self.on_step = on_step
        self.on_complete = on_complete
        self.name = name

        self.cursor: Optional[int] = None
        self.running = False
        self.step_count = 0
        self.tick_interval_ms: float = 0

        self._generation = 0
        self._tick_handle: Optional[TimerHandle] = None
        self._settle_handle: Optional[TimerHandle] = None
        self._in_tick = False

    @property
    def state(self) -> SequencerState:
        return SequencerState(self.cursor, self.running)

    @property
    def settled(self) -> bool:
        """True when nothing is scheduled: idle, parked, cancelled, or reset"""
        return not self.running and self._settle_handle is None

    def start(self, step_count: int, tick_interval_ms: float) -> int:
        """
        Begin a new run, cancelling any run in progress

        Args:
            step_count: Number of steps N (must be >= 1)
            tick_interval_ms: Milliseconds between ticks (must be > 0)

        Returns:
            Generation number identifying this run

        Raises:
            InvalidStepCountError: If step_count is not a positive integer
            SequencerError: If tick_interval_ms is not a finite positive number
        """
        if isinstance(step_count, bool) or not isinstance(step_count, int) or step_count <= 0:
            raise InvalidStepCountError(step_count)
        if not math.isfinite(tick_interval_ms) or tick_interval_ms <= 0:
            raise SequencerError(
                code="invalid_tick_interval",
                message=f"Tick interval must be a finite positive number, got {tick_interval_ms}",
                details={"tick_interval_ms": tick_interval_ms},
            )

        self._clear_timers()
        self._generation += 1
        self.step_count = step_count
        self.tick_interval_ms = tick_interval_ms
        self.cursor = 0
        self.running = True
        logger.info(
            f"{self.name}: run {self._generation} started "
            f"({step_count} steps, {tick_interval_ms}ms per tick)"
        )

        self._schedule_tick(self._generation)
        self._notify_step(0)
        return self._generation

    def cancel(self) -> None:
        """
        Stop the current run immediately

        The cursor is left where it is; pending ticks and a pending reset are dropped.
        """
        if self.running or self._settle_handle is not None:
            logger.info(f"{self.name}: run {self._generation} cancelled at cursor {self.cursor}")
        self._clear_timers()
        self._generation += 1
        self.running = False

    def reset(self) -> None:
        """Cancel and return the cursor to idle"""
        self.cancel()
        if self.cursor is not None:
            self.cursor = None
            self._notify_step(None)

    def _clear_timers(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

    def _schedule_tick(self, generation: int) -> None:
        self._tick_handle = self.scheduler.call_later(
            self.tick_interval_ms, lambda: self._tick(generation)
        )

    def _tick(self, generation: int) -> None:
        if generation != self._generation or not self.running:
            logger.debug(f"{self.name}: dropped stale tick of run {generation}")
            return
        if self._in_tick:
            raise TimerConflictError(
                self.name, f"Tick of run {generation} overlapped a tick in progress"
            )

        self._in_tick = True
        try:
            self._tick_handle = None
            if self.cursor < self.step_count - 1:
                self.cursor += 1
                logger.debug(f"{self.name}: cursor -> {self.cursor}")
                # Scheduled before notifying: observers may restart, cancel or raise
                self._schedule_tick(generation)
                self._notify_step(self.cursor)
            else:
                self._finish(generation)
        finally:
            self._in_tick = False

    def _finish(self, generation: int) -> None:
        self.running = False
        logger.info(f"{self.name}: run {generation} completed on step {self.cursor}")
        if self.reset_on_complete:
            self._settle_handle = self.scheduler.call_later(
                self.settle_delay_ms, lambda: self._settle(generation)
            )
        if self.on_complete is not None:
            self.on_complete()

    def _settle(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug(f"{self.name}: dropped stale reset of run {generation}")
            return
        self._settle_handle = None
        self.cursor = None
        self._notify_step(None)

    def _notify_step(self, cursor: Optional[int]) -> None:
        if self.on_step is not None:
            self.on_step(cursor)
