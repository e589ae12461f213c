"""
Visualization bindings between catalog sequences and the step sequencer
Each visualization owns exactly one sequencer and maps its cursor to per-step highlight states
"""

from typing import Callable, List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field

from shortener_design.config import Settings, get_settings
from shortener_design.constants import VISUALIZATION_KINDS
from shortener_design.exceptions import SequencerError
from shortener_design.models import SequenceDefinition, VisualizationSnapshot
from shortener_design.scheduling import Scheduler, VirtualScheduler
from shortener_design.sequencer import StepSequencer
from shortener_design.types import TimelineEventDict

logger = logging.getLogger(__name__)


class VisualizationPolicy(BaseModel):
    """
    Timing and completion behaviour of a visualization

    Attributes:
        tick_interval_ms: Milliseconds between cursor advances
        reset_on_complete: Return to idle after the last step instead of parking on it
        settle_delay_ms: How long the last step stays highlighted before the reset
    """

    model_config = ConfigDict(frozen=True)

    tick_interval_ms: int = Field(..., gt=0)
    reset_on_complete: bool = False
    settle_delay_ms: int = Field(1000, ge=0)


def policy_for(kind: str, settings: Optional[Settings] = None) -> VisualizationPolicy:
    """
    Default policy for a visualization kind

    Request traces reset to idle once the settle delay passes; cache
    simulations stay parked on their last step.

    Raises:
        SequencerError: If the kind is unknown
    """
    settings = settings or get_settings()
    if kind == "request_trace":
        return VisualizationPolicy(
            tick_interval_ms=settings.request_trace_tick_ms,
            reset_on_complete=settings.request_trace_reset_on_complete,
            settle_delay_ms=settings.request_trace_settle_ms,
        )
    if kind == "cache_simulation":
        return VisualizationPolicy(
            tick_interval_ms=settings.cache_simulation_tick_ms,
            reset_on_complete=settings.cache_simulation_reset_on_complete,
            settle_delay_ms=settings.cache_simulation_settle_ms,
        )
    raise SequencerError(
        code="unknown_visualization",
        message=f"Unknown visualization kind: {kind}",
        details={"allowed": sorted(VISUALIZATION_KINDS)},
    )


def step_states(cursor: Optional[int], step_count: int) -> List[str]:
    """
    Highlight state of every step for a given cursor

    Steps before the cursor are "past", the cursor step is "active", the
    rest are "pending". An idle cursor leaves every step pending.
    """
    if cursor is None:
        return ["pending"] * step_count
    states = []
    for index in range(step_count):
        if index == cursor:
            states.append("active")
        elif index < cursor:
            states.append("past")
        else:
            states.append("pending")
    return states


class Visualization:
    """
    One animated flow on screen

    Re-triggering run() while a run is in progress restarts from step 0;
    select() swaps the sequence and returns to idle.
    """

    def __init__(
        self,
        sequence: SequenceDefinition,
        scheduler: Scheduler,
        policy: Optional[VisualizationPolicy] = None,
        on_step: Optional[Callable[[Optional[int]], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ):
        self.sequence = sequence
        self.policy = policy or policy_for(sequence.kind)
        self.sequencer = StepSequencer(
            scheduler,
            reset_on_complete=self.policy.reset_on_complete,
            settle_delay_ms=self.policy.settle_delay_ms,
            on_step=on_step,
            on_complete=on_complete,
            name=sequence.id,
        )

    def run(self) -> int:
        """Start (or restart) the animation from the first step"""
        return self.sequencer.start(self.sequence.step_count, self.policy.tick_interval_ms)

    def cancel(self) -> None:
        self.sequencer.cancel()

    def select(self, sequence: SequenceDefinition) -> None:
        """Switch to another sequence of the same visualization, back at idle"""
        logger.debug(f"Visualization switching {self.sequence.id} -> {sequence.id}")
        self.sequencer.reset()
        self.sequence = sequence
        self.sequencer.name = sequence.id

    def snapshot(self) -> VisualizationSnapshot:
        cursor = self.sequencer.cursor
        return VisualizationSnapshot(
            sequence_id=self.sequence.id,
            cursor=cursor,
            running=self.sequencer.running,
            step_states=step_states(cursor, self.sequence.step_count),
        )


def build_timeline(
    sequence: SequenceDefinition, policy: Optional[VisualizationPolicy] = None
) -> List[TimelineEventDict]:
    """
    Replay a complete run on a simulated clock

    Args:
        sequence: Steps to run over
        policy: Timing to use; defaults to the policy for the sequence kind

    Returns:
        Every cursor change, the completion, and the reset (if any), each
        stamped with the simulated time it happened at
    """
    scheduler = VirtualScheduler()
    events: List[TimelineEventDict] = []
    visualization: Optional[Visualization] = None

    def record_step(cursor: Optional[int]) -> None:
        events.append({
            "at_ms": scheduler.now_ms,
            "event": "step" if cursor is not None else "reset",
            "cursor": cursor,
            "running": visualization.sequencer.running,
        })

    def record_complete() -> None:
        events.append({
            "at_ms": scheduler.now_ms,
            "event": "complete",
            "cursor": visualization.sequencer.cursor,
            "running": False,
        })

    visualization = Visualization(
        sequence, scheduler, policy, on_step=record_step, on_complete=record_complete
    )
    visualization.run()
    scheduler.run_until_idle()
    logger.debug(f"Timeline for {sequence.id}: {len(events)} events")
    return events
