"""
Type definitions for the URL shortener design showcase
Provides TypedDict and other type hints for structured data
"""

from typing import TypedDict, Optional


class MetricStatsDict(TypedDict):
    """
    Typed dictionary for per-metric sweep statistics
    """
    min: float
    max: float
    mean: float
    std: float
    non_decreasing: bool


class TimelineEventDict(TypedDict):
    """
    Typed dictionary for one recorded sequencer event

    `event` is one of "step", "complete" or "reset".
    """
    at_ms: float
    event: str
    cursor: Optional[int]
    running: bool


class TraceMessageDict(TypedDict, total=False):
    """
    Typed dictionary for live trace websocket messages

    All fields except `type` are optional to match the different message kinds.
    """
    type: str
    cursor: Optional[int]
    running: bool
    step: str
    step_states: list
    message: str
