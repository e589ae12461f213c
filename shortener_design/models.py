"""
Pydantic models for the URL shortener design showcase
Defines estimator inputs/outputs, step sequence content, and API payloads
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Dict, Optional, Literal


class EstimationParameters(BaseModel):
    """
    Slider inputs of the capacity estimator

    Range checks live in the estimator itself so that a rejected calculation
    surfaces as InvalidParameterError rather than a schema error.

    Attributes:
        daily_creates_millions: New short links created per day, in millions
        read_write_ratio: Redirects per creation (100 means 100 reads per write)
        retention_years: Years a record is kept before cleanup
    """

    model_config = ConfigDict(frozen=True)

    daily_creates_millions: float = Field(
        1.0, description="New short links per day, in millions"
    )
    read_write_ratio: int = Field(100, description="Redirects per creation")
    retention_years: int = Field(5, description="Years of retention")


class EstimationResult(BaseModel):
    """
    Derived capacity metrics

    Attributes:
        write_qps: Link creations per second
        read_qps: Redirects per second
        total_records_retained_billions: Records kept over the retention period, in billions
        storage_bytes: Database storage for all retained records
        hot_cache_bytes: Cache size for the 30-day hot window
        daily_bandwidth_bytes: Outgoing redirect traffic per day
    """

    model_config = ConfigDict(frozen=True)

    write_qps: int
    read_qps: int
    total_records_retained_billions: float
    storage_bytes: int
    hot_cache_bytes: int
    daily_bandwidth_bytes: int


class CapacityReport(BaseModel):
    """Display figures of the estimation panel, derived from an EstimationResult"""

    daily_redirects_millions: float
    peak_read_qps: int
    storage_gib: int
    storage_tib: int
    replicated_storage_gib: int
    hot_cache_gib: int
    incoming_bandwidth_gib_per_day: int
    outgoing_bandwidth_gib_per_day: int
    peak_bandwidth_mbps: float
    min_short_code_length: int


class EstimateResponse(BaseModel):
    """Response of the /estimate endpoint"""

    parameters: EstimationParameters
    result: EstimationResult
    report: CapacityReport


class SweepRequest(BaseModel):
    """
    Slider sweep over one estimation parameter

    Attributes:
        base: Parameters held fixed during the sweep
        parameter: Name of the parameter to vary
        values: Values to substitute for that parameter, in order
    """

    base: EstimationParameters = Field(default_factory=EstimationParameters)
    parameter: str
    values: List[float] = Field(..., min_length=1)


class SweepRun(BaseModel):
    """A single point of a sweep"""

    value: float
    result: EstimationResult


class MetricStats(BaseModel):
    """Summary statistics of one metric across a sweep"""

    min: float
    max: float
    mean: float
    std: float
    non_decreasing: bool


class SweepResponse(BaseModel):
    """Result of a slider sweep"""

    parameter: str
    runs: List[SweepRun]
    metrics: Dict[str, MetricStats]


class FlowStep(BaseModel):
    """
    One stage of a request flow

    Attributes:
        id: 1-based position shown to the reader
        title: Short stage name
        description: One-line summary
        details: Bullet points rendered as chips
        latency: Expected latency label
    """

    id: int
    title: str
    description: str
    details: List[str] = []
    latency: str


class RequestFlow(BaseModel):
    """An end-to-end request path traced step by step"""

    id: str
    name: str
    steps: List[FlowStep]
    total_latency: str


class CacheStrategy(BaseModel):
    """A caching pattern with its step-by-step flow"""

    id: str
    name: str
    description: str
    flow: List[str]
    pros: List[str]
    cons: List[str]
    use_case: str


class SequenceDefinition(BaseModel):
    """
    Ordered step labels a sequencer runs over

    Attributes:
        id: Catalog id of the flow or strategy
        kind: Which visualization drives it
        name: Display name
        steps: Step labels, one per cursor position
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: Literal["request_trace", "cache_simulation"]
    name: str
    steps: List[str]

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: List[str]) -> List[str]:
        """A sequence must have at least one step"""
        if not v:
            raise ValueError("Sequence must have at least one step")
        return v

    @property
    def step_count(self) -> int:
        return len(self.steps)


class TimelineEvent(BaseModel):
    """A cursor change observed at a point in simulated time"""

    at_ms: float
    event: Literal["step", "complete", "reset"]
    cursor: Optional[int] = None
    running: bool


class TimelineResponse(BaseModel):
    """Replay of a full visualization run"""

    sequence: SequenceDefinition
    tick_interval_ms: int
    reset_on_complete: bool
    settle_delay_ms: int
    events: List[TimelineEvent]


class VisualizationSnapshot(BaseModel):
    """What a renderer needs to draw a visualization right now"""

    sequence_id: str
    cursor: Optional[int] = None
    running: bool
    step_states: List[str]


class TraceOptions(BaseModel):
    """Optional first message of a live trace websocket"""

    tick_interval_ms: Optional[int] = Field(None, gt=0)
    settle_delay_ms: Optional[int] = Field(None, ge=0)
