"""
Static step content for the showcase visualizations
Request flows (create / redirect) and caching strategies the sequencer walks through
"""

from typing import Dict, List, Union

from shortener_design.exceptions import FlowNotFoundError
from shortener_design.models import (
    CacheStrategy,
    FlowStep,
    RequestFlow,
    SequenceDefinition,
)

# ============================================================================
# Request Flows
# ============================================================================

CREATE_URL_FLOW = RequestFlow(
    id="create-url",
    name="Create Short URL",
    total_latency="~35ms",
    steps=[
        FlowStep(
            id=1,
            title="Client Request",
            description="User submits long URL",
            details=["Validate URL format", "Check authentication", "Apply rate limiting"],
            latency="~5ms",
        ),
        FlowStep(
            id=2,
            title="Load Balancer",
            description="Route to healthy server",
            details=["Health check validation", "Least connections routing", "SSL termination"],
            latency="~1ms",
        ),
        FlowStep(
            id=3,
            title="API Server",
            description="Process URL creation",
            details=["Validate input", "Check for duplicates", "Generate short code"],
            latency="~10ms",
        ),
        FlowStep(
            id=4,
            title="Database Write",
            description="Persist URL mapping",
            details=["Insert URL record", "Create indexes", "Handle conflicts"],
            latency="~15ms",
        ),
        FlowStep(
            id=5,
            title="Cache Update",
            description="Warm cache with new URL",
            details=["Write to Redis", "Set TTL", "Notify replicas"],
            latency="~2ms",
        ),
        FlowStep(
            id=6,
            title="Response",
            description="Return short URL to client",
            details=["Format response", "Include metadata", "Set headers"],
            latency="~1ms",
        ),
    ],
)

REDIRECT_FLOW = RequestFlow(
    id="redirect",
    name="Redirect Flow",
    total_latency="~10ms (cache hit)",
    steps=[
        FlowStep(
            id=1,
            title="User Click",
            description="User accesses short URL",
            details=["Parse short code", "Extract from path", "Validate format"],
            latency="~1ms",
        ),
        FlowStep(
            id=2,
            title="CDN/Edge",
            description="Check edge cache",
            details=["Edge location lookup", "Geographic routing", "Cache check"],
            latency="~2ms",
        ),
        FlowStep(
            id=3,
            title="Cache Lookup",
            description="Check Redis cache",
            details=["O(1) hash lookup", "Check expiration", "Return if found"],
            latency="~1ms",
        ),
        FlowStep(
            id=4,
            title="DB Fallback",
            description="Query database on miss",
            details=["Index lookup", "Validate active", "Check expiry"],
            latency="~5ms",
        ),
        FlowStep(
            id=5,
            title="Analytics",
            description="Record click async",
            details=["Queue analytics event", "Extract metadata", "Fire and forget"],
            latency="~0ms (async)",
        ),
        FlowStep(
            id=6,
            title="Redirect",
            description="302 redirect to original",
            details=["Set Location header", "Return 302 status", "Include cache headers"],
            latency="~1ms",
        ),
    ],
)

REQUEST_FLOWS: Dict[str, RequestFlow] = {
    flow.id: flow for flow in (CREATE_URL_FLOW, REDIRECT_FLOW)
}

# ============================================================================
# Caching Strategies
# ============================================================================

CACHE_STRATEGIES: Dict[str, CacheStrategy] = {
    strategy.id: strategy
    for strategy in (
        CacheStrategy(
            id="cache-aside",
            name="Cache-Aside (Lazy Loading)",
            description="Application checks cache first, loads from DB on miss",
            flow=[
                "App checks Redis for short_code",
                "If HIT: return cached URL",
                "If MISS: query database",
                "Store result in cache",
                "Return URL to client",
            ],
            pros=["Simple implementation", "Only requested data cached", "Resilient to cache failure"],
            cons=["Cache miss penalty", "Possible stale data", "Cache stampede risk"],
            use_case="Best for read-heavy workloads with infrequent updates",
        ),
        CacheStrategy(
            id="write-through",
            name="Write-Through",
            description="Write to cache and database synchronously",
            flow=[
                "App writes to cache first",
                "Cache writes to database",
                "Both writes are synchronous",
                "Return success only when both complete",
                "Reads always from cache",
            ],
            pros=["Data consistency", "No stale data", "Simple read path"],
            cons=["Write latency", "Cache capacity issues", "Unused data cached"],
            use_case="When data consistency is critical",
        ),
        CacheStrategy(
            id="write-behind",
            name="Write-Behind (Write-Back)",
            description="Write to cache immediately, async write to database",
            flow=[
                "App writes to cache",
                "Return success immediately",
                "Async queue DB writes",
                "Batch writes for efficiency",
                "Handle failures with retry",
            ],
            pros=["Low write latency", "Batch writes", "High throughput"],
            cons=["Data loss risk", "Complex implementation", "Eventual consistency"],
            use_case="High-throughput analytics and click counting",
        ),
    )
}


def get_content(sequence_id: str) -> Union[RequestFlow, CacheStrategy]:
    """
    Look up the full content behind a sequence id

    Raises:
        FlowNotFoundError: If the id is neither a request flow nor a strategy
    """
    if sequence_id in REQUEST_FLOWS:
        return REQUEST_FLOWS[sequence_id]
    if sequence_id in CACHE_STRATEGIES:
        return CACHE_STRATEGIES[sequence_id]
    raise FlowNotFoundError(sequence_id)


def get_sequence(sequence_id: str) -> SequenceDefinition:
    """
    Build the step list a sequencer runs over

    Request flows are request traces; caching strategies are cache simulations.

    Raises:
        FlowNotFoundError: If the id is unknown
    """
    content = get_content(sequence_id)
    if isinstance(content, RequestFlow):
        return SequenceDefinition(
            id=content.id,
            kind="request_trace",
            name=content.name,
            steps=[step.title for step in content.steps],
        )
    return SequenceDefinition(
        id=content.id,
        kind="cache_simulation",
        name=content.name,
        steps=list(content.flow),
    )


def list_sequences() -> List[SequenceDefinition]:
    """All sequences, request flows first"""
    ids = list(REQUEST_FLOWS) + list(CACHE_STRATEGIES)
    return [get_sequence(sequence_id) for sequence_id in ids]
