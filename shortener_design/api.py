"""
FastAPI application and endpoints for the URL shortener design showcase
Serves capacity estimates, flow content, and live step-by-step flow traces
"""

# Standard library imports
import asyncio
from typing import Any, Dict, List, Optional

# Third-party imports
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

# Local application imports
from shortener_design.catalog import get_content, get_sequence, list_sequences
from shortener_design.config import get_settings
from shortener_design.constants import (
    AVG_RECORD_SIZE_BYTES,
    AVG_RESPONSE_SIZE_BYTES,
    AVG_WRITE_REQUEST_SIZE_BYTES,
    HOT_CACHE_WINDOW_DAYS,
    PEAK_TRAFFIC_FACTOR,
    REPLICATION_FACTOR,
    SLIDER_RANGES,
)
from shortener_design.estimation import estimate, summarize, sweep
from shortener_design.exceptions import (
    FlowNotFoundError,
    InvalidParameterError,
    SequencerError,
    ShowcaseError,
)
from shortener_design.models import (
    EstimateResponse,
    EstimationParameters,
    SequenceDefinition,
    SweepRequest,
    SweepResponse,
    TimelineResponse,
    TraceOptions,
)
from shortener_design.scheduling import AsyncioScheduler
from shortener_design.types import TraceMessageDict
from shortener_design.utils.logging_config import get_logger, set_request_id, setup_logging
from shortener_design.visualization import (
    Visualization,
    VisualizationPolicy,
    build_timeline,
    policy_for,
    step_states,
)

logger = get_logger(__name__)

# Get configuration
settings = get_settings()

# Setup logging
setup_logging(
    level=settings.log_level,
    json_format=settings.log_format_json,
    log_file=settings.log_file,
    max_bytes=settings.log_max_bytes,
    backup_count=settings.log_backup_count,
)

# Create FastAPI app
app = FastAPI(
    title="URL Shortener Design Showcase API",
    version="1.0.0",
    description="Capacity estimator and step-by-step flow simulations for a URL shortener design",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Middleware to add request ID to all requests"""
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def add_debug_info(error_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Add debug information (traceback) to error dict if DEBUG mode is enabled

    Args:
        error_dict: Error dictionary to add debug info to

    Returns:
        Modified error dictionary with debug info if enabled
    """
    if settings.debug and "traceback" not in error_dict.get("details", {}):
        import traceback
        error_dict.setdefault("details", {})["traceback"] = traceback.format_exc()
    return error_dict


def _showcase_error_response(exc: ShowcaseError, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=add_debug_info(exc.to_dict()))


@app.exception_handler(InvalidParameterError)
async def invalid_parameter_handler(request: Request, exc: InvalidParameterError):
    """Rejected estimator inputs"""
    logger.warning(f"Invalid parameter: {exc.message}", extra={"code": exc.code})
    return _showcase_error_response(exc, status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(FlowNotFoundError)
async def flow_not_found_handler(request: Request, exc: FlowNotFoundError):
    """Unknown flow or strategy id"""
    logger.warning(f"Flow not found: {exc.sequence_id}")
    return _showcase_error_response(exc, status.HTTP_404_NOT_FOUND)


@app.exception_handler(SequencerError)
async def sequencer_error_handler(request: Request, exc: SequencerError):
    """Sequencer misuse (bad step count, bad timing)"""
    logger.error(f"Sequencer error: {exc.message}", extra={"code": exc.code})
    return _showcase_error_response(exc, status.HTTP_400_BAD_REQUEST)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with structured format"""
    logger.warning(f"Validation error: {exc.errors()}")

    error_messages = []
    for error in exc.errors():
        loc = " -> ".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Validation error")
        error_messages.append(f"{loc}: {msg}")

    # ctx may hold exception instances that are not JSON serializable
    errors = [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]
    error_response: Dict[str, Any] = {
        "code": "validation_error",
        "message": "; ".join(error_messages),
        "details": {"errors": jsonable_encoder(errors)},
    }

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=add_debug_info(error_response),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with structured format"""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    error_response: Dict[str, Any] = {
        "code": f"http_{exc.status_code}",
        "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        "details": {"status_code": exc.status_code},
    }

    return JSONResponse(status_code=exc.status_code, content=add_debug_info(error_response))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with structured format"""
    logger.exception("Unhandled exception", exc_info=exc)

    error_response: Dict[str, Any] = {
        "code": "internal_error",
        "message": str(exc) if settings.debug else "An internal error occurred",
        "details": {"exception_type": type(exc).__name__},
    }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=add_debug_info(error_response),
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    logger.info("Root endpoint accessed")
    return {
        "message": "URL Shortener Design Showcase API",
        "version": "1.0.0",
        "endpoints": {
            "estimate": "/estimate",
            "estimate_defaults": "/estimate/defaults",
            "estimate_sweep": "/estimate/sweep",
            "flows": "/flows",
            "flow": "/flows/{id}",
            "flow_timeline": "/flows/{id}/timeline",
            "flow_trace_ws": "/flows/{id}/trace",
            "health": "/health",
        },
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    logger.debug("Health check requested")
    return {"status": "healthy"}


@app.post("/estimate", response_model=EstimateResponse)
def estimate_capacity(params: EstimationParameters):
    """
    Run the capacity estimator

    Returns the exact engine figures plus the derived display report.
    """
    logger.info(
        f"Estimate requested: daily_creates={params.daily_creates_millions}M, "
        f"ratio={params.read_write_ratio}, retention={params.retention_years}y"
    )
    result = estimate(params)
    return EstimateResponse(parameters=params, result=result, report=summarize(params, result))


@app.get("/estimate/defaults")
def estimate_defaults():
    """Reference slider ranges and the fixed sizing assumptions"""
    return {
        "parameters": {
            name: {"min": low, "max": high, "step": step, "default": default}
            for name, (low, high, step, default) in SLIDER_RANGES.items()
        },
        "assumptions": {
            "avg_record_size_bytes": AVG_RECORD_SIZE_BYTES,
            "avg_response_size_bytes": AVG_RESPONSE_SIZE_BYTES,
            "avg_write_request_size_bytes": AVG_WRITE_REQUEST_SIZE_BYTES,
            "hot_cache_window_days": HOT_CACHE_WINDOW_DAYS,
            "peak_traffic_factor": PEAK_TRAFFIC_FACTOR,
            "replication_factor": REPLICATION_FACTOR,
        },
    }


@app.post("/estimate/sweep", response_model=SweepResponse)
def estimate_sweep(request: SweepRequest):
    """Evaluate the estimator across a range of one slider"""
    logger.info(f"Sweep requested: {request.parameter} x {len(request.values)}")
    return sweep(
        request.base,
        request.parameter,
        request.values,
        max_points=settings.max_sweep_points,
    )


@app.get("/flows", response_model=List[SequenceDefinition])
def flows():
    """List every animated flow and caching strategy"""
    return list_sequences()


@app.get("/flows/{sequence_id}")
def flow_detail(sequence_id: str):
    """Full content of a request flow or caching strategy"""
    sequence = get_sequence(sequence_id)
    return {
        "sequence": sequence.model_dump(),
        "content": get_content(sequence_id).model_dump(),
        "policy": policy_for(sequence.kind).model_dump(),
    }


def _resolve_policy(
    sequence: SequenceDefinition,
    tick_interval_ms: Optional[int],
    settle_delay_ms: Optional[int],
) -> VisualizationPolicy:
    policy = policy_for(sequence.kind)
    overrides: Dict[str, Any] = {}
    if tick_interval_ms is not None:
        if not settings.min_trace_tick_ms <= tick_interval_ms <= settings.max_trace_tick_ms:
            raise SequencerError(
                code="invalid_tick_interval",
                message=(
                    f"Tick interval must be between {settings.min_trace_tick_ms} and "
                    f"{settings.max_trace_tick_ms} ms, got {tick_interval_ms}"
                ),
                details={"tick_interval_ms": tick_interval_ms},
            )
        overrides["tick_interval_ms"] = tick_interval_ms
    if settle_delay_ms is not None:
        overrides["settle_delay_ms"] = settle_delay_ms
    return policy.model_copy(update=overrides) if overrides else policy


@app.get("/flows/{sequence_id}/timeline", response_model=TimelineResponse)
def flow_timeline(
    sequence_id: str,
    tick_interval_ms: Optional[int] = Query(None, gt=0, description="Override tick interval"),
    settle_delay_ms: Optional[int] = Query(None, ge=0, description="Override settle delay"),
):
    """
    Replay a full run on a simulated clock

    Useful for rendering the animation without holding a websocket open.
    """
    sequence = get_sequence(sequence_id)
    policy = _resolve_policy(sequence, tick_interval_ms, settle_delay_ms)
    events = build_timeline(sequence, policy)
    return TimelineResponse(
        sequence=sequence,
        tick_interval_ms=policy.tick_interval_ms,
        reset_on_complete=policy.reset_on_complete,
        settle_delay_ms=policy.settle_delay_ms,
        events=events,
    )


def _trace_message(kind: str, visualization: Visualization) -> TraceMessageDict:
    cursor = visualization.sequencer.cursor
    message: TraceMessageDict = {
        "type": kind,
        "cursor": cursor,
        "running": visualization.sequencer.running,
        "step_states": step_states(cursor, visualization.sequence.step_count),
    }
    if cursor is not None:
        message["step"] = visualization.sequence.steps[cursor]
    return message


@app.websocket("/flows/{sequence_id}/trace")
async def trace_websocket(websocket: WebSocket, sequence_id: str):
    """
    WebSocket endpoint that plays a flow animation live

    Protocol:
    - Client sends: {} or {"tick_interval_ms": int, "settle_delay_ms": int} to start
    - Server sends: { "type": "step", "cursor": i, "step": str, "step_states": [...] } per tick
    - Server sends: { "type": "complete", ... } when the last step has been shown
    - Server sends: { "type": "reset", "cursor": null, ... } for flows that return to idle
    - Client may send: { "action": "restart" } or { "action": "cancel" } mid-run
    - Server sends: { "type": "error", "message": str } on bad input
    """
    await websocket.accept()
    set_request_id()
    logger.info(f"Trace websocket opened for {sequence_id}")

    try:
        sequence = get_sequence(sequence_id)
        options = TraceOptions(**await websocket.receive_json())
        policy = _resolve_policy(sequence, options.tick_interval_ms, options.settle_delay_ms)
    except WebSocketDisconnect:
        logger.info("Trace client disconnected before starting")
        return
    except ShowcaseError as e:
        await websocket.send_json({"type": "error", "message": e.message})
        await websocket.close()
        return
    except (ValidationError, ValueError, TypeError) as e:
        await websocket.send_json({"type": "error", "message": f"Invalid trace options: {e}"})
        await websocket.close()
        return

    events: asyncio.Queue = asyncio.Queue()
    terminal = "reset" if policy.reset_on_complete else "complete"
    visualization: Optional[Visualization] = None

    def on_step(cursor: Optional[int]) -> None:
        events.put_nowait(_trace_message("step" if cursor is not None else "reset", visualization))

    def on_complete() -> None:
        events.put_nowait(_trace_message("complete", visualization))

    visualization = Visualization(
        sequence, AsyncioScheduler(), policy, on_step=on_step, on_complete=on_complete
    )

    async def listen_for_commands() -> None:
        while True:
            try:
                command = await websocket.receive_json()
            except WebSocketDisconnect:
                visualization.cancel()
                events.put_nowait({"type": "disconnected"})
                return
            except ValueError:
                events.put_nowait({"type": "error", "message": "Commands must be JSON objects"})
                continue

            action = command.get("action") if isinstance(command, dict) else None
            if action == "restart":
                logger.info(f"Trace of {sequence_id} restarted by client")
                visualization.run()
            elif action == "cancel":
                visualization.cancel()
                events.put_nowait(_trace_message("cancelled", visualization))
                return
            else:
                events.put_nowait({"type": "error", "message": f"Unknown action: {action}"})

    listener = asyncio.create_task(listen_for_commands())
    try:
        visualization.run()
        while True:
            message = await events.get()
            if message["type"] == "disconnected":
                logger.info("Trace client disconnected")
                return
            await websocket.send_json(message)
            if message["type"] in (terminal, "cancelled"):
                break
        await websocket.close()
        logger.info(f"Trace of {sequence_id} finished")
    except WebSocketDisconnect:
        logger.info("Trace client disconnected")
    finally:
        visualization.cancel()
        listener.cancel()
