"""
Capacity estimation engine for the URL shortener design
Derives traffic, storage, cache and bandwidth figures from the three slider inputs
"""

from fractions import Fraction
from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import math

import numpy as np

from shortener_design.constants import (
    AVG_RECORD_SIZE_BYTES,
    AVG_RESPONSE_SIZE_BYTES,
    AVG_WRITE_REQUEST_SIZE_BYTES,
    BILLION_IN_MILLIONS,
    DAYS_PER_YEAR,
    ESTIMATION_PARAMETERS,
    GIB,
    HOT_CACHE_WINDOW_DAYS,
    INTEGRAL_PARAMETERS,
    MILLION,
    PEAK_TRAFFIC_FACTOR,
    REPLICATION_FACTOR,
    SECONDS_PER_DAY,
    SHORT_CODE_ALPHABET_SIZE,
    TIB_IN_GIB,
)
from shortener_design.exceptions import InvalidParameterError
from shortener_design.models import (
    CapacityReport,
    EstimationParameters,
    EstimationResult,
    MetricStats,
    SweepResponse,
    SweepRun,
)
from shortener_design.types import MetricStatsDict

logger = logging.getLogger(__name__)


def round_half_up(value: Union[float, Fraction]) -> int:
    """
    Round to the nearest integer, ties away from zero for positive values

    Python's round() uses banker's rounding; the reference figures were
    produced with half-up rounding, so .5 must always go up. Rounding is
    done on the exact rational value, so byte counts far beyond the float
    range come out as exact integers.
    """
    return math.floor(Fraction(value) + Fraction(1, 2))


def _check_parameter(name: str, value: Any) -> None:
    """
    Reject values the formulas cannot give a meaningful answer for

    Raises:
        InvalidParameterError: If the value is not a finite positive number,
            or is fractional where a whole number is required
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError(name, value)
    if (isinstance(value, float) and not math.isfinite(value)) or value <= 0:
        raise InvalidParameterError(name, value)
    if name in INTEGRAL_PARAMETERS and value != int(value):
        raise InvalidParameterError(
            name, value, message=f"Parameter '{name}' must be a positive integer, got {value!r}"
        )


def _records_retained_millions(params: EstimationParameters) -> Fraction:
    return Fraction(params.daily_creates_millions) * DAYS_PER_YEAR * int(params.retention_years)


def _to_float(value: Fraction, params: EstimationParameters, *names: str) -> float:
    """
    Convert an exact figure to float

    Raises:
        InvalidParameterError: Naming the largest of `names` when the figure
            is beyond the float range
    """
    try:
        return float(value)
    except OverflowError as e:
        name = max(names, key=lambda n: getattr(params, n))
        raise InvalidParameterError(
            name,
            getattr(params, name),
            message=f"Parameter '{name}' is too large to estimate, got {getattr(params, name)!r}",
        ) from e


def estimate(params: EstimationParameters) -> EstimationResult:
    """
    Compute the capacity metrics for a set of slider inputs

    Every field is computed from the inputs in exact rational arithmetic;
    rounding is applied once, to the QPS and byte-count fields only, so
    integer fields stay exact for any finite input.

    Args:
        params: Daily creates (millions), read:write ratio, retention years

    Returns:
        EstimationResult with QPS, storage, cache and bandwidth figures

    Raises:
        InvalidParameterError: If any input is non-positive or non-finite, or
            so large that the retained-records figure leaves the float range

    Example:
        >>> r = estimate(EstimationParameters(daily_creates_millions=1, read_write_ratio=100, retention_years=5))
        >>> r.write_qps, r.read_qps, r.storage_bytes
        (12, 1200, 912500000000)
    """
    for name in ("daily_creates_millions", "read_write_ratio", "retention_years"):
        _check_parameter(name, getattr(params, name))

    daily_creates = Fraction(params.daily_creates_millions)
    ratio = int(params.read_write_ratio)

    write_qps = round_half_up(daily_creates * MILLION / SECONDS_PER_DAY)
    read_qps = write_qps * ratio
    records_millions = _records_retained_millions(params)

    result = EstimationResult(
        write_qps=write_qps,
        read_qps=read_qps,
        total_records_retained_billions=_to_float(
            records_millions / BILLION_IN_MILLIONS,
            params,
            "daily_creates_millions",
            "retention_years",
        ),
        storage_bytes=round_half_up(records_millions * MILLION * AVG_RECORD_SIZE_BYTES),
        hot_cache_bytes=round_half_up(
            daily_creates * HOT_CACHE_WINDOW_DAYS * MILLION * AVG_RECORD_SIZE_BYTES
        ),
        daily_bandwidth_bytes=read_qps * SECONDS_PER_DAY * AVG_RESPONSE_SIZE_BYTES,
    )
    logger.debug(
        f"Estimated d={params.daily_creates_millions}M r={ratio} y={params.retention_years}: "
        f"write_qps={result.write_qps}, read_qps={result.read_qps}, "
        f"storage_bytes={result.storage_bytes}"
    )
    return result


def min_short_code_length(records: int, alphabet_size: int = SHORT_CODE_ALPHABET_SIZE) -> int:
    """Smallest code length whose keyspace covers `records` distinct links"""
    length = 1
    while alphabet_size**length < records:
        length += 1
    return length


def summarize(
    params: EstimationParameters, result: Optional[EstimationResult] = None
) -> CapacityReport:
    """
    Derive the secondary panel figures (GiB sizes, peaks, replication)

    Args:
        params: The inputs the result was computed from
        result: A precomputed result; computed from params when omitted

    Returns:
        CapacityReport

    Raises:
        InvalidParameterError: If a float figure of the report leaves the float range
    """
    if result is None:
        result = estimate(params)

    daily_creates = Fraction(params.daily_creates_millions)
    storage_gib = round_half_up(Fraction(result.storage_bytes, GIB))
    records = round_half_up(_records_retained_millions(params) * MILLION)
    peak_bits_per_second = Fraction(
        result.daily_bandwidth_bytes * 8 * PEAK_TRAFFIC_FACTOR, SECONDS_PER_DAY
    )

    return CapacityReport(
        daily_redirects_millions=_to_float(
            daily_creates * int(params.read_write_ratio),
            params,
            "daily_creates_millions",
            "read_write_ratio",
        ),
        peak_read_qps=result.read_qps * PEAK_TRAFFIC_FACTOR,
        storage_gib=storage_gib,
        storage_tib=round_half_up(Fraction(storage_gib, TIB_IN_GIB)),
        replicated_storage_gib=storage_gib * REPLICATION_FACTOR,
        hot_cache_gib=round_half_up(Fraction(result.hot_cache_bytes, GIB)),
        incoming_bandwidth_gib_per_day=round_half_up(
            daily_creates * MILLION * AVG_WRITE_REQUEST_SIZE_BYTES / GIB
        ),
        outgoing_bandwidth_gib_per_day=round_half_up(Fraction(result.daily_bandwidth_bytes, GIB)),
        peak_bandwidth_mbps=round(
            _to_float(
                peak_bits_per_second / MILLION,
                params,
                "daily_creates_millions",
                "read_write_ratio",
            ),
            2,
        ),
        min_short_code_length=min_short_code_length(records),
    )


def _metric_stats(values: List[float]) -> MetricStatsDict:
    array = np.array(values, dtype=float)
    return {
        "min": float(np.min(array)),
        "max": float(np.max(array)),
        "mean": float(np.mean(array)),
        "std": float(np.std(array)),
        "non_decreasing": bool(np.all(np.diff(array) >= 0)),
    }


def _sweep_out_of_range(parameter: str, values: Sequence[float], field: str) -> InvalidParameterError:
    return InvalidParameterError(
        parameter,
        max(values),
        message=f"Sweep over '{parameter}' puts {field} beyond the float range",
    )


def sweep(
    base: EstimationParameters,
    parameter: str,
    values: Sequence[float],
    max_points: Optional[int] = None,
) -> SweepResponse:
    """
    Evaluate the estimator across a range of one parameter

    The other two parameters are held at their values in `base`. Statistics
    are computed per result field; `non_decreasing` reports whether the
    metric never drops between consecutive sweep points.

    Args:
        base: Parameters held fixed
        parameter: Name of the parameter to vary
        values: Values to evaluate, in sweep order
        max_points: Optional upper bound on len(values)

    Returns:
        SweepResponse with one run per value and per-metric statistics

    Raises:
        InvalidParameterError: For unknown parameters, oversized sweeps, or
            any value the estimator rejects
    """
    if parameter not in ESTIMATION_PARAMETERS:
        raise InvalidParameterError(
            parameter,
            parameter,
            message=f"Unknown estimation parameter: {parameter}",
            details={"allowed": sorted(ESTIMATION_PARAMETERS)},
        )
    if not values:
        raise InvalidParameterError("values", list(values), message="Sweep needs at least one value")
    if max_points is not None and len(values) > max_points:
        raise InvalidParameterError(
            "values",
            len(values),
            message=f"Sweep has {len(values)} points, exceeding maximum of {max_points}",
        )

    logger.info(f"Sweeping {parameter} over {len(values)} values")

    runs: List[SweepRun] = []
    for value in values:
        _check_parameter(parameter, value)
        substituted = int(value) if parameter in INTEGRAL_PARAMETERS else float(value)
        params = base.model_copy(update={parameter: substituted})
        runs.append(SweepRun(value=float(value), result=estimate(params)))

    metrics: Dict[str, MetricStats] = {}
    for field in EstimationResult.model_fields:
        try:
            stats = _metric_stats([float(getattr(run.result, field)) for run in runs])
        except OverflowError as e:
            raise _sweep_out_of_range(parameter, values, field) from e
        if not all(math.isfinite(stats[key]) for key in ("min", "max", "mean", "std")):
            raise _sweep_out_of_range(parameter, values, field)
        metrics[field] = MetricStats(**stats)

    return SweepResponse(parameter=parameter, runs=runs, metrics=metrics)
