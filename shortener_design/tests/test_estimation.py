"""
Tests for the capacity estimation engine
"""

import math
from fractions import Fraction

import pytest

from shortener_design.estimation import (
    estimate,
    min_short_code_length,
    round_half_up,
    summarize,
    sweep,
)
from shortener_design.exceptions import InvalidParameterError
from shortener_design.models import EstimationParameters


def make_params(daily=1.0, ratio=100, years=5):
    return EstimationParameters(
        daily_creates_millions=daily, read_write_ratio=ratio, retention_years=years
    )


def test_reference_example():
    """1M creates/day, 100:1, 5 years gives the documented figures"""
    result = estimate(make_params())

    assert result.write_qps == 12
    assert result.read_qps == 1200
    assert result.total_records_retained_billions == pytest.approx(1.825)
    assert result.storage_bytes == 912_500_000_000
    assert result.hot_cache_bytes == 15_000_000_000
    assert result.daily_bandwidth_bytes == 1200 * 86_400 * 300


def test_estimate_is_deterministic():
    """Same inputs give identical results"""
    params = make_params(daily=3.7, ratio=250, years=7)
    assert estimate(params) == estimate(params)
    assert estimate(params).model_dump() == estimate(make_params(3.7, 250, 7)).model_dump()


def test_read_qps_uses_rounded_write_qps():
    """Read QPS is the rounded write QPS times the ratio"""
    result = estimate(make_params(daily=2.0, ratio=150))
    # 2,000,000 / 86,400 = 23.148 -> 23
    assert result.write_qps == 23
    assert result.read_qps == 23 * 150


def test_out_of_reference_range_is_accepted():
    """Values beyond the UI slider ranges are still computed"""
    result = estimate(make_params(daily=500.0, ratio=5000, years=40))
    assert result.write_qps == round_half_up(500_000_000 / 86_400)
    assert result.storage_bytes == 500 * 365 * 40 * 1_000_000 * 500


def test_fractional_daily_creates():
    """Small fractional volumes keep full precision until rounding"""
    result = estimate(make_params(daily=0.1, ratio=10, years=1))
    assert result.write_qps == 1  # 1.157 -> 1
    assert result.storage_bytes == 18_250_000_000
    assert result.hot_cache_bytes == 1_500_000_000


@pytest.mark.parametrize("ratio", [10, 100, 1000])
@pytest.mark.parametrize("years", [1, 5, 10])
def test_monotonic_in_daily_creates(ratio, years):
    """Raising daily creates never lowers the volume-driven metrics"""
    previous = None
    for step in range(1, 101):
        result = estimate(make_params(daily=step / 10, ratio=ratio, years=years))
        if previous is not None:
            assert result.write_qps >= previous.write_qps
            assert result.read_qps >= previous.read_qps
            assert result.storage_bytes >= previous.storage_bytes
            assert result.hot_cache_bytes >= previous.hot_cache_bytes
        previous = result


@pytest.mark.parametrize(
    "field,value",
    [
        ("daily_creates_millions", 0.0),
        ("daily_creates_millions", -1.0),
        ("daily_creates_millions", float("nan")),
        ("daily_creates_millions", float("inf")),
        ("read_write_ratio", 0),
        ("read_write_ratio", -10),
        ("retention_years", 0),
    ],
)
def test_invalid_parameters_rejected(field, value):
    """Non-positive or non-finite inputs raise InvalidParameterError"""
    params = make_params().model_copy(update={field: value})
    with pytest.raises(InvalidParameterError) as exc_info:
        estimate(params)
    assert exc_info.value.parameter == field
    assert exc_info.value.code == "invalid_parameter"


def test_fractional_ratio_rejected():
    """Integral parameters reject fractional values"""
    params = EstimationParameters.model_construct(
        daily_creates_millions=1.0, read_write_ratio=2.5, retention_years=5
    )
    with pytest.raises(InvalidParameterError, match="positive integer"):
        estimate(params)


def test_boolean_parameter_rejected():
    """Booleans are not numbers here"""
    params = EstimationParameters.model_construct(
        daily_creates_millions=True, read_write_ratio=100, retention_years=5
    )
    with pytest.raises(InvalidParameterError):
        estimate(params)


def test_round_half_up():
    """Ties round up, unlike Python's round()"""
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(1.4999) == 1
    assert round_half_up(11.574) == 12


def test_min_short_code_length():
    """Code length covers the keyspace"""
    assert min_short_code_length(1) == 1
    assert min_short_code_length(62) == 1
    assert min_short_code_length(63) == 2
    assert min_short_code_length(62**5) == 5
    assert min_short_code_length(62**5 + 1) == 6


def test_summarize_reference_example():
    """Display figures for the reference inputs"""
    params = make_params()
    report = summarize(params)

    assert report.daily_redirects_millions == 100.0
    assert report.peak_read_qps == 2400
    assert report.storage_gib == 850
    assert report.storage_tib == 1
    assert report.replicated_storage_gib == 2550
    assert report.hot_cache_gib == 14
    assert report.incoming_bandwidth_gib_per_day == 0
    assert report.outgoing_bandwidth_gib_per_day == 29
    assert report.peak_bandwidth_mbps == pytest.approx(5.76)
    assert report.min_short_code_length == 6


def test_summarize_reuses_given_result():
    """A supplied result is used as-is"""
    params = make_params(daily=4.0)
    result = estimate(params)
    assert summarize(params, result) == summarize(params)


def test_sweep_daily_creates():
    """Sweep evaluates each value and reports statistics"""
    response = sweep(make_params(), "daily_creates_millions", [1.0, 2.0, 3.0])

    assert response.parameter == "daily_creates_millions"
    assert [run.value for run in response.runs] == [1.0, 2.0, 3.0]
    assert [run.result.write_qps for run in response.runs] == [12, 23, 35]

    write_stats = response.metrics["write_qps"]
    assert write_stats.min == 12
    assert write_stats.max == 35
    assert write_stats.mean == pytest.approx((12 + 23 + 35) / 3)
    assert all(stats.non_decreasing for stats in response.metrics.values())


def test_sweep_integral_parameter():
    """Integral parameters are substituted as ints"""
    response = sweep(make_params(), "retention_years", [1, 2, 3])
    assert [run.result.storage_bytes for run in response.runs] == [
        182_500_000_000,
        365_000_000_000,
        547_500_000_000,
    ]
    # Retention does not move QPS
    assert response.metrics["write_qps"].std == 0.0


def test_sweep_detects_decrease():
    """A descending sweep is flagged as not non-decreasing"""
    response = sweep(make_params(), "read_write_ratio", [300, 200, 100])
    assert response.metrics["read_qps"].non_decreasing is False
    assert response.metrics["write_qps"].non_decreasing is True


def test_sweep_unknown_parameter():
    """Unknown parameter names are rejected"""
    with pytest.raises(InvalidParameterError, match="Unknown estimation parameter"):
        sweep(make_params(), "servers", [1, 2])


def test_sweep_rejects_fractional_integral_value():
    """Fractional values for integral parameters are rejected"""
    with pytest.raises(InvalidParameterError):
        sweep(make_params(), "retention_years", [1, 1.5])


def test_sweep_max_points():
    """Oversized sweeps are rejected before any evaluation"""
    with pytest.raises(InvalidParameterError, match="exceeding maximum"):
        sweep(make_params(), "daily_creates_millions", [float(i) for i in range(1, 12)], max_points=10)


def test_sweep_empty_values():
    with pytest.raises(InvalidParameterError):
        sweep(make_params(), "daily_creates_millions", [])


def test_total_records_scale():
    """Record count is reported in billions"""
    result = estimate(make_params(daily=10.0, years=10))
    assert math.isclose(result.total_records_retained_billions, 36.5)


def test_huge_daily_creates_are_exact():
    """Byte counts beyond the float range are computed as exact integers"""
    daily = int(1e300)  # 1e300 is a whole number as a double
    result = estimate(make_params(daily=1e300, ratio=100, years=5))

    assert result.storage_bytes == daily * 365 * 5 * 1_000_000 * 500
    assert result.hot_cache_bytes == daily * 30 * 1_000_000 * 500
    assert result.read_qps == result.write_qps * 100
    assert result.daily_bandwidth_bytes == result.read_qps * 86_400 * 300
    assert result.total_records_retained_billions == pytest.approx(1.825e300)

    report = summarize(make_params(daily=1e300, ratio=100, years=5), result)
    assert report.storage_gib == round_half_up(Fraction(result.storage_bytes, 1024**3))
    assert math.isfinite(report.peak_bandwidth_mbps)


def test_huge_retention_is_exact():
    """Whole-number parameters of any size keep exact byte counts"""
    years = 10**300
    result = estimate(make_params(daily=1.0, ratio=100, years=years))
    assert result.storage_bytes == 365 * years * 1_000_000 * 500
    assert summarize(make_params(daily=1.0, ratio=100, years=years)).min_short_code_length > 1


def test_float_figures_out_of_range_rejected():
    """Inputs whose record total cannot be held in a float are rejected"""
    with pytest.raises(InvalidParameterError, match="too large") as exc_info:
        estimate(make_params(daily=1.7e308, ratio=100, years=5))
    assert exc_info.value.parameter == "daily_creates_millions"


def test_round_half_up_exact_fraction():
    assert round_half_up(Fraction(5, 2)) == 3
    assert round_half_up(Fraction(10**400 + 1, 2)) == 10**400 // 2 + 1


def test_sweep_past_float_range_rejected():
    """Sweep statistics need float-sized metrics"""
    with pytest.raises(InvalidParameterError, match="beyond the float range"):
        sweep(make_params(), "daily_creates_millions", [1.0, 1e300])
