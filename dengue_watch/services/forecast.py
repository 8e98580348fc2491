"""
Case count forecasting.

Both the monthly analytics view and the weekly public forecast fit an ordinary
least-squares line through the historical counts (x = 0..n-1) and extrapolate it.
The weekly forecast adds a symmetric band of one sample standard deviation.
"""
import math
import statistics
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..utils.dates import (
    add_days,
    format_week_label,
    month_start,
    start_of_week_monday,
)
from .store import SurveillanceStore

FORECAST_HORIZON_WEEKS = 4
MIN_FORECAST_WEEKS = 4
MAX_FORECAST_WEEKS = 52
# One standard deviation on each side. Not a 95% interval.
BOUND_Z = 1.0


def round_half_up(value: float) -> int:
    """Rounds .5 towards +infinity."""
    return int(math.floor(value + 0.5))


def fit_linear_trend(values: Sequence[float]):
    """
    Least-squares slope and intercept of `values` against their index.

    A vertical (degenerate) fit yields a slope of 0.
    """
    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(x * y for x, y in enumerate(values))
    sum_xx = sum(x * x for x in range(n))

    denom = n * sum_xx - sum_x * sum_x
    slope = 0.0 if denom == 0 else (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def linear_regression_predict(values: Sequence[float], horizon: int) -> List[int]:
    """
    Predicts the next `horizon` points of a series with a linear trend.

    Predictions are rounded and never negative. An empty series predicts zeros
    and a single point is repeated.
    """
    n = len(values)
    if n == 0:
        return [0] * horizon
    if n == 1:
        return [values[0]] * horizon

    slope, intercept = fit_linear_trend(values)
    return [
        max(0, round_half_up(slope * (n + i) + intercept))
        for i in range(horizon)
    ]


def sample_std_dev(values: Sequence[float]) -> float:
    """Bessel-corrected standard deviation; 0 for fewer than two points."""
    return statistics.stdev(values) if len(values) > 1 else 0.0


def forecast_with_bounds(
    values: Sequence[float],
    horizon: int = FORECAST_HORIZON_WEEKS,
    z: float = BOUND_Z
) -> List[Dict[str, int]]:
    """
    Linear forecast with a symmetric `z * stddev` band around each point.

    Returns:
        One dict per forecast step with `cases`, `lower` and `upper`
    """
    predictions = linear_regression_predict(values, horizon)
    spread = z * sample_std_dev(values)

    forecast = []
    for cases in predictions:
        lower = max(0, round_half_up(cases - spread))
        upper = max(lower, round_half_up(cases + spread))
        forecast.append({"cases": cases, "lower": lower, "upper": upper})
    return forecast


def clamp_weeks(weeks: Optional[int], default: int = 12) -> int:
    """Number of historical weeks to use, within [4, 52]."""
    if not weeks:
        weeks = default
    return min(MAX_FORECAST_WEEKS, max(MIN_FORECAST_WEEKS, weeks))


def build_weekly_buckets(now: datetime, weeks: int) -> List[Dict[str, Any]]:
    """
    Monday-aligned 7-day windows, oldest first, ending with the last
    completed week before `now`.
    """
    this_week_start = start_of_week_monday(now)
    buckets = []
    for idx in range(weeks):
        start = add_days(this_week_start, -(weeks - idx) * 7)
        buckets.append({
            "start": start,
            "end": add_days(start, 7),
            "label": format_week_label(start),
        })
    return buckets


async def weekly_case_forecast(
    store: SurveillanceStore,
    weeks: int,
    now: Optional[datetime] = None
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Historical weekly case counts and the next four weeks' forecast.

    Returns:
        - weekly_trends: [{"week", "cases"}] for each historical week
        - forecast: [{"week", "cases", "lower", "upper"}] starting this week
    """
    now = now or datetime.now()
    buckets = build_weekly_buckets(now, weeks)

    weekly_cases = []
    for bucket in buckets:
        weekly_cases.append(
            await store.count_cases_in_window(bucket["start"], bucket["end"])
        )

    forecast_start = start_of_week_monday(now)
    forecast = []
    for i, point in enumerate(forecast_with_bounds(weekly_cases)):
        start = add_days(forecast_start, i * 7)
        forecast.append({"week": format_week_label(start), **point})

    return {
        "weekly_trends": [
            {"week": bucket["label"], "cases": cases}
            for bucket, cases in zip(buckets, weekly_cases)
        ],
        "forecast": forecast,
    }


async def monthly_case_series(
    store: SurveillanceStore,
    months: int,
    barangay_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Case counts for the last `months` calendar months, oldest first,
    including the current month.
    """
    now = now or datetime.now()
    series = []
    for i in range(months - 1, -1, -1):
        start = month_start(now, i)
        end = month_start(now, i - 1)
        cases = await store.count_cases_in_window(start, end, barangay_id)
        series.append({
            "date": start.date().isoformat(),
            "month": start.month,
            "year": start.year,
            "cases": cases,
        })
    return series


def monthly_trend_forecast(
    series: List[Dict[str, Any]],
    horizon: int = 3
) -> List[Dict[str, Any]]:
    """
    Extends a monthly series from `monthly_case_series` with `horizon`
    predicted months.
    """
    if not series:
        return []

    predictions = linear_regression_predict([point["cases"] for point in series], horizon)
    last = series[-1]
    result = []
    for i, cases in enumerate(predictions, start=1):
        future = month_start(datetime(last["year"], last["month"], 1), -i)
        result.append({
            "date": future.date().isoformat(),
            "month": future.month,
            "year": future.year,
            "cases": cases,
            "is_prediction": True,
        })
    return result
