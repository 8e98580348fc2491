"""
Staff dashboard and analytics endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..services.dashboard import (
    compute_barangay_case_counts,
    compute_case_trends,
    compute_monthly_comparison,
)
from ..services.forecast import monthly_case_series, monthly_trend_forecast
from ..services.ranking import compute_barangay_rankings
from ..services.store import SurveillanceStore, get_store

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/rankings")
async def get_barangay_rankings(
    year: Optional[int] = None,
    limit: int = Query(settings.ranking_default_limit, ge=1, le=500),
    store: SurveillanceStore = Depends(get_store),
):
    """
    Barangays ranked by yearly risk score.

    Score: cases * 2 + environmental reports + active alerts * 5.
    """
    return {"rankings": await compute_barangay_rankings(store, year, limit)}


@router.get("/dashboard/monthly-comparison")
async def get_monthly_comparison(
    year: Optional[int] = None,
    store: SurveillanceStore = Depends(get_store),
):
    return {"comparison": await compute_monthly_comparison(store, year)}


@router.get("/analytics/forecast")
async def get_monthly_forecast(
    months: int = Query(12, ge=1, le=120),
    horizon: int = Query(3, ge=1, le=24),
    barangay_id: Optional[int] = None,
    store: SurveillanceStore = Depends(get_store),
):
    """
    Monthly case history with a linear trend projection.

    Returns:
    - time_series: historical monthly counts
    - predictions: `horizon` predicted months, flagged with is_prediction
    """
    series = await monthly_case_series(store, months, barangay_id)
    return {
        "time_series": series,
        "predictions": monthly_trend_forecast(series, horizon),
    }


@router.get("/dashboard/trends")
async def get_case_trends(
    months: int = Query(12, ge=1, le=120),
    barangay_id: Optional[int] = None,
    store: SurveillanceStore = Depends(get_store),
):
    """Monthly case counts with chart labels, ending with the current month."""
    return {"trends": await compute_case_trends(store, months, barangay_id)}


@router.get("/dashboard/barangay-cases")
async def get_barangay_case_data(store: SurveillanceStore = Depends(get_store)):
    return {"data": await compute_barangay_case_counts(store)}
