"""
Public, unauthenticated dashboard endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..schemas import AlertStatus, RiskLevel
from ..services.dashboard import (
    compute_barangay_case_counts,
    compute_dashboard_stats,
    compute_forecast_summary,
    serialize_alert,
)
from ..services.forecast import monthly_case_series
from ..services.store import SurveillanceStore, get_store

router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/forecast-summary")
async def get_forecast_summary(
    weeks: Optional[int] = None,
    store: SurveillanceStore = Depends(get_store),
):
    """
    Weekly case trends, the next four weeks' forecast, regional risk and active alerts.

    Query params:
        weeks: Historical weeks used for the forecast (clamped to 4-52, default 12)
    """
    return await compute_forecast_summary(store, weeks)


@router.get("/stats")
async def get_public_stats(store: SurveillanceStore = Depends(get_store)):
    return {"stats": await compute_dashboard_stats(store)}


@router.get("/time-series")
async def get_time_series(
    months: int = Query(12, ge=1, le=120),
    barangay_id: Optional[int] = None,
    store: SurveillanceStore = Depends(get_store),
):
    """Monthly case counts, oldest first, ending with the current month."""
    return {"time_series": await monthly_case_series(store, months, barangay_id)}


@router.get("/alerts")
async def get_public_alerts(
    status: Optional[AlertStatus] = AlertStatus.ACTIVE,
    risk_level: Optional[RiskLevel] = None,
    limit: int = settings.public_alerts_limit,
    store: SurveillanceStore = Depends(get_store),
):
    """Recent alerts with their barangay. `limit` is clamped to 1-50."""
    limit = min(50, max(1, limit))
    alerts = await store.list_alerts(
        status=status.value if status else None,
        risk_level=risk_level.value if risk_level else None,
        limit=limit,
    )
    return {"alerts": [serialize_alert(alert) for alert in alerts]}


@router.get("/dashboard/barangay-cases")
async def get_public_barangay_case_data(store: SurveillanceStore = Depends(get_store)):
    """All-time case count per barangay, ordered by name."""
    return {"data": await compute_barangay_case_counts(store)}
