"""
Read-only aggregations behind the public and staff dashboards.

These functions have no side effects. Data access errors propagate to the caller.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..core.config import settings
from ..schemas import AlertStatus
from ..utils.dates import month_bounds, month_start, shift_month
from .forecast import clamp_weeks, monthly_case_series, weekly_case_forecast
from .ranking import assess_regional_risk, count_critical_regions
from .risk import calculate_increase
from .store import SurveillanceStore


def serialize_alert(alert) -> Dict[str, Any]:
    """Alert with a short barangay summary, as shown on the dashboards."""
    barangay = getattr(alert, "barangay", None)
    return {
        "id": alert.id,
        "title": alert.title,
        "message": alert.message,
        "risk_level": alert.risk_level,
        "status": alert.status,
        "triggered_at": alert.triggered_at,
        "barangay": {
            "id": barangay.id,
            "name": barangay.name,
            "municipality": barangay.municipality,
            "province": barangay.province,
        } if barangay else None,
    }


async def compute_forecast_summary(
    store: SurveillanceStore,
    weeks_requested: Optional[int] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Everything the public forecast dashboard shows in one payload.

    Args:
        store: Data store
        weeks_requested: Historical weeks for the forecast, clamped to [4, 52]
        now: Reference time, defaults to the server clock

    Returns:
        Dictionary with:
        - meta: last_updated, system_active
        - stats: active_cases (last 7 days), total_cases_this_month,
          forecast_next_week, critical_regions
        - weekly_trends, forecast_next_4_weeks
        - regional_risk_assessment: top barangays by 30-day risk score
        - active_alerts: most recent ACTIVE alerts
    """
    now = now or datetime.now()
    weeks = clamp_weeks(weeks_requested, default=settings.forecast_default_weeks)

    weekly = await weekly_case_forecast(store, weeks, now)
    forecast = weekly["forecast"]

    active_cases = await store.count_cases_in_window(now - timedelta(days=7), None)
    total_cases_this_month = await store.count_cases_in_window(month_start(now), None)

    alerts = await store.list_alerts(
        status=AlertStatus.ACTIVE.value,
        limit=settings.public_alerts_limit,
    )

    ranked = await assess_regional_risk(store, now)

    last_updated = await store.latest_activity() or now

    return {
        "meta": {
            "last_updated": last_updated.isoformat(),
            "system_active": True,
        },
        "stats": {
            "active_cases": active_cases,
            "total_cases_this_month": total_cases_this_month,
            "forecast_next_week": forecast[0]["cases"] if forecast else 0,
            "critical_regions": count_critical_regions(ranked),
        },
        "weekly_trends": weekly["weekly_trends"],
        "forecast_next_4_weeks": forecast,
        "regional_risk_assessment": ranked[:settings.public_top_regions],
        "active_alerts": [serialize_alert(alert) for alert in alerts],
    }


async def compute_dashboard_stats(
    store: SurveillanceStore,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Headline counters comparing this month with the previous one."""
    now = now or datetime.now()
    current_start = month_start(now)
    previous_start, previous_end = month_bounds(*shift_month(now.year, now.month, -1))

    current_month_cases = await store.count_cases_in_window(current_start, None)
    previous_month_cases = await store.count_cases(None, previous_start, previous_end)

    return {
        "total_cases": await store.count_cases_in_window(),
        "current_month_cases": current_month_cases,
        "previous_month_cases": previous_month_cases,
        "case_increase": round(calculate_increase(current_month_cases, previous_month_cases), 2),
        "total_barangays": await store.count_barangays(),
        "active_alerts": await store.count_active_alerts(),
        "total_reports": await store.count_environmental_reports(date_from=current_start),
    }


async def compute_monthly_comparison(
    store: SurveillanceStore,
    year: Optional[int] = None
) -> Dict[str, Any]:
    """Monthly case counts of `year` next to those of the year before."""
    current_year = year or datetime.now().year
    previous_year = current_year - 1

    def month_entry(year_: int, month: int, cases: int) -> Dict[str, Any]:
        return {
            "month": month,
            "month_name": datetime(year_, month, 1).strftime("%b"),
            "cases": cases,
        }

    current_data: List[Dict[str, Any]] = []
    previous_data: List[Dict[str, Any]] = []
    for month in range(1, 13):
        current_cases = await store.count_cases(None, *month_bounds(current_year, month))
        previous_cases = await store.count_cases(None, *month_bounds(previous_year, month))
        current_data.append(month_entry(current_year, month, current_cases))
        previous_data.append(month_entry(previous_year, month, previous_cases))

    return {
        "current_year": current_data,
        "previous_year": previous_data,
        "years": {"current": current_year, "previous": previous_year},
    }


async def compute_barangay_case_counts(store: SurveillanceStore) -> List[Dict[str, Any]]:
    """All-time case count of every barangay, ordered by name."""
    data = []
    for barangay in await store.list_barangays():
        data.append({
            "id": barangay.id,
            "name": barangay.name,
            "code": barangay.code,
            "municipality": barangay.municipality,
            "province": barangay.province,
            "case_count": await store.count_cases_in_window(barangay_id=barangay.id),
            "population": barangay.population or 0,
        })
    return data


async def compute_case_trends(
    store: SurveillanceStore,
    months: int = 12,
    barangay_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Monthly case counts labelled for charts ("Jan 2024"), oldest first,
    ending with the current month.
    """
    series = await monthly_case_series(store, months, barangay_id, now)
    return [
        {
            "month": datetime(point["year"], point["month"], 1).strftime("%b %Y"),
            "year": point["year"],
            "month_number": point["month"],
            "cases": point["cases"],
        }
        for point in series
    ]
