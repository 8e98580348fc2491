"""
Barangay risk ranking for the dashboards.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..schemas import PublicRiskLevel
from ..utils.dates import add_days, start_of_week_monday, year_bounds
from .risk import classify_public_risk_level, classify_trend, compute_risk_score
from .store import SurveillanceStore

logger = logging.getLogger(__name__)

RISK_WINDOW_DAYS = 30
ELEVATED_PUBLIC_LEVELS = (PublicRiskLevel.CRITICAL, PublicRiskLevel.HIGH)


async def assess_regional_risk(
    store: SurveillanceStore,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Scores every barangay over the last 30 days, highest score first.

    Each entry carries the 30-day case count, the risk score, the display
    risk level and this week's trend against last week.
    """
    now = now or datetime.now()
    window_start = now - timedelta(days=RISK_WINDOW_DAYS)
    week_start = start_of_week_monday(now)
    prev_week_start = add_days(week_start, -7)
    week_end = add_days(week_start, 7)

    ranked = []
    for barangay in await store.list_barangays():
        cases30 = await store.count_cases_in_window(window_start, None, barangay.id)
        reports30 = await store.count_qualifying_environmental_reports(barangay.id, window_start)
        active_alerts = await store.count_active_alerts(barangay.id)
        risk_score = compute_risk_score(cases30, reports30, active_alerts)

        this_week_cases = await store.count_cases_in_window(week_start, week_end, barangay.id)
        prev_week_cases = await store.count_cases_in_window(prev_week_start, week_start, barangay.id)

        latest_alert = None
        if active_alerts > 0:
            latest_alert = await store.most_recent_active_alert(barangay.id)

        risk_level = classify_public_risk_level(
            risk_score,
            active_alerts,
            latest_alert.risk_level if latest_alert else None,
        )

        ranked.append({
            "id": barangay.id,
            "name": barangay.name,
            "municipality": barangay.municipality,
            "province": barangay.province,
            "cases_reported": cases30,
            "risk_score": risk_score,
            "risk_level": risk_level.value,
            "trend": classify_trend(this_week_cases, prev_week_cases),
        })

    # sort() is stable: ties keep the barangay listing order
    ranked.sort(key=lambda entry: entry["risk_score"], reverse=True)
    return ranked


def count_critical_regions(ranked: List[Dict[str, Any]]) -> int:
    """Barangays whose display level is CRITICAL or HIGH."""
    elevated = {level.value for level in ELEVATED_PUBLIC_LEVELS}
    return sum(1 for entry in ranked if entry["risk_level"] in elevated)


async def compute_barangay_rankings(
    store: SurveillanceStore,
    year: Optional[int] = None,
    limit: int = 10
) -> List[Dict[str, Any]]:
    """
    Ranks barangays by risk score over a calendar year.

    Unlike the 30-day assessment, every environmental report counts,
    not only those with a risk flag set. Active alerts are counted
    regardless of when they were triggered.

    Args:
        store: Data store
        year: Calendar year, defaults to the current year
        limit: Maximum number of barangays returned

    Returns:
        Top `limit` barangays, highest score first
    """
    year = year or datetime.now().year
    start, end = year_bounds(year)

    rankings = []
    for barangay in await store.list_barangays():
        case_count = await store.count_cases(barangay.id, start, end)
        report_count = await store.count_environmental_reports(barangay.id, start, end)
        active_alerts = await store.count_active_alerts(barangay.id)
        rankings.append({
            "id": barangay.id,
            "name": barangay.name,
            "code": barangay.code,
            "municipality": barangay.municipality,
            "province": barangay.province,
            "case_count": case_count,
            "report_count": report_count,
            "active_alerts": active_alerts,
            "risk_score": compute_risk_score(case_count, report_count, active_alerts),
        })

    rankings.sort(key=lambda entry: entry["risk_score"], reverse=True)
    logger.debug(f"Ranked {len(rankings)} barangays for {year}")
    return rankings[:max(0, limit)]
