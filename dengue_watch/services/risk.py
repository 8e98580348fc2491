"""
Risk evaluation for the early warning check and the public dashboard.

Two independent scales live here:

- `determine_risk_level` produces the persisted LOW/MEDIUM/HIGH level from the
  current calendar month's case trend, environmental reports and season.
- `classify_public_risk_level` produces the display-only LOW/MODERATE/HIGH/CRITICAL
  level from a 30-day risk score and the barangay's active alerts.
"""
from datetime import datetime
from typing import Optional

from ..schemas import PublicRiskLevel, RiskLevel

# Rainy season in the Philippines (June to November)
RAINY_SEASON_MONTHS = (6, 7, 8, 9, 10, 11)

CASE_INCREASE_PERCENTAGE_THRESHOLD = 50
ENVIRONMENTAL_RISK_COUNT_THRESHOLD = 5
CASE_COUNT_HIGH_THRESHOLD = 10
CASE_COUNT_MEDIUM_THRESHOLD = 5
ENVIRONMENTAL_RISK_COUNT_MEDIUM_THRESHOLD = 3

# Weights of the barangay risk score
CASE_WEIGHT = 2
REPORT_WEIGHT = 1
ACTIVE_ALERT_WEIGHT = 5

PUBLIC_HIGH_SCORE_THRESHOLD = 40
PUBLIC_MODERATE_SCORE_THRESHOLD = 15


def is_rainy_season(moment: Optional[datetime] = None) -> bool:
    """True when the month of `moment` (default: now) falls in the rainy season."""
    moment = moment or datetime.now()
    return moment.month in RAINY_SEASON_MONTHS


def calculate_increase(current: float, previous: float) -> float:
    """
    Percentage change from `previous` to `current`.

    Going from zero to anything counts as a 100% increase; staying at zero is 0%.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def determine_risk_level(
    current_month_cases: int,
    previous_month_cases: int,
    increase_percentage: float,
    environmental_risks: int,
    is_rainy: bool
) -> RiskLevel:
    """
    Classify a barangay's month into LOW, MEDIUM or HIGH risk.

    HIGH conditions are checked first; the first matching tier wins.
    `previous_month_cases` is accepted for completeness of the snapshot
    but only enters the decision through `increase_percentage`.

    Args:
        current_month_cases: Cases reported so far this calendar month
        previous_month_cases: Cases reported in the previous calendar month
        increase_percentage: Month-over-month change, see `calculate_increase`
        environmental_risks: Qualifying environmental reports this month
        is_rainy: Whether the current month is in the rainy season

    Returns:
        The risk level
    """
    high_case_count = current_month_cases >= CASE_COUNT_HIGH_THRESHOLD
    sharp_increase = increase_percentage >= CASE_INCREASE_PERCENTAGE_THRESHOLD
    many_environmental_risks = environmental_risks >= ENVIRONMENTAL_RISK_COUNT_THRESHOLD

    if (
        (high_case_count and is_rainy)
        or (sharp_increase and is_rainy and many_environmental_risks)
        or (high_case_count and many_environmental_risks)
    ):
        return RiskLevel.HIGH

    if (
        (sharp_increase and is_rainy)
        or (
            current_month_cases >= CASE_COUNT_MEDIUM_THRESHOLD
            and environmental_risks >= ENVIRONMENTAL_RISK_COUNT_MEDIUM_THRESHOLD
        )
        or (many_environmental_risks and is_rainy)
    ):
        return RiskLevel.MEDIUM

    return RiskLevel.LOW


def should_trigger_alert(
    risk_level: RiskLevel,
    current_increase: float,
    previous_increase: float,
    is_rainy: bool
) -> bool:
    """
    HIGH risk always alerts. MEDIUM risk alerts only after two consecutive
    months of sharp increase during the rainy season.
    """
    if risk_level == RiskLevel.HIGH:
        return True
    return (
        risk_level == RiskLevel.MEDIUM
        and current_increase >= CASE_INCREASE_PERCENTAGE_THRESHOLD
        and previous_increase >= CASE_INCREASE_PERCENTAGE_THRESHOLD
        and is_rainy
    )


def compute_risk_score(cases: int, reports: int, active_alerts: int) -> int:
    """Weighted barangay score used by both the 30-day and the yearly rankings."""
    return cases * CASE_WEIGHT + reports * REPORT_WEIGHT + active_alerts * ACTIVE_ALERT_WEIGHT


def classify_public_risk_level(
    risk_score: int,
    active_alert_count: int,
    latest_alert_risk_level: Optional[str]
) -> PublicRiskLevel:
    """
    Display-only risk level for the public forecast dashboard.

    Args:
        risk_score: 30-day score from `compute_risk_score`
        active_alert_count: Number of ACTIVE alerts for the barangay
        latest_alert_risk_level: Risk level of the most recently triggered ACTIVE alert

    Returns:
        CRITICAL, HIGH, MODERATE or LOW
    """
    if active_alert_count > 0 and latest_alert_risk_level == RiskLevel.HIGH.value:
        return PublicRiskLevel.CRITICAL
    if active_alert_count > 0 or risk_score >= PUBLIC_HIGH_SCORE_THRESHOLD:
        return PublicRiskLevel.HIGH
    if risk_score >= PUBLIC_MODERATE_SCORE_THRESHOLD:
        return PublicRiskLevel.MODERATE
    return PublicRiskLevel.LOW


def classify_trend(this_week_cases: int, previous_week_cases: int) -> str:
    delta = this_week_cases - previous_week_cases
    if delta > 0:
        return "increasing"
    if delta < 0:
        return "decreasing"
    return "stable"
