"""
Early warning alert lifecycle.

After a case or environmental report is saved for a barangay, a background
check recomputes the barangay's monthly risk and creates, updates or resolves
its alerts accordingly.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Depends

from ..schemas import AlertStatus, RiskLevel
from ..utils.dates import month_bounds, shift_month
from .risk import (
    calculate_increase,
    determine_risk_level,
    is_rainy_season,
    should_trigger_alert,
)
from .store import SurveillanceStore, get_store
from .websocket_manager import manager as ws_manager

logger = logging.getLogger(__name__)

DEFAULT_BARANGAY_LABEL = "Barangay"
RESOLVABLE_RISK_LEVELS = (RiskLevel.HIGH.value, RiskLevel.MEDIUM.value)


def build_alert_title(barangay_name: Optional[str]) -> str:
    return f"Early Warning Alert - {barangay_name or DEFAULT_BARANGAY_LABEL}"


def build_alert_message(
    current_month_cases: int,
    current_increase: float,
    environmental_risks: int,
    is_rainy: bool
) -> str:
    return (
        f"High dengue risk detected. Current month: {current_month_cases} cases "
        f"({current_increase:.1f}% increase). Environmental risks: {environmental_risks}. "
        f"{'Rainy season active.' if is_rainy else ''}"
    )


class EarlyWarningService:
    """
    Evaluates a barangay's dengue risk for the current month and keeps its
    alerts in sync with the result.

    At most one ACTIVE alert per (barangay, risk level) is kept by looking up
    the existing alert before inserting. Concurrent checks for the same
    barangay are not serialized and may both insert.
    """

    def __init__(
        self,
        store: SurveillanceStore,
        notifier=ws_manager,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock

    async def trigger_early_warning_check(self, barangay_id: int) -> None:
        """
        Fire-and-forget entry point scheduled after case/report writes.

        Never raises: early warning must not affect the request that triggered it.
        """
        try:
            await self.run_check(barangay_id)
        except Exception:
            logger.exception(f"Error in early warning check for barangay {barangay_id}")

    async def assess(self, barangay_id: int) -> Dict[str, Any]:
        """
        Gathers the monthly counts for a barangay and classifies its risk.

        Returns:
            Dictionary with the inputs and outcome of the evaluation:
            - current_month_cases, previous_month_cases, two_months_ago_cases
            - environmental_risks
            - current_increase, previous_increase
            - is_rainy, month, year
            - risk_level, should_alert
        """
        now = self.clock()
        current_year, current_month = now.year, now.month
        previous_year, previous_month = shift_month(current_year, current_month, -1)
        earlier_year, earlier_month = shift_month(current_year, current_month, -2)

        current_month_cases = await self.store.count_cases(
            barangay_id, *month_bounds(current_year, current_month)
        )
        previous_month_cases = await self.store.count_cases(
            barangay_id, *month_bounds(previous_year, previous_month)
        )
        two_months_ago_cases = await self.store.count_cases(
            barangay_id, *month_bounds(earlier_year, earlier_month)
        )
        environmental_risks = await self.store.count_qualifying_environmental_reports(
            barangay_id, *month_bounds(current_year, current_month)
        )

        current_increase = calculate_increase(current_month_cases, previous_month_cases)
        previous_increase = calculate_increase(previous_month_cases, two_months_ago_cases)
        is_rainy = is_rainy_season(now)

        risk_level = determine_risk_level(
            current_month_cases,
            previous_month_cases,
            current_increase,
            environmental_risks,
            is_rainy,
        )

        return {
            "current_month_cases": current_month_cases,
            "previous_month_cases": previous_month_cases,
            "two_months_ago_cases": two_months_ago_cases,
            "environmental_risks": environmental_risks,
            "current_increase": current_increase,
            "previous_increase": previous_increase,
            "is_rainy": is_rainy,
            "month": current_month,
            "year": current_year,
            "risk_level": risk_level,
            "should_alert": should_trigger_alert(
                risk_level, current_increase, previous_increase, is_rainy
            ),
        }

    async def run_check(self, barangay_id: int) -> Dict[str, Any]:
        """
        Runs one early warning check and applies it to the alert store.

        Returns:
            The assessment from `assess`, plus:
            - action: "created", "updated", "resolved" or "none"
            - alert_ids: Alerts touched by the action
        """
        assessment = await self.assess(barangay_id)
        risk_level = assessment["risk_level"]

        if assessment["should_alert"]:
            message = build_alert_message(
                assessment["current_month_cases"],
                assessment["current_increase"],
                assessment["environmental_risks"],
                assessment["is_rainy"],
            )
            details = self._build_metadata(assessment)

            existing = await self.store.find_active_alert(barangay_id, risk_level.value)
            if existing is None:
                barangay_name = await self.store.find_barangay_name(barangay_id)
                alert = await self.store.create_alert(
                    barangay_id=barangay_id,
                    title=build_alert_title(barangay_name),
                    message=message,
                    risk_level=risk_level.value,
                    status=AlertStatus.ACTIVE.value,
                    details=details,
                )
                logger.info(
                    f"Created {risk_level.value} early warning alert {alert.id} "
                    f"for barangay {barangay_id}"
                )
                await self.notifier.send_early_warning_event({
                    "id": alert.id,
                    "barangay_id": barangay_id,
                    "title": alert.title,
                    "message": alert.message,
                    "risk_level": risk_level.value,
                    "triggered_at": alert.triggered_at.isoformat() if alert.triggered_at else None,
                })
                return {**assessment, "action": "created", "alert_ids": [alert.id]}

            await self.store.update_alert(
                existing.id,
                message=message,
                risk_level=risk_level.value,
                details=details,
            )
            logger.info(f"Updated early warning alert {existing.id} for barangay {barangay_id}")
            return {**assessment, "action": "updated", "alert_ids": [existing.id]}

        # LOW-level active alerts are left as they are
        active_alerts = await self.store.find_active_alerts_by_risk_levels(
            barangay_id, RESOLVABLE_RISK_LEVELS
        )
        if not active_alerts:
            return {**assessment, "action": "none", "alert_ids": []}

        resolved_at = self.clock()
        for alert in active_alerts:
            await self.store.resolve_alert(alert.id, resolved_at)

        alert_ids = [alert.id for alert in active_alerts]
        logger.info(f"Resolved {len(alert_ids)} early warning alert(s) for barangay {barangay_id}")
        await self.notifier.send_alert_resolved_event(barangay_id, alert_ids)
        return {**assessment, "action": "resolved", "alert_ids": alert_ids}

    @staticmethod
    def _build_metadata(assessment: Dict[str, Any]) -> Dict[str, Any]:
        """Snapshot of the inputs that produced the alert."""
        return {
            "current_month_cases": assessment["current_month_cases"],
            "previous_month_cases": assessment["previous_month_cases"],
            "current_increase": f"{assessment['current_increase']:.2f}",
            "previous_increase": f"{assessment['previous_increase']:.2f}",
            "environmental_risks": assessment["environmental_risks"],
            "is_rainy_season": assessment["is_rainy"],
            "month": assessment["month"],
            "year": assessment["year"],
        }


def get_early_warning_service(
    store: SurveillanceStore = Depends(get_store)
) -> EarlyWarningService:
    """Early warning service dependency."""
    return EarlyWarningService(store)
