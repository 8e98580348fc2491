"""
Data access for cases, environmental reports, barangays and alerts.

Every operation opens its own session, so the store can be shared between
request handlers and background early warning checks.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func, or_, desc
from sqlalchemy.orm import selectinload

from ..db import SessionLocal
from ..models import Alert, Barangay, DengueCase, EnvironmentalReport
from ..schemas import AlertStatus


def _qualifying_report_clause():
    """At least one of the four environmental risk flags is set."""
    return or_(
        EnvironmentalReport.stagnant_water.is_(True),
        EnvironmentalReport.poor_waste_disposal.is_(True),
        EnvironmentalReport.clogged_drainage.is_(True),
        EnvironmentalReport.housing_congestion.is_(True),
    )


class SurveillanceStore:
    """
    SQLAlchemy-backed store used by the early warning, forecast and ranking services.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def _scalar(self, query) -> Any:
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar()

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------
    async def count_cases(
        self,
        barangay_id: Optional[int],
        date_from: datetime,
        date_to: datetime
    ) -> int:
        """Cases reported in [date_from, date_to]. `barangay_id=None` counts every barangay."""
        query = select(func.count(DengueCase.id)).where(
            DengueCase.date_reported >= date_from,
            DengueCase.date_reported <= date_to,
        )
        if barangay_id is not None:
            query = query.where(DengueCase.barangay_id == barangay_id)
        return await self._scalar(query) or 0

    async def count_cases_in_window(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        barangay_id: Optional[int] = None
    ) -> int:
        """Cases reported in the half-open window [start, end). Missing bounds are open."""
        query = select(func.count(DengueCase.id))
        if start is not None:
            query = query.where(DengueCase.date_reported >= start)
        if end is not None:
            query = query.where(DengueCase.date_reported < end)
        if barangay_id is not None:
            query = query.where(DengueCase.barangay_id == barangay_id)
        return await self._scalar(query) or 0

    async def count_environmental_reports(
        self,
        barangay_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        qualifying_only: bool = False
    ) -> int:
        """Environmental reports in [date_from, date_to]; missing bounds are open."""
        query = select(func.count(EnvironmentalReport.id))
        if barangay_id is not None:
            query = query.where(EnvironmentalReport.barangay_id == barangay_id)
        if date_from is not None:
            query = query.where(EnvironmentalReport.date_reported >= date_from)
        if date_to is not None:
            query = query.where(EnvironmentalReport.date_reported <= date_to)
        if qualifying_only:
            query = query.where(_qualifying_report_clause())
        return await self._scalar(query) or 0

    async def count_qualifying_environmental_reports(
        self,
        barangay_id: int,
        date_from: Optional[datetime],
        date_to: Optional[datetime] = None
    ) -> int:
        return await self.count_environmental_reports(
            barangay_id, date_from, date_to, qualifying_only=True
        )

    async def count_active_alerts(self, barangay_id: Optional[int] = None) -> int:
        query = select(func.count(Alert.id)).where(Alert.status == AlertStatus.ACTIVE.value)
        if barangay_id is not None:
            query = query.where(Alert.barangay_id == barangay_id)
        return await self._scalar(query) or 0

    async def count_barangays(self) -> int:
        return await self._scalar(select(func.count(Barangay.id))) or 0

    # ------------------------------------------------------------------
    # Barangays
    # ------------------------------------------------------------------
    async def get_barangay(self, barangay_id: int) -> Optional[Barangay]:
        async with self.session_factory() as session:
            return await session.get(Barangay, barangay_id)

    async def find_barangay_name(self, barangay_id: int) -> Optional[str]:
        return await self._scalar(select(Barangay.name).where(Barangay.id == barangay_id))

    async def list_barangays(self) -> List[Barangay]:
        async with self.session_factory() as session:
            result = await session.execute(select(Barangay).order_by(Barangay.name))
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------
    async def find_active_alert(self, barangay_id: int, risk_level: str) -> Optional[Alert]:
        """Most recently triggered ACTIVE alert for the barangay at this risk level."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Alert)
                .where(
                    Alert.barangay_id == barangay_id,
                    Alert.status == AlertStatus.ACTIVE.value,
                    Alert.risk_level == risk_level,
                )
                .order_by(desc(Alert.triggered_at))
                .limit(1)
            )
            return result.scalars().first()

    async def find_active_alerts_by_risk_levels(
        self,
        barangay_id: int,
        levels: Iterable[str]
    ) -> List[Alert]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Alert).where(
                    Alert.barangay_id == barangay_id,
                    Alert.status == AlertStatus.ACTIVE.value,
                    Alert.risk_level.in_(list(levels)),
                )
            )
            return list(result.scalars().all())

    async def most_recent_active_alert(self, barangay_id: int) -> Optional[Alert]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Alert)
                .where(
                    Alert.barangay_id == barangay_id,
                    Alert.status == AlertStatus.ACTIVE.value,
                )
                .order_by(desc(Alert.triggered_at))
                .limit(1)
            )
            return result.scalars().first()

    async def get_alert(self, alert_id: int) -> Optional[Alert]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Alert).options(selectinload(Alert.barangay)).where(Alert.id == alert_id)
            )
            return result.scalars().first()

    async def list_alerts(
        self,
        status: Optional[str] = None,
        risk_level: Optional[str] = None,
        limit: Optional[int] = None,
        barangay_id: Optional[int] = None,
        offset: int = 0
    ) -> List[Alert]:
        """Alerts with their barangay loaded, newest first."""
        query = select(Alert).options(selectinload(Alert.barangay))
        if status:
            query = query.where(Alert.status == status)
        if risk_level:
            query = query.where(Alert.risk_level == risk_level)
        if barangay_id is not None:
            query = query.where(Alert.barangay_id == barangay_id)
        query = query.order_by(desc(Alert.triggered_at)).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def create_alert(self, **fields) -> Alert:
        async with self.session_factory() as session:
            alert = Alert(**fields)
            session.add(alert)
            await session.commit()
            await session.refresh(alert)
            return alert

    async def update_alert(self, alert_id: int, **fields) -> Optional[Alert]:
        async with self.session_factory() as session:
            alert = await session.get(Alert, alert_id)
            if alert is None:
                return None
            for field, value in fields.items():
                setattr(alert, field, value)
            await session.commit()
            await session.refresh(alert)
            return alert

    async def resolve_alert(self, alert_id: int, resolved_at: datetime) -> Optional[Alert]:
        return await self.update_alert(
            alert_id,
            status=AlertStatus.RESOLVED.value,
            resolved_at=resolved_at,
        )

    # ------------------------------------------------------------------
    # Cases and environmental reports
    # ------------------------------------------------------------------
    async def get_case(self, case_id: int) -> Optional[DengueCase]:
        async with self.session_factory() as session:
            return await session.get(DengueCase, case_id)

    async def list_cases(
        self,
        barangay_id: Optional[int] = None,
        status: Optional[str] = None,
        source: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[DengueCase]:
        """Cases reported in [date_from, date_to], most recent first."""
        query = select(DengueCase)
        if barangay_id is not None:
            query = query.where(DengueCase.barangay_id == barangay_id)
        if status:
            query = query.where(DengueCase.status == status)
        if source:
            query = query.where(DengueCase.source == source)
        if date_from is not None:
            query = query.where(DengueCase.date_reported >= date_from)
        if date_to is not None:
            query = query.where(DengueCase.date_reported <= date_to)
        query = query.order_by(desc(DengueCase.date_reported)).offset(offset).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_report(self, report_id: int) -> Optional[EnvironmentalReport]:
        async with self.session_factory() as session:
            return await session.get(EnvironmentalReport, report_id)

    async def list_reports(
        self,
        barangay_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[EnvironmentalReport]:
        query = select(EnvironmentalReport)
        if barangay_id is not None:
            query = query.where(EnvironmentalReport.barangay_id == barangay_id)
        if date_from is not None:
            query = query.where(EnvironmentalReport.date_reported >= date_from)
        if date_to is not None:
            query = query.where(EnvironmentalReport.date_reported <= date_to)
        query = query.order_by(desc(EnvironmentalReport.date_reported)).offset(offset).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def create_case(self, data: Dict[str, Any]) -> DengueCase:
        async with self.session_factory() as session:
            record = DengueCase(**data)
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def update_case(self, case_id: int, data: Dict[str, Any]) -> Optional[DengueCase]:
        async with self.session_factory() as session:
            record = await session.get(DengueCase, case_id)
            if record is None:
                return None
            for field, value in data.items():
                setattr(record, field, value)
            await session.commit()
            await session.refresh(record)
            return record

    async def create_report(self, data: Dict[str, Any]) -> EnvironmentalReport:
        async with self.session_factory() as session:
            record = EnvironmentalReport(**data)
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def update_report(self, report_id: int, data: Dict[str, Any]) -> Optional[EnvironmentalReport]:
        async with self.session_factory() as session:
            record = await session.get(EnvironmentalReport, report_id)
            if record is None:
                return None
            for field, value in data.items():
                setattr(record, field, value)
            await session.commit()
            await session.refresh(record)
            return record

    async def latest_activity(self) -> Optional[datetime]:
        """Most recent `updated_at` across cases, reports and alerts."""
        timestamps = [
            await self._scalar(select(func.max(DengueCase.updated_at))),
            await self._scalar(select(func.max(EnvironmentalReport.updated_at))),
            await self._scalar(select(func.max(Alert.updated_at))),
        ]
        timestamps = [ts for ts in timestamps if ts is not None]
        return max(timestamps) if timestamps else None


store = SurveillanceStore()


def get_store() -> SurveillanceStore:
    """Store dependency."""
    return store
