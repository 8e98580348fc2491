"""
Environmental risk report endpoints.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from ..schemas import EnvironmentalReportIn, EnvironmentalReportOut, EnvironmentalReportUpdate
from ..services.early_warning import EarlyWarningService, get_early_warning_service
from ..services.store import SurveillanceStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Environmental Reports"])

# Columns that cannot be cleared; an explicit null for them is ignored
NON_NULLABLE_FIELDS = (
    "barangay_id",
    "date_reported",
    "stagnant_water",
    "poor_waste_disposal",
    "clogged_drainage",
    "housing_congestion",
)


def to_report_out(record) -> EnvironmentalReportOut:
    return EnvironmentalReportOut(
        id=record.id,
        barangay_id=record.barangay_id,
        date_reported=record.date_reported,
        stagnant_water=record.stagnant_water,
        poor_waste_disposal=record.poor_waste_disposal,
        clogged_drainage=record.clogged_drainage,
        housing_congestion=record.housing_congestion,
        notes=record.notes,
    )


@router.get("", response_model=List[EnvironmentalReportOut])
async def list_reports(
    barangay_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: SurveillanceStore = Depends(get_store),
):
    """List environmental reports, most recent first. The date range is inclusive."""
    records = await store.list_reports(
        barangay_id=barangay_id,
        date_from=start_date,
        date_to=end_date,
        limit=limit,
        offset=offset,
    )
    return [to_report_out(record) for record in records]


@router.get("/{report_id}", response_model=EnvironmentalReportOut)
async def get_report(report_id: int, store: SurveillanceStore = Depends(get_store)):
    record = await store.get_report(report_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return to_report_out(record)


@router.post("", response_model=EnvironmentalReportOut, status_code=201)
async def create_report(
    report: EnvironmentalReportIn,
    background_tasks: BackgroundTasks,
    store: SurveillanceStore = Depends(get_store),
    early_warning: EarlyWarningService = Depends(get_early_warning_service),
):
    """Record an environmental report and schedule the barangay's early warning check."""
    if await store.get_barangay(report.barangay_id) is None:
        raise HTTPException(status_code=400, detail="Unknown barangay")

    record = await store.create_report(report.model_dump())
    logger.info(f"Recorded environmental report {record.id} for barangay {record.barangay_id}")

    background_tasks.add_task(early_warning.trigger_early_warning_check, record.barangay_id)

    return to_report_out(record)


@router.put("/{report_id}", response_model=EnvironmentalReportOut)
async def update_report(
    report_id: int,
    changes: EnvironmentalReportUpdate,
    background_tasks: BackgroundTasks,
    store: SurveillanceStore = Depends(get_store),
    early_warning: EarlyWarningService = Depends(get_early_warning_service),
):
    data = {
        field: value
        for field, value in changes.model_dump(exclude_unset=True).items()
        if value is not None or field not in NON_NULLABLE_FIELDS
    }
    if data.get("barangay_id") is not None and await store.get_barangay(data["barangay_id"]) is None:
        raise HTTPException(status_code=400, detail="Unknown barangay")

    record = await store.update_report(report_id, data)
    if record is None:
        raise HTTPException(status_code=404, detail="Report not found")

    if data.get("barangay_id") is not None:
        background_tasks.add_task(early_warning.trigger_early_warning_check, data["barangay_id"])

    return to_report_out(record)
