"""
Dengue case intake endpoints.

Each write schedules an early warning check for the affected barangay,
which runs after the response is sent.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from ..schemas import CaseIn, CaseOut, CaseSource, CaseStatus, CaseUpdate
from ..services.early_warning import EarlyWarningService, get_early_warning_service
from ..services.store import SurveillanceStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["Cases"])

# Columns that cannot be cleared; an explicit null for them is ignored
NON_NULLABLE_FIELDS = ("barangay_id", "date_reported", "status", "source")


def to_case_out(record) -> CaseOut:
    return CaseOut(
        id=record.id,
        barangay_id=record.barangay_id,
        date_reported=record.date_reported,
        status=record.status,
        source=record.source,
        age=record.age,
        sex=record.sex,
    )


@router.get("", response_model=List[CaseOut])
async def list_cases(
    barangay_id: Optional[int] = None,
    status: Optional[CaseStatus] = None,
    source: Optional[CaseSource] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: SurveillanceStore = Depends(get_store),
):
    """
    List cases, most recently reported first.

    Query params:
        barangay_id, status, source: Exact-match filters
        start_date, end_date: Inclusive range on date_reported
        limit, offset: Paging
    """
    records = await store.list_cases(
        barangay_id=barangay_id,
        status=status.value if status else None,
        source=source.value if source else None,
        date_from=start_date,
        date_to=end_date,
        limit=limit,
        offset=offset,
    )
    return [to_case_out(record) for record in records]


@router.get("/{case_id}", response_model=CaseOut)
async def get_case(case_id: int, store: SurveillanceStore = Depends(get_store)):
    record = await store.get_case(case_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return to_case_out(record)


@router.post("", response_model=CaseOut, status_code=201)
async def create_case(
    case: CaseIn,
    background_tasks: BackgroundTasks,
    store: SurveillanceStore = Depends(get_store),
    early_warning: EarlyWarningService = Depends(get_early_warning_service),
):
    """
    Record a dengue case.

    - Validates that the barangay exists
    - Stores the case
    - Schedules the barangay's early warning check
    """
    if await store.get_barangay(case.barangay_id) is None:
        raise HTTPException(status_code=400, detail="Unknown barangay")

    data = case.model_dump()
    data["status"] = case.status.value
    data["source"] = case.source.value
    record = await store.create_case(data)
    logger.info(f"Recorded case {record.id} for barangay {record.barangay_id}")

    background_tasks.add_task(early_warning.trigger_early_warning_check, record.barangay_id)

    return to_case_out(record)


@router.put("/{case_id}", response_model=CaseOut)
async def update_case(
    case_id: int,
    changes: CaseUpdate,
    background_tasks: BackgroundTasks,
    store: SurveillanceStore = Depends(get_store),
    early_warning: EarlyWarningService = Depends(get_early_warning_service),
):
    """
    Update a dengue case.

    Sending null clears `age` or `sex`. The early warning check only runs
    when the update names a barangay.
    """
    data = {
        field: value
        for field, value in changes.model_dump(exclude_unset=True).items()
        if value is not None or field not in NON_NULLABLE_FIELDS
    }
    if data.get("barangay_id") is not None and await store.get_barangay(data["barangay_id"]) is None:
        raise HTTPException(status_code=400, detail="Unknown barangay")
    for field in ("status", "source"):
        if data.get(field) is not None:
            data[field] = data[field].value

    record = await store.update_case(case_id, data)
    if record is None:
        raise HTTPException(status_code=404, detail="Case not found")

    if data.get("barangay_id") is not None:
        background_tasks.add_task(early_warning.trigger_early_warning_check, data["barangay_id"])

    return to_case_out(record)
