"""
Early warning alert endpoints.
"""
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from ..schemas import AlertOut, AlertStatus, AlertStatusUpdate, RiskLevel
from ..services.store import SurveillanceStore, get_store
from ..services.websocket_manager import manager as ws_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Alerts"])


def to_alert_out(row) -> AlertOut:
    return AlertOut(
        id=row.id,
        barangay_id=row.barangay_id,
        title=row.title,
        message=row.message,
        risk_level=row.risk_level,
        status=row.status,
        triggered_at=row.triggered_at,
        resolved_at=row.resolved_at,
        metadata=row.details,
    )


async def change_alert_status(store: SurveillanceStore, alert_id: int, status: AlertStatus):
    """
    Moves an alert to `status`.

    `resolved_at` is stamped the first time the alert is resolved and never
    overwritten afterwards.
    """
    alert = await store.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")

    fields = {"status": status.value}
    if status == AlertStatus.RESOLVED and alert.resolved_at is None:
        fields["resolved_at"] = datetime.now()

    updated = await store.update_alert(alert_id, **fields)
    logger.info(f"Alert {alert_id} set to {status.value}")
    return to_alert_out(updated)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket feed of early warning events (`early_warning_alert`, `alert_resolved`).
    """
    await ws_manager.connect(websocket)
    try:
        while True:
            # Any client message serves as heartbeat
            try:
                await asyncio.wait_for(websocket.receive_text(), timeout=30.0)
            except asyncio.TimeoutError:
                await websocket.send_text('{"type":"ping"}')
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        ws_manager.disconnect(websocket)


@router.get("/alerts", response_model=List[AlertOut])
async def list_alerts(
    status: Optional[AlertStatus] = None,
    risk_level: Optional[RiskLevel] = None,
    barangay_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: SurveillanceStore = Depends(get_store),
):
    """
    List early warning alerts, most recently triggered first.

    Optional filters: status (ACTIVE, RESOLVED, DISMISSED), risk level and barangay.
    """
    rows = await store.list_alerts(
        status=status.value if status else None,
        risk_level=risk_level.value if risk_level else None,
        limit=limit,
        barangay_id=barangay_id,
        offset=offset,
    )
    return [to_alert_out(row) for row in rows]


@router.get("/alerts/{alert_id}", response_model=AlertOut)
async def get_alert(alert_id: int, store: SurveillanceStore = Depends(get_store)):
    alert = await store.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return to_alert_out(alert)


@router.put("/alerts/{alert_id}/status", response_model=AlertOut)
async def update_alert_status(
    alert_id: int,
    change: AlertStatusUpdate,
    store: SurveillanceStore = Depends(get_store),
):
    """Set an alert to ACTIVE, RESOLVED or DISMISSED."""
    return await change_alert_status(store, alert_id, change.status)


@router.put("/alerts/{alert_id}/resolve", response_model=AlertOut)
async def resolve_alert(alert_id: int, store: SurveillanceStore = Depends(get_store)):
    return await change_alert_status(store, alert_id, AlertStatus.RESOLVED)
