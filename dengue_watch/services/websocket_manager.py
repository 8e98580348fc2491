"""
WebSocket manager for real-time early warning notifications.
"""
import json
import logging
from typing import List
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks active WebSocket connections and broadcasts alert events to them.
    """

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket connected. Active connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"WebSocket closed. Active connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        """
        Sends a message to every active connection.
        Connections that fail to receive it are dropped.

        Args:
            message: JSON-serializable payload
        """
        if not self.active_connections:
            logger.debug("No active connections to broadcast to")
            return

        message_json = json.dumps(message, default=str)
        disconnected_clients = []

        for connection in list(self.active_connections):
            try:
                await connection.send_text(message_json)
            except Exception as e:
                logger.error(f"Failed to send WebSocket message: {e}")
                disconnected_clients.append(connection)

        for client in disconnected_clients:
            self.disconnect(client)

        if disconnected_clients:
            logger.warning(f"Dropped {len(disconnected_clients)} inactive connections")

    async def send_early_warning_event(self, alert_data: dict):
        """
        Notifies clients that a new early warning alert was raised.

        Args:
            alert_data: Summary of the created alert
        """
        await self.broadcast({"type": "early_warning_alert", "data": alert_data})
        logger.warning(f"Early warning alert broadcast for barangay {alert_data.get('barangay_id')}")

    async def send_alert_resolved_event(self, barangay_id: int, alert_ids: List[int]):
        await self.broadcast({
            "type": "alert_resolved",
            "data": {"barangay_id": barangay_id, "alert_ids": alert_ids}
        })


manager = ConnectionManager()
