"""
Dashboard push channel.

Connected dashboards receive JSON messages over a WebSocket; the new-order
alert (sound and vibration) is played by the client when it receives a
"new_orders" message.
"""

import logging
from typing import Any, Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)

VIBRATION_PATTERN = [300, 100, 300]


class ConnectionManager:
    """Tracks dashboard WebSocket connections."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Dashboard connected ({len(self.active_connections)} clients)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"Dashboard disconnected ({len(self.active_connections)} clients left)")

    async def broadcast(self, message: Dict[str, Any]) -> None:
        """Send JSON message to all connected dashboards, remove dead connections."""
        alive = []
        for ws in self.active_connections:
            try:
                await ws.send_json(message)
                alive.append(ws)
            except Exception:
                # Connection closed/errored, drop it
                logger.debug("Dropping dead dashboard connection")
        self.active_connections = alive


class Notifier:
    """Raises the new-order alert on every connected dashboard."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def new_orders(self, order_ids: List[str], sound: bool, vibrate: bool) -> None:
        logger.info(f"New orders: {', '.join(order_ids)}")
        await self.manager.broadcast({
            "action": "new_orders",
            "order_ids": order_ids,
            "sound": sound,
            "vibrate": VIBRATION_PATTERN if vibrate else None,
        })

    async def state_changed(self, snapshot: Dict[str, Any]) -> None:
        await self.manager.broadcast({"action": "state", **snapshot})
