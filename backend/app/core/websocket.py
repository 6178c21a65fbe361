"""WebSocket connection manager for best-effort state fan-out.

Delivery is fire-and-forget: a failed send drops the connection and is never
retried. Clients are expected to re-query the REST API after reconnecting.
"""

import logging

from fastapi import WebSocket

from backend.app.utils.timeutil import format_display_time, utcnow

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected dashboards and their per-printer subscriptions."""

    def __init__(self):
        self.active_connections: set[WebSocket] = set()
        self.printer_subscriptions: dict[int, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info("WebSocket client connected (%d total)", len(self.active_connections))

    async def disconnect(self, websocket: WebSocket):
        """Forget a connection and every subscription it held."""
        self.active_connections.discard(websocket)
        for printer_id in list(self.printer_subscriptions):
            subscribers = self.printer_subscriptions[printer_id]
            subscribers.discard(websocket)
            if not subscribers:
                del self.printer_subscriptions[printer_id]
        logger.info("WebSocket client disconnected (%d total)", len(self.active_connections))

    def subscribe(self, websocket: WebSocket, printer_id: int):
        self.printer_subscriptions.setdefault(printer_id, set()).add(websocket)

    def unsubscribe(self, websocket: WebSocket, printer_id: int):
        subscribers = self.printer_subscriptions.get(printer_id)
        if subscribers is None:
            return
        subscribers.discard(websocket)
        if not subscribers:
            del self.printer_subscriptions[printer_id]

    def subscriber_count(self, printer_id: int) -> int:
        return len(self.printer_subscriptions.get(printer_id, ()))

    async def _send_all(self, connections: set[WebSocket], message: dict):
        disconnected = []
        for connection in list(connections):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug("Dropping WebSocket after failed send: %s", e)
                disconnected.append(connection)

        for connection in disconnected:
            await self.disconnect(connection)

    async def broadcast(self, message: dict):
        """Send a message to every connected client."""
        if not self.active_connections:
            return
        await self._send_all(self.active_connections, message)

    async def send_to_printer(self, printer_id: int, message: dict):
        """Send a message to clients subscribed to one printer."""
        subscribers = self.printer_subscriptions.get(printer_id)
        if not subscribers:
            return
        await self._send_all(subscribers, message)

    async def send_printer_status(self, printer_id: int, data: dict):
        await self.send_to_printer(
            printer_id,
            {
                "type": "printer_status",
                "printer_id": printer_id,
                "data": data,
                "timestamp": format_display_time(utcnow()),
            },
        )

    async def send_job_progress(self, job_id: int, progress: int, status: str):
        await self.broadcast(
            {
                "type": "job_progress",
                "job_id": job_id,
                "data": {"progress": progress, "status": status},
                "timestamp": format_display_time(utcnow()),
            }
        )

    async def send_printers_discovered(self, printers: list[dict]):
        await self.broadcast({"type": "printer_discovered", "data": {"printers": printers}})
