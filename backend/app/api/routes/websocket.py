import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.app.models.printer import Printer
from backend.app.services.printer_lifecycle import printer_to_dict

logger = logging.getLogger(__name__)
router = APIRouter()


def _printer_id(data: dict) -> int | None:
    value = data.get("printerId", data.get("printer_id"))
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def _load_printer(websocket: WebSocket, printer_id: int) -> Printer | None:
    async with websocket.app.state.session_factory() as db:
        return await db.get(Printer, printer_id)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time updates."""
    ws_manager = websocket.app.state.ws_manager
    discovery = websocket.app.state.discovery_service
    await ws_manager.connect(websocket)

    try:
        # Keep connection alive and handle incoming messages
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await websocket.send_json({"type": "error", "message": "Invalid message"})
                continue
            message_type = data.get("type")

            # Handle ping/pong for keepalive
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})

            elif message_type in ("subscribe", "get_status"):
                printer_id = _printer_id(data)
                printer = await _load_printer(websocket, printer_id) if printer_id is not None else None
                if printer is None:
                    await websocket.send_json({"type": "error", "message": "Printer not found"})
                    continue

                if message_type == "subscribe":
                    ws_manager.subscribe(websocket, printer_id)
                    await websocket.send_json({"type": "subscribed", "printer_id": printer_id})
                await websocket.send_json(
                    {"type": "printer_status", "printer_id": printer_id, "data": printer_to_dict(printer)}
                )

            elif message_type == "unsubscribe":
                printer_id = _printer_id(data)
                if printer_id is not None:
                    ws_manager.unsubscribe(websocket, printer_id)
                await websocket.send_json({"type": "unsubscribed", "printer_id": printer_id})

            elif message_type == "discover":
                started = discovery.start()
                await websocket.send_json({"type": "discovery_started", "started": started})

            else:
                await websocket.send_json({"type": "error", "message": f"Unknown message type: {message_type}"})

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected normally")
        await ws_manager.disconnect(websocket)
    except Exception as e:
        logger.error("WebSocket error: %s", e, exc_info=True)
        await ws_manager.disconnect(websocket)
