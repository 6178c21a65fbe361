"""Printer discovery API endpoints.

Discovery results are not returned here; they arrive over the WebSocket as
``printer_discovered`` messages while the round runs.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.app.api.deps import get_discovery_service
from backend.app.services.discovery import PrinterDiscoveryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/discovery", tags=["discovery"])


class DiscoveryStatus(BaseModel):
    """Discovery status response."""

    running: bool
    started: bool = False
    discovered: list[dict] = []


@router.get("/status", response_model=DiscoveryStatus)
async def get_discovery_status(discovery: PrinterDiscoveryService = Depends(get_discovery_service)):
    return DiscoveryStatus(running=discovery.is_running, discovered=list(discovery.discovered.values()))


@router.post("/start", response_model=DiscoveryStatus)
async def start_discovery(discovery: PrinterDiscoveryService = Depends(get_discovery_service)):
    """Broadcast a discovery request on every local network."""
    started = discovery.start()
    if not started:
        logger.debug("Discovery already running")
    return DiscoveryStatus(running=discovery.is_running, started=started)
