"""FastAPI dependencies that hand routes their services.

Process-wide services (WebSocket fan-out, printer locks, discovery) are built
once by ``create_app`` and kept on ``app.state``; per-request services wrap the
request's database session.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.websocket import ConnectionManager
from backend.app.services.discovery import PrinterDiscoveryService
from backend.app.services.job_queue import JobQueueCoordinator
from backend.app.services.maintenance_scheduler import MaintenanceScheduler
from backend.app.services.printer_lifecycle import PrinterLifecycleController, PrinterLockRegistry


def get_notifier(request: Request) -> ConnectionManager:
    return request.app.state.ws_manager


def get_printer_locks(request: Request) -> PrinterLockRegistry:
    return request.app.state.printer_locks


def get_discovery_service(request: Request) -> PrinterDiscoveryService:
    return request.app.state.discovery_service


def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    locks: PrinterLockRegistry = Depends(get_printer_locks),
    notifier: ConnectionManager = Depends(get_notifier),
) -> PrinterLifecycleController:
    return PrinterLifecycleController(db, locks, notifier)


def get_job_queue(db: AsyncSession = Depends(get_db)) -> JobQueueCoordinator:
    return JobQueueCoordinator(db)


def get_maintenance_scheduler(db: AsyncSession = Depends(get_db)) -> MaintenanceScheduler:
    return MaintenanceScheduler(db)
