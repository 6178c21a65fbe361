"""Maintenance tracking API routes."""

import logging

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_maintenance_scheduler
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.maintenance import (
    MaintenanceRecordCreate,
    MaintenanceRecordResponse,
    MaintenanceRecordUpdate,
)
from backend.app.schemas.printer import PrinterResponse
from backend.app.services.maintenance_scheduler import MaintenanceScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("/", response_model=list[MaintenanceRecordResponse])
async def list_maintenance_records(scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler)):
    """Get all maintenance records, most recent first."""
    records = await scheduler.list_records()
    return [MaintenanceRecordResponse.from_record(r) for r in records]


# ============== Schedule ==============


@router.get("/upcoming", response_model=list[PrinterResponse])
async def get_upcoming_maintenance(scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler)):
    """Printers whose next maintenance falls within the upcoming window."""
    return await scheduler.upcoming()


@router.get("/overdue", response_model=list[PrinterResponse])
async def get_overdue_maintenance(scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler)):
    """Printers whose next maintenance date has passed."""
    return await scheduler.overdue()


@router.get("/printer/{printer_id}", response_model=list[MaintenanceRecordResponse])
async def get_printer_maintenance_history(
    printer_id: int,
    scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler),
):
    records = await scheduler.printer_history(printer_id)
    return [MaintenanceRecordResponse.from_record(r) for r in records]


# ============== Records ==============


@router.get("/{record_id}", response_model=MaintenanceRecordResponse)
async def get_maintenance_record(record_id: int, scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler)):
    record = await scheduler.get_record(record_id)
    return MaintenanceRecordResponse.from_record(record)


@router.post("/", response_model=MaintenanceRecordResponse, status_code=201)
async def create_maintenance_record(
    data: MaintenanceRecordCreate,
    scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler),
):
    """Log maintenance and reschedule the printer's next service."""
    record = await scheduler.create_record(data)
    return MaintenanceRecordResponse.from_record(record)


@router.put("/{record_id}", response_model=MaintenanceRecordResponse)
async def update_maintenance_record(
    record_id: int,
    data: MaintenanceRecordUpdate,
    scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler),
):
    """Update a record. Setting status to Completed reschedules the printer."""
    record = await scheduler.update_record(record_id, data)
    return MaintenanceRecordResponse.from_record(record)


@router.delete("/{record_id}", response_model=MessageResponse)
async def delete_maintenance_record(
    record_id: int,
    scheduler: MaintenanceScheduler = Depends(get_maintenance_scheduler),
):
    await scheduler.delete_record(record_id)
    return {"message": "Maintenance record deleted successfully"}
