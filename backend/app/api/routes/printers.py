import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_lifecycle
from backend.app.core.database import get_db
from backend.app.models.printer import Printer
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.printer import (
    PrinterCreate,
    PrinterResponse,
    PrinterUpdate,
    ProgressUpdate,
    StartPrintRequest,
)
from backend.app.services.job_queue import JobQueueCoordinator
from backend.app.services.printer_lifecycle import PrinterLifecycleController
from backend.app.utils.timeutil import to_naive_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/printers", tags=["printers"])


async def _name_taken(db: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    query = select(Printer.id).where(Printer.name == name)
    if exclude_id is not None:
        query = query.where(Printer.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


def _apply_fields(printer: Printer, data: dict) -> None:
    """Copy validated API fields onto the ORM model."""
    temperature = data.pop("temperature", None)
    if temperature is not None:
        printer.bed_temperature = temperature["bed"]
        printer.nozzle_temperature = temperature["nozzle"]
    for key in ("last_maintenance", "next_maintenance"):
        if data.get(key) is not None:
            data[key] = to_naive_utc(data[key])
    for key, value in data.items():
        setattr(printer, key, value)


@router.get("/", response_model=list[PrinterResponse])
async def list_printers(db: AsyncSession = Depends(get_db)):
    """List all printers."""
    result = await db.execute(select(Printer).order_by(Printer.id))
    return result.scalars().all()


@router.post("/", response_model=PrinterResponse, status_code=201)
async def create_printer(printer_data: PrinterCreate, db: AsyncSession = Depends(get_db)):
    """Add a new printer."""
    if await _name_taken(db, printer_data.name):
        raise HTTPException(400, "Printer with this name already exists")

    printer = Printer()
    data = printer_data.model_dump()
    # Model defaults apply when maintenance dates are not supplied
    for key in ("last_maintenance", "next_maintenance"):
        if data[key] is None:
            del data[key]
    _apply_fields(printer, data)

    db.add(printer)
    await db.commit()
    await db.refresh(printer)

    logger.info("Created printer %s (%s)", printer.id, printer.name)
    return printer


@router.get("/{printer_id}", response_model=PrinterResponse)
async def get_printer(printer_id: int, db: AsyncSession = Depends(get_db)):
    """Get a specific printer."""
    printer = await db.get(Printer, printer_id)
    if not printer:
        raise HTTPException(404, "Printer not found")
    return printer


@router.put("/{printer_id}", response_model=PrinterResponse)
async def update_printer(printer_id: int, printer_data: PrinterUpdate, db: AsyncSession = Depends(get_db)):
    """Edit printer fields directly. No lifecycle rules are applied."""
    printer = await db.get(Printer, printer_id)
    if not printer:
        raise HTTPException(404, "Printer not found")

    update_data = printer_data.model_dump(exclude_unset=True, exclude_none=True)
    old_name = printer.name
    new_name = update_data.get("name", old_name)
    if new_name != old_name and await _name_taken(db, new_name, exclude_id=printer_id):
        raise HTTPException(400, "Printer with this name already exists")

    _apply_fields(printer, update_data)
    if new_name != old_name:
        await JobQueueCoordinator(db).rename_printer(old_name, new_name)

    await db.commit()
    await db.refresh(printer)

    logger.info("Updated printer %s", printer_id)
    return printer


@router.delete("/{printer_id}", response_model=MessageResponse)
async def delete_printer(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    """Delete a printer, its maintenance history, and unassign its queued jobs."""
    await lifecycle.delete_printer(printer_id)
    return {"message": "Printer deleted successfully"}


# ============== Print Control ==============


@router.post("/{printer_id}/start", response_model=PrinterResponse)
async def start_print(
    printer_id: int,
    data: StartPrintRequest,
    lifecycle: PrinterLifecycleController = Depends(get_lifecycle),
):
    """Start a queued job on an idle printer."""
    return await lifecycle.start_print(printer_id, data.job_id)


@router.post("/{printer_id}/pause", response_model=PrinterResponse)
async def pause_print(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    return await lifecycle.pause_print(printer_id)


@router.post("/{printer_id}/resume", response_model=PrinterResponse)
async def resume_print(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    return await lifecycle.resume_print(printer_id)


@router.post("/{printer_id}/stop", response_model=PrinterResponse)
async def stop_print(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    """Cancel the current job and return the printer to Idle."""
    return await lifecycle.stop_print(printer_id)


@router.post("/{printer_id}/complete", response_model=PrinterResponse)
async def complete_print(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    """Mark the current job completed and return the printer to Idle."""
    return await lifecycle.complete_print(printer_id)


@router.post("/{printer_id}/fail", response_model=PrinterResponse)
async def fail_print(printer_id: int, lifecycle: PrinterLifecycleController = Depends(get_lifecycle)):
    """Mark the current job failed and return the printer to Idle."""
    return await lifecycle.fail_print(printer_id)


@router.put("/{printer_id}/progress", response_model=PrinterResponse)
async def update_progress(
    printer_id: int,
    data: ProgressUpdate,
    lifecycle: PrinterLifecycleController = Depends(get_lifecycle),
):
    return await lifecycle.update_progress(printer_id, data.progress, data.time_left)
