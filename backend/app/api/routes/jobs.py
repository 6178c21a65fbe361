"""API routes for print job management."""

import logging

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_job_queue
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.print_job import (
    AssignPrinterRequest,
    PrintJobCreate,
    PrintJobResponse,
    PrintJobUpdate,
)
from backend.app.services.job_queue import JobQueueCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/", response_model=list[PrintJobResponse])
async def list_jobs(queue: JobQueueCoordinator = Depends(get_job_queue)):
    """List all print jobs, newest first."""
    return await queue.list_jobs()


@router.get("/queued", response_model=list[PrintJobResponse])
async def list_queued_jobs(queue: JobQueueCoordinator = Depends(get_job_queue)):
    return await queue.list_queued()


@router.get("/active", response_model=list[PrintJobResponse])
async def list_active_jobs(queue: JobQueueCoordinator = Depends(get_job_queue)):
    return await queue.list_active()


@router.get("/completed", response_model=list[PrintJobResponse])
async def list_completed_jobs(queue: JobQueueCoordinator = Depends(get_job_queue)):
    return await queue.list_completed()


@router.post("/assign", response_model=PrintJobResponse)
async def assign_printer(data: AssignPrinterRequest, queue: JobQueueCoordinator = Depends(get_job_queue)):
    """Point a queued job at an idle printer without starting it."""
    return await queue.assign_printer(data.job_id, data.printer_name)


@router.get("/{job_id}", response_model=PrintJobResponse)
async def get_job(job_id: int, queue: JobQueueCoordinator = Depends(get_job_queue)):
    return await queue.get_job(job_id)


@router.post("/", response_model=PrintJobResponse, status_code=201)
async def create_job(data: PrintJobCreate, queue: JobQueueCoordinator = Depends(get_job_queue)):
    """Queue a new print job."""
    return await queue.create_job(data)


@router.put("/{job_id}", response_model=PrintJobResponse)
async def update_job(job_id: int, data: PrintJobUpdate, queue: JobQueueCoordinator = Depends(get_job_queue)):
    return await queue.update_job(job_id, data)


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, queue: JobQueueCoordinator = Depends(get_job_queue)):
    """Remove a print job. Jobs that are printing cannot be deleted."""
    await queue.delete_job(job_id)
    return {"message": "Print job deleted successfully"}
