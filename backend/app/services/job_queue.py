"""Print job queue coordination.

Owns PrintJob creation, editing and deletion, the cross-entity checks that tie
a job to a printer by name, and the read-only queue views. Occupying a printer
is not done here: a job is only *pointed at* an idle printer until the
lifecycle controller starts it.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.print_job import (
    ACTIVE_JOB_STATUSES,
    ANY_PRINTER,
    TERMINAL_JOB_STATUSES,
    PrintJob,
)
from backend.app.models.printer import Printer
from backend.app.schemas.print_job import PrintJobCreate, PrintJobUpdate
from backend.app.services.errors import InvalidStateError, NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)

# Fields that cannot change once a job is printing
FROZEN_WHILE_PRINTING = ("printer", "material", "estimated_time")


class JobQueueCoordinator:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Queries ==============

    async def list_jobs(self) -> list[PrintJob]:
        result = await self.db.execute(select(PrintJob).order_by(PrintJob.created_at.desc(), PrintJob.id.desc()))
        return list(result.scalars().all())

    async def list_queued(self) -> list[PrintJob]:
        """Queued jobs, oldest first."""
        result = await self.db.execute(
            select(PrintJob).where(PrintJob.status == "Queued").order_by(PrintJob.created_at, PrintJob.id)
        )
        return list(result.scalars().all())

    async def list_active(self) -> list[PrintJob]:
        """Printing and paused jobs, most recently started first."""
        result = await self.db.execute(
            select(PrintJob)
            .where(PrintJob.status.in_(ACTIVE_JOB_STATUSES))
            .order_by(PrintJob.start_time.desc(), PrintJob.id.desc())
        )
        return list(result.scalars().all())

    async def list_completed(self) -> list[PrintJob]:
        """Finished jobs (completed, failed, cancelled), most recently ended first."""
        result = await self.db.execute(
            select(PrintJob)
            .where(PrintJob.status.in_(TERMINAL_JOB_STATUSES))
            .order_by(PrintJob.end_time.desc(), PrintJob.id.desc())
        )
        return list(result.scalars().all())

    async def get_job(self, job_id: int) -> PrintJob:
        job = await self.db.get(PrintJob, job_id)
        if job is None:
            raise NotFoundError("Print job not found")
        return job

    async def find_printer_by_name(self, name: str) -> Printer | None:
        result = await self.db.execute(select(Printer).where(Printer.name == name))
        return result.scalar_one_or_none()

    # ============== Mutations ==============

    async def _require_available_printer(self, printer_name: str) -> None:
        """Check that a job may be pointed at the named printer."""
        if printer_name == ANY_PRINTER:
            return
        printer = await self.find_printer_by_name(printer_name)
        if printer is None:
            raise ValidationFailure("Specified printer not found")
        if printer.status != "Idle":
            raise ValidationFailure("Specified printer is not available")

    async def create_job(self, data: PrintJobCreate) -> PrintJob:
        await self._require_available_printer(data.printer)

        job = PrintJob(
            name=data.name,
            printer=data.printer,
            material=data.material,
            estimated_time=data.estimated_time,
            status="Queued",
            progress=0,
        )
        self.db.add(job)
        await self.db.commit()
        await self.db.refresh(job)

        logger.info("Created print job %s (%s) for printer %s", job.id, job.name, job.printer)
        return job

    async def update_job(self, job_id: int, data: PrintJobUpdate) -> PrintJob:
        job = await self.get_job(job_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if job.status == "Printing":
            frozen = [f for f in FROZEN_WHILE_PRINTING if f in update_data and update_data[f] != getattr(job, f)]
            if frozen:
                raise InvalidStateError("Cannot update printer, material, or estimated time while job is printing")

        if job.is_terminal and "status" in update_data and update_data["status"] != job.status:
            raise InvalidStateError(f"Cannot change status of a {job.status.lower()} job")

        if "printer" in update_data and update_data["printer"] != job.printer:
            await self._require_available_printer(update_data["printer"])

        old_name = job.name
        for field, value in update_data.items():
            setattr(job, field, value)

        # Keep the printer's denormalized job name in step with a rename
        if job.name != old_name and job.status in ACTIVE_JOB_STATUSES:
            await self.db.execute(update(Printer).where(Printer.current_job_id == job.id).values(job=job.name))

        await self.db.commit()
        await self.db.refresh(job)

        logger.info("Updated print job %s", job_id)
        return job

    async def delete_job(self, job_id: int) -> None:
        job = await self.get_job(job_id)
        if job.status == "Printing":
            raise InvalidStateError("Cannot delete a job that is currently printing")

        await self.db.execute(update(Printer).where(Printer.current_job_id == job.id).values(current_job_id=None))
        await self.db.delete(job)
        await self.db.commit()

        logger.info("Deleted print job %s", job_id)

    async def assign_printer(self, job_id: int, printer_name: str) -> PrintJob:
        """Point a queued job at an idle printer without starting it."""
        job = await self.get_job(job_id)
        if job.status != "Queued":
            raise InvalidStateError("Can only assign printer to queued jobs")

        printer = await self.find_printer_by_name(printer_name)
        if printer is None:
            raise NotFoundError("Printer not found")
        if printer.status != "Idle":
            raise InvalidStateError("Printer is not available")

        job.printer = printer_name
        await self.db.commit()
        await self.db.refresh(job)

        logger.info("Assigned print job %s to printer %s", job_id, printer_name)
        return job

    def ensure_startable(self, job: PrintJob, printer: Printer) -> None:
        """Check that `job` can start on `printer`. Does not touch the store."""
        if job.status != "Queued":
            raise InvalidStateError("Print job is not queued")
        if job.printer not in (ANY_PRINTER, printer.name):
            raise InvalidStateError(f"Print job is assigned to printer {job.printer}")

    # ============== Printer cascades ==============

    async def release_printer(self, printer_name: str) -> int:
        """Unassign queued jobs from a deleted printer. Caller commits."""
        result = await self.db.execute(
            update(PrintJob)
            .where(PrintJob.printer == printer_name, PrintJob.status == "Queued")
            .values(printer=ANY_PRINTER)
        )
        return result.rowcount

    async def rename_printer(self, old_name: str, new_name: str) -> int:
        """Follow a printer rename in every unfinished job. Caller commits."""
        result = await self.db.execute(
            update(PrintJob)
            .where(PrintJob.printer == old_name, PrintJob.status.not_in(TERMINAL_JOB_STATUSES))
            .values(printer=new_name)
        )
        return result.rowcount
