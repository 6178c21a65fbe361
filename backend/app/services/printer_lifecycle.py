"""Printer lifecycle control: start, pause, resume, stop and progress.

Each operation touches a printer and its current job. Both writes go out in a
single transaction, and operations on the same printer are serialized twice
over: by an in-process lock per printer and by a conditional UPDATE on the
printer's status, so two racing StartPrint calls cannot both claim it.
StartPrint claims the job row the same way, so one queued job cannot start
on two printers at once.
"""

import asyncio
import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.websocket import ConnectionManager
from backend.app.models.print_job import PrintJob
from backend.app.models.printer import NO_JOB, Printer
from backend.app.schemas.printer import PrinterResponse
from backend.app.services.errors import InvalidStateError, NotFoundError
from backend.app.services.job_queue import JobQueueCoordinator
from backend.app.services.maintenance_scheduler import MaintenanceScheduler
from backend.app.utils.timeutil import format_display_time, parse_estimated_time, utcnow

logger = logging.getLogger(__name__)


class PrinterLockRegistry:
    """One asyncio.Lock per printer id, created on first use."""

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, printer_id: int) -> asyncio.Lock:
        lock = self._locks.get(printer_id)
        if lock is None:
            lock = self._locks[printer_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, printer_id: int):
        async with self.get(printer_id):
            yield

    def discard(self, printer_id: int) -> None:
        self._locks.pop(printer_id, None)

    def __len__(self) -> int:
        return len(self._locks)


def printer_to_dict(printer: Printer) -> dict:
    """Serialize a printer the way the REST API returns it."""
    return PrinterResponse.model_validate(printer).model_dump(mode="json", by_alias=True)


class PrinterLifecycleController:
    def __init__(
        self,
        db: AsyncSession,
        locks: PrinterLockRegistry,
        notifier: ConnectionManager | None = None,
    ):
        self.db = db
        self.locks = locks
        self.notifier = notifier
        self.jobs = JobQueueCoordinator(db)
        self.maintenance = MaintenanceScheduler(db)

    async def _get_printer(self, printer_id: int) -> Printer:
        printer = await self.db.get(Printer, printer_id)
        if printer is None:
            raise NotFoundError("Printer not found")
        return printer

    async def _claim(self, printer: Printer, expected: Iterable[str], new_status: str, message: str) -> None:
        """Move the printer to `new_status` only if it is still in `expected`.

        The status check is repeated in the WHERE clause so that a writer
        that slipped in after our read loses the race instead of overwriting.
        """
        expected = tuple(expected)
        if printer.status not in expected:
            raise InvalidStateError(message)

        result = await self.db.execute(
            update(Printer)
            .where(Printer.id == printer.id, Printer.status.in_(expected))
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidStateError(message)
        printer.status = new_status

    async def _claim_job(self, job: PrintJob) -> None:
        """Move a queued job to Printing, failing if another printer took it first."""
        result = await self.db.execute(
            update(PrintJob)
            .where(PrintJob.id == job.id, PrintJob.status == "Queued")
            .values(status="Printing")
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidStateError("Print job is not queued")
        job.status = "Printing"

    async def _matching_job(self, printer: Printer, statuses: Iterable[str]) -> PrintJob | None:
        """Find the printer's current job among jobs in `statuses`.

        The explicit back-reference wins. Printers edited through the field API
        may only carry the job name, so fall back to the oldest job by name.
        """
        statuses = tuple(statuses)
        if printer.current_job_id is not None:
            job = await self.db.get(PrintJob, printer.current_job_id)
            if job is not None and job.status in statuses:
                return job

        if printer.job == NO_JOB:
            return None
        result = await self.db.execute(
            select(PrintJob)
            .where(PrintJob.name == printer.job, PrintJob.status.in_(statuses))
            .order_by(PrintJob.created_at, PrintJob.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _commit(self, printer: Printer, job: PrintJob | None) -> None:
        await self.db.commit()
        await self.db.refresh(printer)
        if job is not None:
            await self.db.refresh(job)

    async def _publish(self, printer: Printer, job: PrintJob | None = None) -> None:
        if self.notifier is None:
            return
        await self.notifier.send_printer_status(printer.id, printer_to_dict(printer))
        if job is not None:
            await self.notifier.send_job_progress(job.id, job.progress, job.status)

    # ============== Transitions ==============

    async def start_print(self, printer_id: int, job_id: int) -> Printer:
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            if printer.status != "Idle":
                raise InvalidStateError("Printer is not idle")

            job = await self.jobs.get_job(job_id)
            self.jobs.ensure_startable(job, printer)

            await self._claim(printer, ("Idle",), "Printing", "Printer is not idle")
            await self._claim_job(job)

            now = utcnow()
            estimated_ms = parse_estimated_time(job.estimated_time)
            printer.job = job.name
            printer.material = job.material
            printer.time_left = job.estimated_time
            printer.progress = 0
            printer.start_time = format_display_time(now)
            printer.estimated_end = format_display_time(now + timedelta(milliseconds=estimated_ms))
            printer.current_job_id = job.id

            job.start_time = now
            job.printer = printer.name

            await self._commit(printer, job)

        logger.info("Printer %s started job %s (%s)", printer.id, job.id, job.name)
        await self._publish(printer, job)
        return printer

    async def pause_print(self, printer_id: int) -> Printer:
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            await self._claim(printer, ("Printing",), "Paused", "Printer is not printing")

            job = await self._matching_job(printer, ("Printing",))
            if job is not None:
                job.status = "Paused"
            else:
                logger.warning("Printer %s paused without a matching printing job", printer.id)

            await self._commit(printer, job)

        logger.info("Printer %s paused", printer.id)
        await self._publish(printer, job)
        return printer

    async def resume_print(self, printer_id: int) -> Printer:
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            await self._claim(printer, ("Paused",), "Printing", "Printer is not paused")

            job = await self._matching_job(printer, ("Paused",))
            if job is not None:
                job.status = "Printing"
            else:
                logger.warning("Printer %s resumed without a matching paused job", printer.id)

            await self._commit(printer, job)

        logger.info("Printer %s resumed", printer.id)
        await self._publish(printer, job)
        return printer

    async def _finish(
        self,
        printer_id: int,
        expected: tuple[str, ...],
        job_status: str,
        message: str,
        final_progress: int | None = None,
    ) -> Printer:
        """End the current print with `job_status` and return the printer to Idle."""
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            await self._claim(printer, expected, "Idle", message)

            job = await self._matching_job(printer, ("Printing", "Paused"))
            if job is not None:
                job.status = job_status
                job.end_time = utcnow()
                job.progress = printer.progress if final_progress is None else final_progress
            else:
                logger.warning("Printer %s finished without a matching active job", printer.id)

            printer.reset_to_idle()
            await self._commit(printer, job)

        logger.info("Printer %s back to Idle, job %s", printer.id, job_status.lower())
        await self._publish(printer, job)
        return printer

    async def stop_print(self, printer_id: int) -> Printer:
        return await self._finish(printer_id, ("Printing", "Paused"), "Cancelled", "Printer is not printing or paused")

    async def complete_print(self, printer_id: int) -> Printer:
        return await self._finish(printer_id, ("Printing",), "Completed", "Printer is not printing", final_progress=100)

    async def fail_print(self, printer_id: int) -> Printer:
        return await self._finish(printer_id, ("Printing", "Paused"), "Failed", "Printer is not printing or paused")

    async def update_progress(self, printer_id: int, progress: int, time_left: str) -> Printer:
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            await self._claim(printer, ("Printing",), "Printing", "Printer is not printing")

            printer.progress = progress
            printer.time_left = time_left

            job = await self._matching_job(printer, ("Printing",))
            if job is not None:
                job.progress = progress

            await self._commit(printer, job)

        logger.debug("Printer %s progress %s%% (%s left)", printer.id, progress, time_left)
        await self._publish(printer, job)
        return printer

    # ============== Deletion ==============

    async def delete_printer(self, printer_id: int) -> None:
        """Delete a printer, its maintenance records, and unassign its queued jobs."""
        async with self.locks.hold(printer_id):
            printer = await self._get_printer(printer_id)
            name = printer.name

            removed = await self.maintenance.delete_printer_records(printer.id)
            released = await self.jobs.release_printer(name)
            await self.db.delete(printer)
            await self.db.commit()

        self.locks.discard(printer_id)
        logger.info(
            "Deleted printer %s (%s): %d maintenance records removed, %d queued jobs unassigned",
            printer_id,
            name,
            removed,
            released,
        )
