"""Maintenance record keeping and next-maintenance scheduling."""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.models.maintenance import MaintenanceRecord
from backend.app.models.printer import Printer
from backend.app.schemas.maintenance import MaintenanceRecordCreate, MaintenanceRecordUpdate
from backend.app.services.errors import NotFoundError
from backend.app.utils.timeutil import add_days, add_months, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# Interval until the next service, per maintenance type: (unit, amount)
NEXT_MAINTENANCE_POLICY: dict[str, tuple[str, int]] = {
    "Routine": ("months", 1),
    "Emergency": ("days", 7),
    "Calibration": ("days", 14),
    "Upgrade": ("months", 3),
}


def next_maintenance_date(maintenance_type: str, performed_at: datetime) -> datetime:
    """Compute when the next service is due after one of `maintenance_type`.

    Month intervals follow calendar months and clamp to the last day of the
    target month; unknown types leave the date unchanged.
    """
    unit, amount = NEXT_MAINTENANCE_POLICY.get(maintenance_type, ("days", 0))
    if unit == "months":
        return add_months(performed_at, amount)
    return add_days(performed_at, amount)


class MaintenanceScheduler:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_printer(self, printer_id: int) -> Printer:
        printer = await self.db.get(Printer, printer_id)
        if printer is None:
            raise NotFoundError("Printer not found")
        return printer

    def _apply_schedule(self, printer: Printer, record: MaintenanceRecord) -> None:
        printer.last_maintenance = record.date
        printer.next_maintenance = next_maintenance_date(record.type, record.date)
        logger.info(
            "Printer %s maintenance rescheduled: last=%s next=%s (%s)",
            printer.id,
            printer.last_maintenance,
            printer.next_maintenance,
            record.type,
        )

    # ============== Records ==============

    async def list_records(self) -> list[MaintenanceRecord]:
        result = await self.db.execute(
            select(MaintenanceRecord).order_by(MaintenanceRecord.date.desc(), MaintenanceRecord.id.desc())
        )
        return list(result.scalars().all())

    async def get_record(self, record_id: int) -> MaintenanceRecord:
        record = await self.db.get(MaintenanceRecord, record_id)
        if record is None:
            raise NotFoundError("Maintenance record not found")
        return record

    async def printer_history(self, printer_id: int) -> list[MaintenanceRecord]:
        await self._get_printer(printer_id)
        result = await self.db.execute(
            select(MaintenanceRecord)
            .where(MaintenanceRecord.printer_id == printer_id)
            .order_by(MaintenanceRecord.date.desc(), MaintenanceRecord.id.desc())
        )
        return list(result.scalars().all())

    async def create_record(self, data: MaintenanceRecordCreate) -> MaintenanceRecord:
        """Log a maintenance event and reschedule the printer.

        The schedule moves on every create, whatever the record's status, so a
        planned (Pending) record also advances nextMaintenance.
        """
        printer = await self._get_printer(data.printer)

        record = MaintenanceRecord(
            printer_id=printer.id,
            date=to_naive_utc(data.date) if data.date else utcnow(),
            type=data.type,
            description=data.description,
            technician=data.technician,
            status=data.status,
            notes=data.notes,
        )
        self.db.add(record)
        self._apply_schedule(printer, record)

        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Created %s maintenance record %s for printer %s", record.type, record.id, printer.id)
        return record

    async def update_record(self, record_id: int, data: MaintenanceRecordUpdate) -> MaintenanceRecord:
        """Edit a record; completing it reschedules its printer."""
        record = await self.get_record(record_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        printer = None
        if "printer" in update_data:
            printer = await self._get_printer(update_data.pop("printer"))
            record.printer_id = printer.id
        if "date" in update_data:
            update_data["date"] = to_naive_utc(update_data["date"])

        for field, value in update_data.items():
            setattr(record, field, value)

        if update_data.get("status") == "Completed":
            if printer is None:
                printer = await self.db.get(Printer, record.printer_id)
            if printer is not None:
                self._apply_schedule(printer, record)

        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Updated maintenance record %s", record_id)
        return record

    async def delete_record(self, record_id: int) -> None:
        """Remove a record. The printer's schedule is left as it is."""
        record = await self.get_record(record_id)
        await self.db.delete(record)
        await self.db.commit()
        logger.info("Deleted maintenance record %s", record_id)

    async def delete_printer_records(self, printer_id: int) -> int:
        """Remove every record of a deleted printer. Caller commits."""
        result = await self.db.execute(delete(MaintenanceRecord).where(MaintenanceRecord.printer_id == printer_id))
        return result.rowcount

    # ============== Schedule views ==============

    async def upcoming(self, now: datetime | None = None) -> list[Printer]:
        """Printers due within the upcoming window, soonest first."""
        now = now or utcnow()
        window_end = now + timedelta(days=settings.upcoming_maintenance_days)
        result = await self.db.execute(
            select(Printer)
            .where(Printer.next_maintenance >= now, Printer.next_maintenance <= window_end)
            .order_by(Printer.next_maintenance, Printer.id)
        )
        return list(result.scalars().all())

    async def overdue(self, now: datetime | None = None) -> list[Printer]:
        """Printers past their next maintenance date, most overdue first."""
        now = now or utcnow()
        result = await self.db.execute(
            select(Printer).where(Printer.next_maintenance < now).order_by(Printer.next_maintenance, Printer.id)
        )
        return list(result.scalars().all())
