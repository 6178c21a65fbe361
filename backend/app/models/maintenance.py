"""Maintenance tracking models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.core.database import Base
from backend.app.utils.timeutil import utcnow

MAINTENANCE_TYPES = ("Routine", "Emergency", "Calibration", "Upgrade")
MAINTENANCE_STATUSES = ("Pending", "In Progress", "Completed", "Cancelled")


class MaintenanceRecord(Base):
    """Log of a service event performed (or planned) on a printer."""

    __tablename__ = "maintenance_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    printer_id: Mapped[int] = mapped_column(ForeignKey("printers.id", ondelete="CASCADE"), index=True)
    date: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    # Type: Routine, Emergency, Calibration, Upgrade
    type: Mapped[str] = mapped_column(String(20))
    description: Mapped[str] = mapped_column(Text)
    technician: Mapped[str] = mapped_column(String(100))
    # Status: Pending, In Progress, Completed, Cancelled
    status: Mapped[str] = mapped_column(String(20), default="Pending")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    printer: Mapped["Printer"] = relationship()


# Import at end to avoid circular imports
from backend.app.models.printer import Printer  # noqa: E402
