from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base

ANY_PRINTER = "Any"

JOB_STATUSES = ("Queued", "Printing", "Paused", "Completed", "Failed", "Cancelled")
ACTIVE_JOB_STATUSES = ("Printing", "Paused")
TERMINAL_JOB_STATUSES = ("Completed", "Failed", "Cancelled")
JOB_MATERIALS = ("PLA", "ABS", "PETG", "TPU")


class PrintJob(Base):
    """A unit of work queued against zero or one printer."""

    __tablename__ = "print_jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    # Printer name (soft reference) or "Any" when unassigned
    printer: Mapped[str] = mapped_column(String(100), default=ANY_PRINTER, index=True)
    material: Mapped[str] = mapped_column(String(20))
    estimated_time: Mapped[str] = mapped_column(String(20))  # "<h>h <m>m"

    # Status: Queued, Printing, Paused, Completed, Failed, Cancelled
    status: Mapped[str] = mapped_column(String(20), default="Queued", index=True)
    progress: Mapped[int] = mapped_column(Integer, default=0)

    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES
