from datetime import datetime, timedelta

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.config import settings
from backend.app.core.database import Base
from backend.app.utils.timeutil import utcnow

# Sentinel values stored in place of null references
NO_JOB = "None"
NO_MATERIAL = "None"
NOT_AVAILABLE = "N/A"
ZERO_TIME_LEFT = "0h 0m"

PRINTER_STATUSES = ("Idle", "Printing", "Paused", "Error")


def _default_next_maintenance() -> datetime:
    return utcnow() + timedelta(days=settings.default_maintenance_interval_days)


class Printer(Base):
    __tablename__ = "printers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), default="Idle")
    progress: Mapped[int] = mapped_column(Integer, default=0)
    time_left: Mapped[str] = mapped_column(String(20), default=ZERO_TIME_LEFT)  # Display only, e.g. "2h 15m"
    bed_temperature: Mapped[float] = mapped_column(Float, default=25.0)
    nozzle_temperature: Mapped[float] = mapped_column(Float, default=25.0)

    # Denormalized display fields for the active job
    job: Mapped[str] = mapped_column(String(200), default=NO_JOB)
    material: Mapped[str] = mapped_column(String(20), default=NO_MATERIAL)
    start_time: Mapped[str] = mapped_column(String(40), default=NOT_AVAILABLE)
    estimated_end: Mapped[str] = mapped_column(String(40), default=NOT_AVAILABLE)

    # Explicit back-reference to the active job; the name in `job` can be ambiguous
    current_job_id: Mapped[int | None] = mapped_column(
        ForeignKey("print_jobs.id", ondelete="SET NULL"), nullable=True
    )

    last_maintenance: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    next_maintenance: Mapped[datetime] = mapped_column(DateTime, default=_default_next_maintenance)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def temperature(self) -> dict[str, float]:
        return {"bed": self.bed_temperature, "nozzle": self.nozzle_temperature}

    def reset_to_idle(self) -> None:
        """Clear the active-job fields and return to the resting state."""
        self.status = "Idle"
        self.progress = 0
        self.time_left = ZERO_TIME_LEFT
        self.job = NO_JOB
        self.material = NO_MATERIAL
        self.start_time = NOT_AVAILABLE
        self.estimated_end = NOT_AVAILABLE
        self.current_job_id = None
