from datetime import datetime
from typing import Literal

from pydantic import Field

from backend.app.schemas.common import ApiModel, UTCDatetime

PrinterStatus = Literal["Idle", "Printing", "Paused", "Error"]
PrinterMaterial = Literal["PLA", "ABS", "PETG", "TPU", "None"]


class Temperature(ApiModel):
    bed: float = 25.0
    nozzle: float = 25.0


class PrinterBase(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    status: PrinterStatus = "Idle"
    progress: int = Field(0, ge=0, le=100)
    time_left: str = "0h 0m"
    temperature: Temperature = Field(default_factory=Temperature)
    job: str = "None"
    material: PrinterMaterial = "None"
    start_time: str = "N/A"
    estimated_end: str = "N/A"


class PrinterCreate(PrinterBase):
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None


class PrinterUpdate(ApiModel):
    """Direct field edit. Lifecycle fields are editable here too, unchecked."""

    name: str | None = Field(None, min_length=1, max_length=100)
    status: PrinterStatus | None = None
    progress: int | None = Field(None, ge=0, le=100)
    time_left: str | None = None
    temperature: Temperature | None = None
    job: str | None = None
    material: PrinterMaterial | None = None
    start_time: str | None = None
    estimated_end: str | None = None
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None


class PrinterResponse(PrinterBase):
    id: int
    current_job_id: int | None = None
    last_maintenance: UTCDatetime
    next_maintenance: UTCDatetime
    created_at: UTCDatetime
    updated_at: UTCDatetime


class StartPrintRequest(ApiModel):
    job_id: int


class ProgressUpdate(ApiModel):
    progress: int = Field(..., ge=0, le=100)
    time_left: str = Field(..., min_length=1)
