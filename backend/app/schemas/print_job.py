from typing import Literal

from pydantic import Field

from backend.app.schemas.common import ApiModel, UTCDatetime

JobStatus = Literal["Queued", "Printing", "Paused", "Completed", "Failed", "Cancelled"]
JobMaterial = Literal["PLA", "ABS", "PETG", "TPU"]

ESTIMATED_TIME_PATTERN = r"^\d+h \d+m$"


class PrintJobCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    printer: str = Field("Any", min_length=1, max_length=100)  # Printer name or "Any"
    material: JobMaterial
    estimated_time: str = Field(..., pattern=ESTIMATED_TIME_PATTERN)


class PrintJobUpdate(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    printer: str | None = Field(None, min_length=1, max_length=100)
    material: JobMaterial | None = None
    estimated_time: str | None = Field(None, pattern=ESTIMATED_TIME_PATTERN)
    status: JobStatus | None = None
    progress: int | None = Field(None, ge=0, le=100)


class PrintJobResponse(ApiModel):
    id: int
    name: str
    printer: str
    material: str
    estimated_time: str
    status: JobStatus
    progress: int
    start_time: UTCDatetime = None
    end_time: UTCDatetime = None
    created_at: UTCDatetime
    updated_at: UTCDatetime


class AssignPrinterRequest(ApiModel):
    job_id: int
    printer_name: str = Field(..., min_length=1)
