from datetime import datetime
from typing import Literal

from pydantic import Field

from backend.app.schemas.common import ApiModel, UTCDatetime

MaintenanceType = Literal["Routine", "Emergency", "Calibration", "Upgrade"]
MaintenanceStatus = Literal["Pending", "In Progress", "Completed", "Cancelled"]


class MaintenanceRecordCreate(ApiModel):
    printer: int  # Printer id
    date: datetime | None = None  # Defaults to now
    type: MaintenanceType
    description: str = Field(..., min_length=1)
    technician: str = Field(..., min_length=1, max_length=100)
    status: MaintenanceStatus = "Pending"
    notes: str | None = None


class MaintenanceRecordUpdate(ApiModel):
    printer: int | None = None
    date: datetime | None = None
    type: MaintenanceType | None = None
    description: str | None = Field(None, min_length=1)
    technician: str | None = Field(None, min_length=1, max_length=100)
    status: MaintenanceStatus | None = None
    notes: str | None = None


class MaintenanceRecordResponse(ApiModel):
    id: int
    printer: int
    date: UTCDatetime
    type: MaintenanceType
    description: str
    technician: str
    status: MaintenanceStatus
    notes: str | None = None
    created_at: UTCDatetime
    updated_at: UTCDatetime

    @classmethod
    def from_record(cls, record) -> "MaintenanceRecordResponse":
        """Create response from ORM model, exposing printer_id as `printer`."""
        return cls(
            id=record.id,
            printer=record.printer_id,
            date=record.date,
            type=record.type,
            description=record.description,
            technician=record.technician,
            status=record.status,
            notes=record.notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
