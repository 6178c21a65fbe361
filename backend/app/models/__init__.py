from backend.app.models.printer import Printer
from backend.app.models.print_job import PrintJob
from backend.app.models.maintenance import MaintenanceRecord

__all__ = [
    "Printer",
    "PrintJob",
    "MaintenanceRecord",
]
