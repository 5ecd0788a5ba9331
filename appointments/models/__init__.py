from .appointment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentStatusLog,
    is_active_status,
)
from .catalog import Rider, VendorService, VendorStore

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Appointment",
    "AppointmentStatus",
    "AppointmentStatusLog",
    "Rider",
    "VendorService",
    "VendorStore",
    "is_active_status",
]
