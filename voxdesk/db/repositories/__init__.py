"""Repository pattern implementations for data access."""

from voxdesk.db.repositories.accounts import AsyncCallerAccountRepository
from voxdesk.db.repositories.appointments import AsyncAppointmentRepository
from voxdesk.db.repositories.calls import AsyncCallLogRepository

__all__ = [
    "AsyncCallerAccountRepository",
    "AsyncAppointmentRepository",
    "AsyncCallLogRepository",
]
