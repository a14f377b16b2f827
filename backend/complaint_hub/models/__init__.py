"""
SQLAlchemy database models.
"""

from complaint_hub.models.auth import AppRole, UserRole
from complaint_hub.models.complaint import (
    Complaint,
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)
from complaint_hub.models.profile import Profile
from complaint_hub.models.worker import Worker, WorkerType

__all__ = [
    "AppRole",
    "UserRole",
    "Complaint",
    "ComplaintCategory",
    "ComplaintPriority",
    "ComplaintStatus",
    "Profile",
    "Worker",
    "WorkerType",
]
