"""
Repositories over the complaint store tables.
"""

from complaint_hub.repositories.complaint import ComplaintRepository
from complaint_hub.repositories.worker import ProfileRepository, RoleRepository, WorkerRepository

__all__ = [
    "ComplaintRepository",
    "ProfileRepository",
    "RoleRepository",
    "WorkerRepository",
]
