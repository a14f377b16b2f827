"""
Worker assignment: resolving workers for complaints and complaints for workers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import InvalidTransition, NotFound
from complaint_hub.models.complaint import Complaint, ComplaintStatus
from complaint_hub.models.worker import Worker

logger = logging.getLogger(__name__)

# Statuses in which a worker still has work to do
ACTIVE_ASSIGNMENT_STATUSES = frozenset(
    {ComplaintStatus.IN_PROGRESS, ComplaintStatus.WAITING_CONFIRMATION}
)


class AssignmentResolver:
    """
    Maps complaints to workers and workers to their queues.

    Assignment itself is an ordinary administrator field write handled by
    the complaint service; availability is informational and never blocks it.
    """

    def __init__(self, complaints, workers):
        self.complaints = complaints
        self.workers = workers

    async def resolve_worker(self, worker_id: UUID) -> Worker:
        worker = await self.workers.get(worker_id)
        if worker is None:
            raise NotFound(f"Worker {worker_id} not found")
        return worker

    async def assignment_fields(self, worker_id: Optional[UUID]) -> Dict[str, Any]:
        """Columns to write when (un)assigning ``worker_id``."""
        if worker_id is None:
            return {"assigned_worker_id": None, "assigned_staff": None}
        worker = await self.resolve_worker(worker_id)
        worker_type = getattr(worker.worker_type, "value", worker.worker_type)
        if not worker.is_available:
            logger.info("Assigning unavailable worker %s", worker_id)
        return {"assigned_worker_id": worker.id, "assigned_staff": worker_type}

    async def queue_for(self, worker_id: UUID) -> List[Complaint]:
        """Complaints assigned to ``worker_id``, newest first."""
        return await self.complaints.search({"assigned_worker_id": worker_id})

    async def release_worker(
        self, worker_id: UUID, policy: str = settings.WORKER_DELETE_POLICY
    ) -> List[Tuple[Dict[str, Any], Complaint]]:
        """
        Clear every reference to a worker that is about to be removed.

        With the ``block`` policy the removal is refused while the worker
        still has in-progress or unconfirmed complaints. Returns
        ``(old_image, updated_complaint)`` pairs for the cleared rows.
        """
        queue = await self.queue_for(worker_id)
        if policy == "block":
            active = [c for c in queue if ComplaintStatus(c.status) in ACTIVE_ASSIGNMENT_STATUSES]
            if active:
                raise InvalidTransition(
                    f"Worker still has {len(active)} active complaint(s); reassign them first"
                )

        released = []
        for complaint in queue:
            old = complaint.to_dict()
            updated = await self.complaints.update(
                complaint, {"assigned_worker_id": None, "assigned_staff": None}
            )
            released.append((old, updated))
        if released:
            logger.info("Unassigned %d complaint(s) from worker %s", len(released), worker_id)
        return released
