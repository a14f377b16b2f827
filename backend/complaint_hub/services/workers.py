"""
Worker directory and role administration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import NotFound, PermissionDenied, ValidationFailed
from complaint_hub.core.security import Actor, ensure_role
from complaint_hub.models.auth import AppRole
from complaint_hub.models.worker import Worker, WorkerType

logger = logging.getLogger(__name__)


async def resolve_actor(user_id: UUID, roles, workers) -> Actor:
    """Build the acting identity from the role table (and worker record)."""
    role = await roles.role_of(user_id)
    worker_id = None
    if role == AppRole.WORKER:
        worker = await workers.get_by_user(user_id)
        worker_id = worker.id if worker else None
    return Actor(role=role, user_id=user_id, worker_id=worker_id)


class WorkerService:
    """Administration of worker records and role assignments."""

    def __init__(self, workers, profiles, roles, complaint_service):
        self.workers = workers
        self.profiles = profiles
        self.roles = roles
        self.complaint_service = complaint_service

    async def list_with_profiles(self, user_id: Optional[UUID] = None) -> List[Dict[str, Any]]:
        """Workers, newest first, each joined with its profile's display data."""
        workers = await self.workers.search(user_id)
        profiles = await self.profiles.for_users(w.user_id for w in workers)
        return [{"worker": w, "profile": profiles.get(w.user_id)} for w in workers]

    async def register(
        self,
        actor: Actor,
        user_id: UUID,
        worker_type: WorkerType,
        phone: Optional[str] = None,
    ) -> Worker:
        """Create a worker record for an existing identity and grant the worker role."""
        ensure_role(actor, AppRole.ADMINISTRATOR)
        if user_id == actor.user_id:
            raise PermissionDenied("You cannot change your own role")
        if await self.workers.get_by_user(user_id) is not None:
            raise ValidationFailed("This identity is already registered as a worker")

        await self.roles.set_role(user_id, AppRole.WORKER)
        worker = await self.workers.insert(
            {"user_id": user_id, "worker_type": worker_type, "phone": phone, "is_available": True}
        )
        await self.workers.commit()
        logger.info("Registered worker %s (%s)", worker.id, worker_type.value)
        return worker

    async def set_availability(self, actor: Actor, worker_id: UUID, is_available: bool) -> Worker:
        ensure_role(actor, AppRole.ADMINISTRATOR)
        worker = await self._load(worker_id)
        worker = await self.workers.set_available(worker, is_available)
        await self.workers.commit()
        logger.info(
            "Worker %s marked %s", worker_id, "available" if is_available else "unavailable"
        )
        return worker

    async def remove(
        self, actor: Actor, worker_id: UUID, policy: str = settings.WORKER_DELETE_POLICY
    ) -> int:
        """
        Delete a worker record, clearing its complaint assignments first.

        Returns the number of complaints that were unassigned.
        """
        ensure_role(actor, AppRole.ADMINISTRATOR)
        worker = await self._load(worker_id)

        released = await self.complaint_service.assignments.release_worker(worker_id, policy)
        await self.roles.set_role(worker.user_id, AppRole.RESIDENT)
        await self.workers.delete(worker)
        await self.workers.commit()
        logger.info("Removed worker %s", worker_id)

        await self.complaint_service.publish_released(released)
        return len(released)

    async def set_role(self, actor: Actor, user_id: UUID, role: AppRole) -> AppRole:
        """Set an identity's role. Nobody changes their own role."""
        ensure_role(actor, AppRole.ADMINISTRATOR)
        if user_id == actor.user_id:
            raise PermissionDenied("You cannot change your own role")
        if role != AppRole.WORKER and await self.workers.get_by_user(user_id) is not None:
            raise ValidationFailed("Remove the worker record before changing this role")
        if role == AppRole.WORKER and await self.workers.get_by_user(user_id) is None:
            raise ValidationFailed("Register a worker record to grant the worker role")
        await self.roles.set_role(user_id, role)
        await self.roles.commit()
        logger.info("Role of %s set to %s by %s", user_id, role.value, actor.user_id)
        return role

    async def _load(self, worker_id: UUID) -> Worker:
        worker = await self.workers.get(worker_id)
        if worker is None:
            raise NotFound(f"Worker {worker_id} not found")
        return worker
