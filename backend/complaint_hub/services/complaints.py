"""
Complaint operations.

Every mutation runs the same pipeline:

1. load the pre-mutation snapshot (``NotFound`` if missing),
2. authorization gate (``PermissionDenied``),
3. quota for creation (``QuotaExceeded``),
4. lifecycle rules and side effects (``InvalidTransition``),
5. write and commit,
6. publish the change and schedule notifications.

Steps 1 to 4 never write, so a rejected request leaves the store untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import (
    NotFound,
    PermissionDenied,
    StaleVersion,
    StoreFailure,
    ValidationFailed,
)
from complaint_hub.core.metrics import record_status_transition
from complaint_hub.core.security import Actor
from complaint_hub.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from complaint_hub.services.assignment import AssignmentResolver
from complaint_hub.services.authorization import (
    authorize,
    authorize_create,
    authorize_delete,
    ensure_allowed,
)
from complaint_hub.services.change_feed import ChangeEvent, ChangeFeed
from complaint_hub.services.lifecycle import INITIAL_STATUS, plan_transition
from complaint_hub.services.quota import QuotaEnforcer
from complaint_hub.services.scope import ViewerScope
from complaint_hub.services.sync import COMPLAINTS_TABLE
from complaint_hub.utils.notifications import background_notifier

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("hostel_name", "block", "floor", "room_number")


class ComplaintService:
    """Lifecycle-aware operations on complaints for a given actor."""

    def __init__(
        self,
        complaints,
        workers,
        profiles,
        feed: ChangeFeed,
        notifier=None,
        max_active: int = settings.MAX_ACTIVE_COMPLAINTS,
    ):
        self.complaints = complaints
        self.profiles = profiles
        self.feed = feed
        # Notifications are scheduled, never awaited inside the request
        self.notifier = notifier or background_notifier
        self.quota = QuotaEnforcer(complaints, max_active)
        self.assignments = AssignmentResolver(complaints, workers)

    # Reads

    async def list(self, actor: Actor, filters: Optional[Dict[str, Any]] = None) -> List[Complaint]:
        """Complaints matching ``filters`` within the actor's visibility, newest first."""
        merged = ViewerScope.for_actor(actor).merge(filters or {})
        if merged is None:
            return []
        return await self.complaints.search(merged)

    async def get(self, actor: Actor, complaint_id: UUID) -> Complaint:
        complaint = await self._load(complaint_id)
        if not ViewerScope.for_actor(actor).matches(complaint.to_dict()):
            # Out-of-scope rows are reported as missing.
            raise NotFound(f"Complaint {complaint_id} not found")
        return complaint

    async def summary(self, actor: Actor) -> Dict[str, Any]:
        merged = ViewerScope.for_actor(actor).merge({})
        if merged is None:
            counts = {status.value: 0 for status in ComplaintStatus}
            return {"total": 0, "by_status": counts, "open_high_priority": 0}
        counts = await self.complaints.status_counts(merged)
        return {
            "total": sum(counts.values()),
            "by_status": counts,
            "open_high_priority": await self.complaints.count_open_high_priority(merged),
        }

    async def quota_status(self, actor: Actor) -> Dict[str, Any]:
        return await self.quota.status(actor.user_id)

    async def queue_for(self, actor: Actor, worker_id: UUID) -> List[Complaint]:
        if not (actor.is_admin or (actor.is_worker and actor.worker_id == worker_id)):
            raise PermissionDenied("You can only view your own queue")
        await self.assignments.resolve_worker(worker_id)
        return await self.assignments.queue_for(worker_id)

    # Writes

    async def create(self, actor: Actor, payload: Dict[str, Any]) -> Complaint:
        values = dict(payload)
        owner_id = values.pop("user_id", None) or actor.user_id
        ensure_allowed(authorize_create(actor, owner_id), actor, "create")
        await self.quota.ensure_can_create(owner_id)

        if any(values.get(field) is None for field in LOCATION_FIELDS):
            profile = await self.profiles.get_by_user(owner_id)
            if profile is not None:
                for field, default in profile.location_defaults().items():
                    if values.get(field) is None:
                        values[field] = default

        values.update(
            user_id=owner_id,
            status=INITIAL_STATUS,
            priority=values.get("priority") or ComplaintPriority.MEDIUM,
            assigned_worker_id=None,
            assigned_staff=None,
            admin_notes=None,
            version=1,
        )
        complaint = await self.complaints.insert(values)
        await self.complaints.commit()
        logger.info("Complaint %s created by %s", complaint.id, owner_id)

        await self._publish("INSERT", new=complaint.to_dict())
        return complaint

    async def patch(
        self,
        actor: Actor,
        complaint_id: UUID,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Complaint:
        if not changes:
            raise ValidationFailed("No fields to update")

        complaint = await self._load(complaint_id, for_update=expected_version is not None)
        ensure_allowed(authorize(actor, complaint, changes), actor, "update")

        if expected_version is not None and complaint.version != expected_version:
            raise StaleVersion(
                f"Complaint is at version {complaint.version}, not {expected_version}"
            )

        patch = dict(changes)
        if "assigned_worker_id" in patch:
            assignment = await self.assignments.assignment_fields(patch["assigned_worker_id"])
            if patch.get("assigned_staff") is None:
                patch.update(assignment)
            else:
                patch["assigned_worker_id"] = assignment["assigned_worker_id"]

        plan = plan_transition(actor, complaint, patch)
        previous_worker = complaint.assigned_worker_id
        old = complaint.to_dict()

        updated = await self.complaints.update(complaint, plan.changes)
        await self.complaints.commit()

        if plan.status_changed:
            record_status_transition(plan.from_status.value, plan.to_status.value, actor.role.value)
            logger.info(
                "Complaint %s moved %s -> %s by %s%s",
                updated.id,
                plan.from_status.value,
                plan.to_status.value,
                actor.role.value,
                " (assignment)" if plan.auto_promoted else "",
            )

        new = updated.to_dict()
        await self._publish("UPDATE", new=new, old=old)

        if updated.assigned_worker_id is not None and updated.assigned_worker_id != previous_worker:
            self.notifier.notify_worker_assigned(new, updated.assigned_staff)
        if plan.status_changed and plan.to_status == ComplaintStatus.WAITING_CONFIRMATION:
            self.notifier.notify_awaiting_confirmation(new)
        return updated

    async def assign(self, actor: Actor, complaint_id: UUID, worker_id: Optional[UUID]) -> Complaint:
        """Assign (or with ``None`` unassign) a worker. Unassigning keeps the status."""
        return await self.patch(actor, complaint_id, {"assigned_worker_id": worker_id})

    async def delete(self, actor: Actor, complaint_id: UUID) -> None:
        complaint = await self._load(complaint_id)
        ensure_allowed(authorize_delete(actor, complaint), actor, "delete")

        old = complaint.to_dict()
        await self.complaints.delete(complaint)
        await self.complaints.commit()
        logger.info("Complaint %s deleted by %s", complaint_id, actor.user_id)

        await self._publish("DELETE", old=old)

    async def publish_released(self, released) -> None:
        """Publish updates for complaints unassigned from a removed worker."""
        for old, updated in released:
            await self._publish("UPDATE", new=updated.to_dict(), old=old)

    # Helpers

    async def _load(self, complaint_id: UUID, for_update: bool = False) -> Complaint:
        complaint = await self.complaints.get(complaint_id, for_update=for_update)
        if complaint is None:
            raise NotFound(f"Complaint {complaint_id} not found")
        return complaint

    async def _publish(self, operation: str, new=None, old=None) -> None:
        event = ChangeEvent(table=COMPLAINTS_TABLE, operation=operation, new=new, old=old)
        try:
            await self.feed.publish(event)
        except StoreFailure:
            # The write is committed; viewers converge on the next event.
            logger.exception("Failed to publish %s change event", operation)
