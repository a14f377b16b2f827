"""
Field-level authorization for complaint mutations.

The gate is a pure function of the actor, the pre-mutation snapshot and the
requested patch. A patch is allowed or denied as a whole; a single field the
actor may not touch denies everything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional
from uuid import UUID

from complaint_hub.core.exceptions import PermissionDenied
from complaint_hub.core.metrics import record_authorization_denial
from complaint_hub.core.security import Actor
from complaint_hub.models.auth import AppRole
from complaint_hub.models.complaint import ComplaintStatus

logger = logging.getLogger(__name__)

CONTENT_FIELDS: FrozenSet[str] = frozenset(
    {
        "title",
        "description",
        "category",
        "photo_url",
        "hostel_name",
        "block",
        "floor",
        "room_number",
    }
)
ADMIN_FIELDS: FrozenSet[str] = frozenset(
    {"priority", "assigned_worker_id", "assigned_staff", "admin_notes"}
)
STATUS_FIELD = "status"
PATCHABLE_FIELDS: FrozenSet[str] = CONTENT_FIELDS | ADMIN_FIELDS | {STATUS_FIELD}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


def _fields_outside(patch: Mapping[str, Any], permitted: Iterable[str]) -> list[str]:
    permitted = set(permitted)
    return sorted(field for field in patch if field not in permitted)


def _resident_patch(actor: Actor, complaint: Any, patch: Mapping[str, Any]) -> Decision:
    if complaint.user_id != actor.user_id:
        return Decision.deny("You can only modify your own complaints")
    if ComplaintStatus(complaint.status) != ComplaintStatus.PENDING:
        return Decision.deny("Complaints can only be edited while pending")
    blocked = _fields_outside(patch, CONTENT_FIELDS)
    if blocked:
        return Decision.deny(f"Residents cannot change: {', '.join(blocked)}")
    return Decision.allow()


def _worker_patch(actor: Actor, complaint: Any, patch: Mapping[str, Any]) -> Decision:
    if actor.worker_id is None or complaint.assigned_worker_id != actor.worker_id:
        return Decision.deny("This complaint is not assigned to you")
    blocked = _fields_outside(patch, {STATUS_FIELD})
    if blocked:
        return Decision.deny(f"Workers cannot change: {', '.join(blocked)}")
    if STATUS_FIELD not in patch:
        return Decision.deny("Workers may only update the status")
    if ComplaintStatus(complaint.status) != ComplaintStatus.IN_PROGRESS:
        return Decision.deny("Only in-progress complaints can be marked as done")
    if ComplaintStatus(patch[STATUS_FIELD]) != ComplaintStatus.WAITING_CONFIRMATION:
        return Decision.deny("Workers can only mark complaints as awaiting confirmation")
    return Decision.allow()


def _admin_patch(actor: Actor, complaint: Any, patch: Mapping[str, Any]) -> Decision:
    return Decision.allow()


_PATCH_RULES: Dict[AppRole, Callable[[Actor, Any, Mapping[str, Any]], Decision]] = {
    AppRole.RESIDENT: _resident_patch,
    AppRole.WORKER: _worker_patch,
    AppRole.ADMINISTRATOR: _admin_patch,
}

if set(_PATCH_RULES) != set(AppRole):
    raise RuntimeError("Authorization rules must cover every AppRole")


def authorize(actor: Actor, complaint: Any, patch: Mapping[str, Any]) -> Decision:
    """Decide whether ``actor`` may apply ``patch`` to ``complaint``."""
    if not patch:
        return Decision.deny("No fields to update")
    unknown = _fields_outside(patch, PATCHABLE_FIELDS)
    if unknown:
        return Decision.deny(f"Fields cannot be changed: {', '.join(unknown)}")
    return _PATCH_RULES[actor.role](actor, complaint, patch)


def authorize_delete(actor: Actor, complaint: Any) -> Decision:
    if actor.role == AppRole.ADMINISTRATOR:
        return Decision.allow()
    if actor.role != AppRole.RESIDENT:
        return Decision.deny("Only the requester can delete a complaint")
    if complaint.user_id != actor.user_id:
        return Decision.deny("You can only delete your own complaints")
    if ComplaintStatus(complaint.status) != ComplaintStatus.PENDING:
        return Decision.deny("Complaints can only be deleted while pending")
    return Decision.allow()


def authorize_create(actor: Actor, owner_id: UUID) -> Decision:
    if actor.role != AppRole.RESIDENT:
        return Decision.deny("Only residents can raise complaints")
    if owner_id != actor.user_id:
        return Decision.deny("Complaints can only be raised for yourself")
    return Decision.allow()


def ensure_allowed(decision: Decision, actor: Actor, action: str) -> None:
    """Raise PermissionDenied for a denied decision."""
    if decision.allowed:
        return
    record_authorization_denial(actor.role.value, action)
    logger.info(
        "Denied %s for %s %s: %s",
        action,
        actor.role.value,
        actor.user_id,
        decision.reason,
    )
    raise PermissionDenied(decision.reason)
