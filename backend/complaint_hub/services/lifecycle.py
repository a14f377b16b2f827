"""
Complaint lifecycle state machine.

Workflow
--------
  pending -> in_progress -> waiting_confirmation -> resolved

Non-administrative actors only ever move a complaint one step forward, and
only along the edges listed in ``ROLE_TRANSITIONS``. Administrators may set
any status (administrative override).

Assigning a worker to a pending complaint activates it: when an
administrator sets ``assigned_worker_id`` while the complaint is pending and
the same patch does not name a different status, the status is promoted to
``in_progress``. A complaint is never left assigned while pending.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple

from complaint_hub.core.exceptions import InvalidTransition
from complaint_hub.core.security import Actor
from complaint_hub.models.auth import AppRole
from complaint_hub.models.complaint import ASSIGNABLE_STATUSES, ComplaintStatus

Edge = Tuple[ComplaintStatus, ComplaintStatus]

#: Forward successor of each status; ``None`` marks the terminal state.
NEXT_STATUS: Dict[ComplaintStatus, Optional[ComplaintStatus]] = {
    ComplaintStatus.PENDING: ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.IN_PROGRESS: ComplaintStatus.WAITING_CONFIRMATION,
    ComplaintStatus.WAITING_CONFIRMATION: ComplaintStatus.RESOLVED,
    ComplaintStatus.RESOLVED: None,
}

#: Status edges each role may take. ``None`` means any status may be set.
ROLE_TRANSITIONS: Dict[AppRole, Optional[FrozenSet[Edge]]] = {
    AppRole.RESIDENT: frozenset(),
    AppRole.WORKER: frozenset(
        {(ComplaintStatus.IN_PROGRESS, ComplaintStatus.WAITING_CONFIRMATION)}
    ),
    AppRole.ADMINISTRATOR: None,
}

INITIAL_STATUS = ComplaintStatus.PENDING
TERMINAL_STATUSES = frozenset(s for s, nxt in NEXT_STATUS.items() if nxt is None)


def _check_tables() -> None:
    if set(NEXT_STATUS) != set(ComplaintStatus):
        raise RuntimeError("NEXT_STATUS must cover every ComplaintStatus")
    if set(ROLE_TRANSITIONS) != set(AppRole):
        raise RuntimeError("ROLE_TRANSITIONS must cover every AppRole")
    for role, edges in ROLE_TRANSITIONS.items():
        for source, target in edges or ():
            if NEXT_STATUS[source] != target:
                raise RuntimeError(f"{role.value} edge {source.value}->{target.value} is not a forward step")


_check_tables()


@dataclass(frozen=True)
class TransitionPlan:
    """The patch that will actually be written, after side effects."""

    changes: Dict[str, Any]
    from_status: ComplaintStatus
    to_status: ComplaintStatus
    auto_promoted: bool = False

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


def is_forward_step(source: ComplaintStatus, target: ComplaintStatus) -> bool:
    return NEXT_STATUS[source] == target


def can_transition(role: AppRole, source: ComplaintStatus, target: ComplaintStatus) -> bool:
    """Whether ``role`` may move a complaint from ``source`` to ``target``."""
    if source == target:
        return True
    edges = ROLE_TRANSITIONS[role]
    if edges is None:
        return True
    return (source, target) in edges


def plan_transition(actor: Actor, complaint: Any, patch: Dict[str, Any]) -> TransitionPlan:
    """
    Validate ``patch`` against the state machine and apply its side effects.

    ``complaint`` is the pre-mutation snapshot. The returned plan holds a new
    dict; ``patch`` itself is not modified.

    Raises:
        InvalidTransition: the status change is not allowed for the actor's
            role, or the result would leave a pending complaint assigned.
    """
    changes = dict(patch)
    current = ComplaintStatus(complaint.status)
    auto_promoted = False

    if "status" in changes:
        changes["status"] = ComplaintStatus(changes["status"])

    if (
        actor.role == AppRole.ADMINISTRATOR
        and changes.get("assigned_worker_id") is not None
        and current == ComplaintStatus.PENDING
        and changes.get("status", current) == ComplaintStatus.PENDING
    ):
        changes["status"] = ComplaintStatus.IN_PROGRESS
        auto_promoted = True

    target = changes.get("status", current)
    if not can_transition(actor.role, current, target):
        raise InvalidTransition(
            f"A {actor.role.value} cannot move a complaint from "
            f"{current.value} to {target.value}"
        )

    assigned = changes.get("assigned_worker_id", complaint.assigned_worker_id)
    if assigned is not None and target not in ASSIGNABLE_STATUSES:
        raise InvalidTransition("A complaint cannot be assigned while it is pending")

    return TransitionPlan(
        changes=changes,
        from_status=current,
        to_status=target,
        auto_promoted=auto_promoted,
    )
