"""
Tests for field-level authorization of complaint mutations.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from complaint_hub.core.exceptions import PermissionDenied
from complaint_hub.core.security import Actor
from complaint_hub.models.auth import AppRole
from complaint_hub.models.complaint import ComplaintStatus
from complaint_hub.services.authorization import (
    Decision,
    authorize,
    authorize_create,
    authorize_delete,
    ensure_allowed,
)

RESIDENT = Actor(role=AppRole.RESIDENT, user_id=uuid4())
OTHER_RESIDENT = Actor(role=AppRole.RESIDENT, user_id=uuid4())
WORKER = Actor(role=AppRole.WORKER, user_id=uuid4(), worker_id=uuid4())
OTHER_WORKER = Actor(role=AppRole.WORKER, user_id=uuid4(), worker_id=uuid4())
ADMIN = Actor(role=AppRole.ADMINISTRATOR, user_id=uuid4())


def _complaint(status=ComplaintStatus.PENDING, owner=RESIDENT, assigned_worker_id=None):
    return SimpleNamespace(
        user_id=owner.user_id, status=status, assigned_worker_id=assigned_worker_id
    )


class TestResidentPatch:
    def test_owner_edits_content_while_pending(self):
        decision = authorize(RESIDENT, _complaint(), {"title": "Leaking tap", "block": "C"})
        assert decision.allowed

    def test_owner_cannot_edit_once_in_progress(self):
        complaint = _complaint(ComplaintStatus.IN_PROGRESS, assigned_worker_id=WORKER.worker_id)
        decision = authorize(RESIDENT, complaint, {"title": "Leaking tap"})
        assert not decision.allowed

    def test_other_resident_is_denied(self):
        assert not authorize(OTHER_RESIDENT, _complaint(), {"title": "x"}).allowed

    @pytest.mark.parametrize("field", ["status", "priority", "assigned_worker_id", "admin_notes"])
    def test_owner_cannot_touch_workflow_fields(self, field):
        assert not authorize(RESIDENT, _complaint(), {field: None}).allowed

    def test_one_bad_field_denies_the_whole_patch(self):
        decision = authorize(RESIDENT, _complaint(), {"title": "ok", "priority": "high"})
        assert not decision.allowed
        assert "priority" in decision.reason


class TestWorkerPatch:
    def test_assigned_worker_reports_work_done(self):
        complaint = _complaint(ComplaintStatus.IN_PROGRESS, assigned_worker_id=WORKER.worker_id)
        decision = authorize(WORKER, complaint, {"status": ComplaintStatus.WAITING_CONFIRMATION})
        assert decision.allowed

    def test_worker_acting_on_another_workers_complaint(self):
        complaint = _complaint(ComplaintStatus.IN_PROGRESS, assigned_worker_id=OTHER_WORKER.worker_id)
        decision = authorize(WORKER, complaint, {"status": ComplaintStatus.WAITING_CONFIRMATION})
        assert not decision.allowed

    def test_worker_cannot_finish_a_pending_complaint(self):
        complaint = _complaint(ComplaintStatus.PENDING, assigned_worker_id=WORKER.worker_id)
        decision = authorize(WORKER, complaint, {"status": ComplaintStatus.WAITING_CONFIRMATION})
        assert not decision.allowed

    def test_worker_cannot_resolve(self):
        complaint = _complaint(
            ComplaintStatus.WAITING_CONFIRMATION, assigned_worker_id=WORKER.worker_id
        )
        assert not authorize(WORKER, complaint, {"status": ComplaintStatus.RESOLVED}).allowed

    def test_worker_cannot_edit_other_fields(self):
        complaint = _complaint(ComplaintStatus.IN_PROGRESS, assigned_worker_id=WORKER.worker_id)
        decision = authorize(
            WORKER,
            complaint,
            {"status": ComplaintStatus.WAITING_CONFIRMATION, "admin_notes": "done"},
        )
        assert not decision.allowed

    def test_worker_without_record_is_denied(self):
        orphan = Actor(role=AppRole.WORKER, user_id=uuid4())
        complaint = _complaint(ComplaintStatus.IN_PROGRESS)
        decision = authorize(orphan, complaint, {"status": ComplaintStatus.WAITING_CONFIRMATION})
        assert not decision.allowed


class TestAdministratorPatch:
    def test_administrator_may_change_anything_patchable(self):
        complaint = _complaint(ComplaintStatus.RESOLVED)
        decision = authorize(
            ADMIN,
            complaint,
            {"title": "x", "priority": "high", "admin_notes": "checked", "status": "pending"},
        )
        assert decision.allowed

    @pytest.mark.parametrize("field", ["id", "user_id", "created_at", "version"])
    def test_immutable_fields_are_denied_for_everyone(self, field):
        assert not authorize(ADMIN, _complaint(), {field: "x"}).allowed

    def test_empty_patch_is_denied(self):
        assert not authorize(ADMIN, _complaint(), {}).allowed


class TestDeleteAndCreate:
    def test_owner_deletes_while_pending(self):
        assert authorize_delete(RESIDENT, _complaint()).allowed

    def test_owner_cannot_delete_after_pending(self):
        assert not authorize_delete(RESIDENT, _complaint(ComplaintStatus.RESOLVED)).allowed

    def test_worker_cannot_delete(self):
        assert not authorize_delete(WORKER, _complaint()).allowed

    def test_administrator_deletes_anything(self):
        assert authorize_delete(ADMIN, _complaint(ComplaintStatus.IN_PROGRESS)).allowed

    def test_only_residents_raise_complaints_for_themselves(self):
        assert authorize_create(RESIDENT, RESIDENT.user_id).allowed
        assert not authorize_create(RESIDENT, OTHER_RESIDENT.user_id).allowed
        assert not authorize_create(ADMIN, ADMIN.user_id).allowed
        assert not authorize_create(WORKER, WORKER.user_id).allowed


def test_ensure_allowed_raises_and_counts_denials():
    labels = {"role": "worker", "action": "update"}
    before = REGISTRY.get_sample_value("complaint_hub_authorization_denials_total", labels) or 0.0

    with pytest.raises(PermissionDenied) as exc:
        ensure_allowed(Decision.deny("This complaint is not assigned to you"), WORKER, "update")

    after = REGISTRY.get_sample_value("complaint_hub_authorization_denials_total", labels) or 0.0
    assert exc.value.reason == "This complaint is not assigned to you"
    assert after == pytest.approx(before + 1)
    ensure_allowed(Decision.allow(), WORKER, "update")
