"""
Tests for the SQLAlchemy repositories against mocked AsyncSessions.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import StoreFailure
from complaint_hub.models.auth import AppRole, UserRole
from complaint_hub.models.complaint import Complaint, ComplaintStatus
from complaint_hub.repositories import (
    ComplaintRepository,
    ProfileRepository,
    RoleRepository,
)
from complaint_hub.schemas.complaint import TITLE_MAX


def _session(result=None):
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.delete = AsyncMock()
    return session


def _scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    return result


class TestBaseRepository:
    def test_apply_filters_skips_none_and_uses_in_for_collections(self):
        repo = ComplaintRepository(_session())
        stmt = repo._apply_filters(
            select(Complaint),
            {
                "status": [ComplaintStatus.PENDING, ComplaintStatus.IN_PROGRESS],
                "category": None,
            },
        )
        sql = str(stmt.compile())

        assert "complaints.status IN" in sql
        assert "category" not in sql.split("WHERE", 1)[1]

    def test_apply_filters_rejects_unknown_columns(self):
        repo = ComplaintRepository(_session())
        with pytest.raises(ValueError):
            repo._apply_filters(select(Complaint), {"warden": "x"})

    @pytest.mark.asyncio
    async def test_database_errors_become_store_failures(self):
        session = _session()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        repo = ComplaintRepository(session)

        with pytest.raises(StoreFailure) as exc:
            await repo.get(uuid4())

        assert exc.value.status_code == 503
        assert isinstance(exc.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_commit_failure_is_wrapped(self):
        session = _session()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("down"))

        with pytest.raises(StoreFailure):
            await ComplaintRepository(session).commit()


class TestComplaintRepository:
    def test_title_column_matches_configured_limit(self):
        assert Complaint.__table__.c.title.type.length == settings.COMPLAINT_TITLE_MAX_LENGTH
        assert Complaint.__table__.c.title.type.length == TITLE_MAX

    @pytest.mark.asyncio
    async def test_update_bumps_version(self):
        session = _session()
        complaint = SimpleNamespace(title="Old", version=4)

        updated = await ComplaintRepository(session).update(complaint, {"title": "New"})

        assert updated.title == "New"
        assert updated.version == 5
        session.flush.assert_awaited_once()
        session.refresh.assert_awaited_once_with(complaint)

    @pytest.mark.asyncio
    async def test_count_for_owner(self):
        session = _session(_scalar_result(2))

        count = await ComplaintRepository(session).count_for_owner(
            uuid4(), [ComplaintStatus.PENDING]
        )

        assert count == 2
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_status_counts_cover_every_status(self):
        result = MagicMock()
        result.all.return_value = [(ComplaintStatus.PENDING, 3)]
        session = _session(result)

        counts = await ComplaintRepository(session).status_counts({"user_id": uuid4()})

        assert counts == {
            "pending": 3,
            "in_progress": 0,
            "waiting_confirmation": 0,
            "resolved": 0,
        }


class TestRoleRepository:
    @pytest.mark.asyncio
    async def test_identity_without_row_is_resident(self):
        session = _session(_scalar_result(None))

        assert await RoleRepository(session).role_of(uuid4()) == AppRole.RESIDENT

    @pytest.mark.asyncio
    async def test_set_role_inserts_missing_row(self):
        session = _session(_scalar_result(None))
        user_id = uuid4()

        row = await RoleRepository(session).set_role(user_id, AppRole.ADMINISTRATOR)

        assert isinstance(row, UserRole)
        assert row.role == AppRole.ADMINISTRATOR
        session.add.assert_called_once_with(row)
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_role_updates_existing_row(self):
        existing = UserRole(user_id=uuid4(), role=AppRole.RESIDENT)
        session = _session(_scalar_result(existing))

        row = await RoleRepository(session).set_role(existing.user_id, AppRole.WORKER)

        assert row is existing
        assert existing.role == AppRole.WORKER
        session.add.assert_not_called()


class TestProfileRepository:
    @pytest.mark.asyncio
    async def test_for_users_without_ids_skips_query(self):
        session = _session()

        assert await ProfileRepository(session).for_users([]) == {}
        session.execute.assert_not_awaited()
