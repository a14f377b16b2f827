"""
Complaint record store backed by the ``complaints`` table.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_hub.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from complaint_hub.repositories.base import BaseRepository, store_call

FILTERABLE_COLUMNS = ("status", "category", "priority", "assigned_worker_id", "user_id")


class ComplaintRepository(BaseRepository[Complaint]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Complaint)

    @store_call
    async def get(self, id_: UUID, *, for_update: bool = False) -> Optional[Complaint]:
        stmt = select(Complaint).where(Complaint.id == id_)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def search(self, filters: Optional[Dict[str, Any]] = None) -> list[Complaint]:
        """Equality-filtered complaints, newest first."""
        return await self.find(filters, order_by=[Complaint.created_at.desc()])

    @store_call
    async def count_for_owner(self, user_id: UUID, statuses: Iterable[ComplaintStatus]) -> int:
        stmt = (
            select(func.count(Complaint.id))
            .where(Complaint.user_id == user_id)
            .where(Complaint.status.in_(list(statuses)))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    @store_call
    async def update(self, complaint: Complaint, changes: Dict[str, Any]) -> Complaint:
        """Apply a column patch and bump the row version."""
        for column, value in changes.items():
            setattr(complaint, column, value)
        complaint.version = (complaint.version or 0) + 1
        await self.session.flush()
        await self.session.refresh(complaint)
        return complaint

    @store_call
    async def status_counts(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        stmt = self._apply_filters(
            select(Complaint.status, func.count(Complaint.id)), filters
        ).group_by(Complaint.status)
        result = await self.session.execute(stmt)
        counts = {status.value: 0 for status in ComplaintStatus}
        for status, count in result.all():
            key = status.value if isinstance(status, ComplaintStatus) else status
            counts[key] = count
        return counts

    @store_call
    async def count_open_high_priority(self, filters: Optional[Dict[str, Any]] = None) -> int:
        stmt = self._apply_filters(select(func.count(Complaint.id)), filters)
        stmt = stmt.where(Complaint.priority == ComplaintPriority.HIGH).where(
            Complaint.status != ComplaintStatus.RESOLVED
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
