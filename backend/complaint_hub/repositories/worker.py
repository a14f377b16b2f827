"""
Worker, profile and role lookups.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_hub.models.auth import AppRole, UserRole
from complaint_hub.models.profile import Profile
from complaint_hub.models.worker import Worker
from complaint_hub.repositories.base import BaseRepository, store_call


class WorkerRepository(BaseRepository[Worker]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Worker)

    async def search(self, user_id: Optional[UUID] = None) -> list[Worker]:
        return await self.find({"user_id": user_id}, order_by=[Worker.created_at.desc()])

    @store_call
    async def set_available(self, worker: Worker, is_available: bool) -> Worker:
        worker.is_available = is_available
        await self.session.flush()
        await self.session.refresh(worker)
        return worker


class ProfileRepository(BaseRepository[Profile]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Profile)

    @store_call
    async def for_users(self, user_ids: Iterable[UUID]) -> Dict[UUID, Profile]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(Profile).where(Profile.user_id.in_(ids)))
        return {profile.user_id: profile for profile in result.scalars().all()}


class RoleRepository(BaseRepository[UserRole]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRole)

    async def role_of(self, user_id: UUID) -> AppRole:
        """Role of an identity; identities without a row are residents."""
        row = await self.get_by_user(user_id)
        return row.role if row else AppRole.RESIDENT

    @store_call
    async def set_role(self, user_id: UUID, role: AppRole) -> UserRole:
        result = await self.session.execute(select(UserRole).where(UserRole.user_id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            row = UserRole(user_id=user_id, role=role)
            self.session.add(row)
        else:
            row.role = role
        await self.session.flush()
        return row
