"""
Request-scoped dependencies shared by the API routers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_hub.core.database import AsyncSessionLocal, get_db
from complaint_hub.core.logging import bind_actor
from complaint_hub.core.security import Actor, get_token_subject
from complaint_hub.repositories import (
    ComplaintRepository,
    ProfileRepository,
    RoleRepository,
    WorkerRepository,
)
from complaint_hub.services.change_feed import ChangeFeed, get_change_feed
from complaint_hub.services.complaints import ComplaintService
from complaint_hub.services.workers import WorkerService, resolve_actor


@dataclass
class Repositories:
    """The stores one unit of work operates on."""

    complaints: ComplaintRepository
    workers: WorkerRepository
    profiles: ProfileRepository
    roles: RoleRepository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "Repositories":
        return cls(
            complaints=ComplaintRepository(session),
            workers=WorkerRepository(session),
            profiles=ProfileRepository(session),
            roles=RoleRepository(session),
        )

    def complaint_service(self, feed: ChangeFeed) -> ComplaintService:
        return ComplaintService(self.complaints, self.workers, self.profiles, feed)

    def worker_service(self, feed: ChangeFeed) -> WorkerService:
        return WorkerService(self.workers, self.profiles, self.roles, self.complaint_service(feed))

    async def actor_for(self, user_id: UUID) -> Actor:
        return await resolve_actor(user_id, self.roles, self.workers)


async def get_repositories(db: AsyncSession = Depends(get_db)) -> Repositories:
    return Repositories.for_session(db)


@asynccontextmanager
async def repositories_scope() -> AsyncIterator[Repositories]:
    """Repositories on a fresh session, for work outside a request."""
    async with AsyncSessionLocal() as session:
        yield Repositories.for_session(session)


def get_repositories_scope() -> Callable[[], AsyncIterator[Repositories]]:
    """Long-lived connections open one short session per unit of work."""
    return repositories_scope


async def get_actor(
    subject: UUID = Depends(get_token_subject),
    repos: Repositories = Depends(get_repositories),
) -> Actor:
    """Authenticated caller, with the role taken from the role table."""
    actor = await repos.actor_for(subject)
    bind_actor(actor.user_id)
    return actor


async def get_complaint_service(
    repos: Repositories = Depends(get_repositories),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ComplaintService:
    return repos.complaint_service(feed)


async def get_worker_service(
    repos: Repositories = Depends(get_repositories),
    feed: ChangeFeed = Depends(get_change_feed),
) -> WorkerService:
    return repos.worker_service(feed)
