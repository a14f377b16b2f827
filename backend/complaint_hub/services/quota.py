"""
Per-requester active complaint quota.
"""

import logging
from uuid import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import QuotaExceeded
from complaint_hub.core.metrics import record_quota_rejection
from complaint_hub.models.complaint import OPEN_STATUSES

logger = logging.getLogger(__name__)


class QuotaEnforcer:
    """
    Caps how many open complaints a requester may hold.

    Only ``pending`` and ``in_progress`` complaints count; work awaiting
    confirmation or resolved no longer blocks new complaints.
    """

    def __init__(self, complaints, ceiling: int = settings.MAX_ACTIVE_COMPLAINTS):
        self.complaints = complaints
        self.ceiling = ceiling

    async def active_count(self, user_id: UUID) -> int:
        return await self.complaints.count_for_owner(user_id, OPEN_STATUSES)

    async def can_create(self, user_id: UUID) -> bool:
        return await self.active_count(user_id) < self.ceiling

    async def ensure_can_create(self, user_id: UUID) -> None:
        active = await self.active_count(user_id)
        if active >= self.ceiling:
            record_quota_rejection()
            logger.info("Quota reached for %s (%d active)", user_id, active)
            raise QuotaExceeded(
                f"You have reached the maximum limit of {self.ceiling} active complaints. "
                "Please wait for your existing complaints to be resolved before raising a new one."
            )

    async def status(self, user_id: UUID) -> dict:
        active = await self.active_count(user_id)
        return {
            "active": active,
            "limit": self.ceiling,
            "can_create": active < self.ceiling,
        }
