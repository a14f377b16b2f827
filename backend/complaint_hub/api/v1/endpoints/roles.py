"""
Role administration endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from complaint_hub.api.deps import get_actor, get_worker_service
from complaint_hub.core.security import Actor
from complaint_hub.schemas.worker import RoleResponse, RoleUpdate
from complaint_hub.services.workers import WorkerService

router = APIRouter()


@router.put("/{user_id}", response_model=RoleResponse)
async def set_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    actor: Actor = Depends(get_actor),
    service: WorkerService = Depends(get_worker_service),
):
    """Set an identity's role (Admin only). Nobody can change their own role."""
    role = await service.set_role(actor, user_id, payload.role)
    return RoleResponse(user_id=user_id, role=role)
