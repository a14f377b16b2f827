"""
Worker directory endpoints.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from complaint_hub.api.deps import get_actor, get_complaint_service, get_worker_service
from complaint_hub.core.security import Actor
from complaint_hub.schemas.complaint import ComplaintResponse
from complaint_hub.schemas.worker import (
    AvailabilityUpdate,
    ProfileSummary,
    WorkerCreate,
    WorkerRemoved,
    WorkerResponse,
)
from complaint_hub.services.complaints import ComplaintService
from complaint_hub.services.workers import WorkerService

router = APIRouter()


def _worker_response(worker, profile=None) -> WorkerResponse:
    response = WorkerResponse.model_validate(worker)
    if profile is not None:
        response.profile = ProfileSummary.model_validate(profile)
    return response


@router.get("", response_model=List[WorkerResponse])
async def list_workers(
    user_id: Optional[UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: WorkerService = Depends(get_worker_service),
):
    """Workers, newest first, each with the display data from their profile."""
    rows = await service.list_with_profiles(user_id)
    return [_worker_response(row["worker"], row["profile"]) for row in rows]


@router.post("", response_model=WorkerResponse, status_code=status.HTTP_201_CREATED)
async def register_worker(
    payload: WorkerCreate,
    actor: Actor = Depends(get_actor),
    service: WorkerService = Depends(get_worker_service),
):
    """Register an existing identity as a worker (Admin only)."""
    worker = await service.register(actor, payload.user_id, payload.worker_type, payload.phone)
    return _worker_response(worker)


@router.patch("/{worker_id}/availability", response_model=WorkerResponse)
async def set_worker_availability(
    worker_id: UUID,
    payload: AvailabilityUpdate,
    actor: Actor = Depends(get_actor),
    service: WorkerService = Depends(get_worker_service),
):
    worker = await service.set_availability(actor, worker_id, payload.is_available)
    return _worker_response(worker)


@router.delete("/{worker_id}", response_model=WorkerRemoved)
async def remove_worker(
    worker_id: UUID,
    actor: Actor = Depends(get_actor),
    service: WorkerService = Depends(get_worker_service),
):
    """
    Remove a worker record (Admin only).

    Complaints assigned to the worker are unassigned, or the removal is
    refused, depending on ``WORKER_DELETE_POLICY``.
    """
    released = await service.remove(actor, worker_id)
    return WorkerRemoved(unassigned_complaints=released)


@router.get("/{worker_id}/queue", response_model=List[ComplaintResponse])
async def worker_queue(
    worker_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Complaints assigned to a worker. Admins see any queue, workers their own."""
    return await service.queue_for(actor, worker_id)
