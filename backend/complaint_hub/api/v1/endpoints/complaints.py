"""
Complaint endpoints: listing, raising, patching, deleting and live views.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from complaint_hub.api.deps import (
    get_actor,
    get_complaint_service,
    get_repositories_scope,
)
from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import ComplaintHubError, ValidationFailed
from complaint_hub.core.rate_limiter import bearer_subject_key, limiter
from complaint_hub.core.security import Actor, subject_from_token
from complaint_hub.models.complaint import (
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)
from complaint_hub.schemas.complaint import (
    AssignmentRequest,
    ComplaintCreate,
    ComplaintPatch,
    ComplaintResponse,
    ComplaintSummary,
    QuotaStatus,
)
from complaint_hub.services.change_feed import ChangeFeed, get_change_feed
from complaint_hub.services.complaints import ComplaintService
from complaint_hub.services.sync import ViewSession, ViewSynchronizer

logger = logging.getLogger(__name__)

router = APIRouter()


def _enum_filter(enum_cls: Type, name: str, value: Optional[str]):
    """Parse an equality filter; ``all`` or absent means unfiltered."""
    if value is None or value == "all":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationFailed(f"Invalid {name} '{value}'. Expected one of: all, {allowed}")


def _filters(
    status_: Optional[str],
    category: Optional[str],
    priority: Optional[str],
    assigned_worker_id: Optional[UUID],
    user_id: Optional[UUID],
) -> Dict[str, Any]:
    return {
        "status": _enum_filter(ComplaintStatus, "status", status_),
        "category": _enum_filter(ComplaintCategory, "category", category),
        "priority": _enum_filter(ComplaintPriority, "priority", priority),
        "assigned_worker_id": assigned_worker_id,
        "user_id": user_id,
    }


@router.get("", response_model=List[ComplaintResponse])
async def list_complaints(
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    assigned_worker_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Complaints visible to the caller, newest first."""
    filters = _filters(status_, category, priority, assigned_worker_id, user_id)
    return await service.list(actor, filters)


@router.post("", response_model=ComplaintResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.COMPLAINT_CREATE_RATE_LIMIT, key_func=bearer_subject_key)
async def create_complaint(
    request: Request,
    payload: ComplaintCreate,
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Raise a complaint.

    The complaint always starts out ``pending`` and unassigned. Location
    fields left out are taken from the requester's profile.
    """
    return await service.create(actor, payload.model_dump())


@router.patch("", response_model=List[ComplaintResponse])
async def patch_complaint(
    payload: ComplaintPatch,
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Apply a partial update addressed by ``id``.

    Supplying ``version`` turns on the optimistic check; without it the last
    write wins.
    """
    if payload.id is None:
        raise ValidationFailed("Complaint ID required")
    updated = await service.patch(
        actor, payload.id, payload.changes(), expected_version=payload.version
    )
    return [updated]


@router.delete("")
async def delete_complaint(
    complaint_id: Optional[UUID] = Query(None, alias="id"),
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, bool]:
    if complaint_id is None:
        raise ValidationFailed("Complaint ID required")
    await service.delete(actor, complaint_id)
    return {"success": True}


@router.get("/summary", response_model=ComplaintSummary)
async def complaint_summary(
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Status counts and open high-priority count over the caller's rows."""
    return await service.summary(actor)


@router.get("/quota", response_model=QuotaStatus)
async def complaint_quota(
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    return await service.quota_status(actor)


@router.get("/{complaint_id}", response_model=ComplaintResponse)
async def get_complaint(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    return await service.get(actor, complaint_id)


@router.post("/{complaint_id}/assign", response_model=ComplaintResponse)
async def assign_complaint(
    complaint_id: UUID,
    payload: AssignmentRequest,
    actor: Actor = Depends(get_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Assign a worker (or unassign with ``worker_id: null``). Administrator only."""
    return await service.assign(actor, complaint_id, payload.worker_id)


# Live views


def _snapshot_message(complaints) -> Dict[str, Any]:
    rows = [ComplaintResponse.model_validate(c) for c in complaints]
    return {"type": "snapshot", "complaints": jsonable_encoder(rows)}


async def _push_snapshots(websocket: WebSocket, view: ViewSession) -> None:
    async for complaints in view.snapshots():
        await websocket.send_json(_snapshot_message(complaints))


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/stream")
async def stream_complaints(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    scope_factory=Depends(get_repositories_scope),
    feed: ChangeFeed = Depends(get_change_feed),
):
    """
    Push the caller's filtered complaint list on connect and after every
    change that touches a row the caller can see.
    """
    try:
        subject = subject_from_token(token)
        filters = _filters(status_, category, priority, None, None)
        async with scope_factory() as repos:
            actor = await repos.actor_for(subject)
    except ComplaintHubError as exc:
        logger.info("Rejected complaint stream: %s", exc.reason)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.reason)
        return

    async def fetch():
        async with scope_factory() as repos:
            return await repos.complaint_service(feed).list(actor, filters)

    await websocket.accept()
    try:
        view = await ViewSynchronizer(feed).open(actor, fetch)
    except ComplaintHubError as exc:
        logger.error("Could not open complaint stream for %s: %s", actor.user_id, exc.reason)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=exc.reason)
        return

    async with view:
        pusher = asyncio.create_task(_push_snapshots(websocket, view))
        watcher = asyncio.create_task(_wait_for_disconnect(websocket))
        tasks = {pusher, watcher}
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.wait(tasks)

        exc = None if pusher.cancelled() else pusher.exception()
        if exc is not None and not isinstance(exc, WebSocketDisconnect):
            logger.error("Complaint stream for %s failed", actor.user_id, exc_info=exc)
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    logger.info("Viewer %s left the complaint stream", actor.user_id)
