"""
Pydantic schemas for workers and role assignment.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from complaint_hub.models.auth import AppRole
from complaint_hub.models.worker import WorkerType


class ProfileSummary(BaseModel):
    full_name: str
    hostel_name: Optional[str] = None
    block: Optional[str] = None
    floor: Optional[str] = None
    room_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class WorkerCreate(BaseModel):
    """Register an existing identity as a worker (Admin only)."""

    model_config = ConfigDict(extra="forbid")

    user_id: UUID
    worker_type: WorkerType
    phone: Optional[str] = Field(None, max_length=50)


class AvailabilityUpdate(BaseModel):
    is_available: bool


class WorkerResponse(BaseModel):
    id: UUID
    user_id: UUID
    worker_type: WorkerType
    phone: Optional[str] = None
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class WorkerRemoved(BaseModel):
    success: bool = True
    unassigned_complaints: int


class RoleUpdate(BaseModel):
    role: AppRole


class RoleResponse(BaseModel):
    user_id: UUID
    role: AppRole
