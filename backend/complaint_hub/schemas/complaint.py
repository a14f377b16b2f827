"""
Pydantic schemas for the complaint endpoints.

Create payloads are strict. Patch payloads accept unknown keys on purpose so
that the authorization gate, not request parsing, reports fields a caller may
not change.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from complaint_hub.core.config import settings
from complaint_hub.models.complaint import (
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)

TITLE_MAX = settings.COMPLAINT_TITLE_MAX_LENGTH
DESCRIPTION_MAX = settings.COMPLAINT_DESCRIPTION_MAX_LENGTH

# Columns a patch may change but never clear
REQUIRED_COLUMNS = ("title", "description", "category", "status", "priority")


class ComplaintCreate(BaseModel):
    """New complaint raised by a resident."""

    model_config = ConfigDict(extra="forbid")

    user_id: Optional[UUID] = Field(
        None, description="Requester; defaults to the caller and must match it"
    )
    title: str = Field(..., min_length=1, max_length=TITLE_MAX)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX)
    category: ComplaintCategory
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    photo_url: Optional[str] = Field(None, max_length=1024)
    hostel_name: Optional[str] = Field(None, max_length=255)
    block: Optional[str] = Field(None, max_length=50)
    floor: Optional[str] = Field(None, max_length=50)
    room_number: Optional[str] = Field(None, max_length=50)


class ComplaintPatch(BaseModel):
    """Partial update addressed by ``id``; only supplied keys are applied."""

    model_config = ConfigDict(extra="allow")

    id: Optional[UUID] = None
    version: Optional[int] = Field(
        None, ge=1, description="Reject the patch if the stored version differs"
    )

    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX)
    description: Optional[str] = Field(None, min_length=1, max_length=DESCRIPTION_MAX)
    category: Optional[ComplaintCategory] = None
    photo_url: Optional[str] = Field(None, max_length=1024)
    hostel_name: Optional[str] = Field(None, max_length=255)
    block: Optional[str] = Field(None, max_length=50)
    floor: Optional[str] = Field(None, max_length=50)
    room_number: Optional[str] = Field(None, max_length=50)

    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    assigned_worker_id: Optional[UUID] = None
    assigned_staff: Optional[str] = Field(None, max_length=50)
    admin_notes: Optional[str] = None

    @model_validator(mode="after")
    def _reject_cleared_required_columns(self) -> "ComplaintPatch":
        for field in REQUIRED_COLUMNS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> Dict[str, object]:
        """Supplied fields other than the addressing keys."""
        return self.model_dump(exclude_unset=True, exclude={"id", "version"})


class AssignmentRequest(BaseModel):
    worker_id: Optional[UUID] = None


class ComplaintResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: str
    category: ComplaintCategory
    status: ComplaintStatus
    priority: ComplaintPriority
    photo_url: Optional[str] = None
    assigned_worker_id: Optional[UUID] = None
    assigned_staff: Optional[str] = None
    admin_notes: Optional[str] = None
    hostel_name: Optional[str] = None
    block: Optional[str] = None
    floor: Optional[str] = None
    room_number: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ComplaintSummary(BaseModel):
    total: int
    by_status: Dict[str, int]
    open_high_priority: int


class QuotaStatus(BaseModel):
    active: int
    limit: int
    can_create: bool
