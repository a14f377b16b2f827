"""
Complaint model and its closed enumerations.
"""
from datetime import datetime
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.database import Base


class ComplaintStatus(str, enum.Enum):
    """Lifecycle states, in forward order."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_CONFIRMATION = "waiting_confirmation"
    RESOLVED = "resolved"


class ComplaintPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ComplaintCategory(str, enum.Enum):
    ELECTRICITY = "electricity"
    WATER = "water"
    CLEANING = "cleaning"
    WIFI = "wifi"
    PLUMBING = "plumbing"
    FURNITURE = "furniture"
    OTHER = "other"


# Statuses that count against a requester's quota
OPEN_STATUSES = frozenset({ComplaintStatus.PENDING, ComplaintStatus.IN_PROGRESS})

# Statuses a complaint may hold while a worker is assigned
ASSIGNABLE_STATUSES = frozenset(
    {
        ComplaintStatus.IN_PROGRESS,
        ComplaintStatus.WAITING_CONFIRMATION,
        ComplaintStatus.RESOLVED,
    }
)


class Complaint(Base):
    """
    A facility complaint raised by a resident.
    """
    __tablename__ = "complaints"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Requester; fixed at creation
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    # Content
    title = Column(String(settings.COMPLAINT_TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SQLEnum(ComplaintCategory, name="complaint_category"), nullable=False)
    photo_url = Column(String(1024))

    # Workflow
    status = Column(
        SQLEnum(ComplaintStatus, name="complaint_status"),
        nullable=False,
        default=ComplaintStatus.PENDING,
        index=True,
    )
    priority = Column(
        SQLEnum(ComplaintPriority, name="complaint_priority"),
        nullable=False,
        default=ComplaintPriority.MEDIUM,
    )
    assigned_worker_id = Column(UUID(as_uuid=True), index=True)
    assigned_staff = Column(String(50))
    admin_notes = Column(Text)

    # Location
    hostel_name = Column(String(255))
    block = Column(String(50))
    floor = Column(String(50))
    room_number = Column(String(50))

    # Incremented on every write
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at = Column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_dict(self) -> dict:
        """Plain JSON-friendly row image, used for change events."""
        return {
            "id": str(self.id) if self.id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "title": self.title,
            "description": self.description,
            "category": _enum_value(self.category),
            "photo_url": self.photo_url,
            "status": _enum_value(self.status),
            "priority": _enum_value(self.priority),
            "assigned_worker_id": str(self.assigned_worker_id) if self.assigned_worker_id else None,
            "assigned_staff": self.assigned_staff,
            "admin_notes": self.admin_notes,
            "hostel_name": self.hostel_name,
            "block": self.block,
            "floor": self.floor,
            "room_number": self.room_number,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Complaint(id={self.id}, status={self.status})>"


def _enum_value(value):
    return value.value if isinstance(value, enum.Enum) else value
