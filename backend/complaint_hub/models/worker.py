"""
Maintenance worker model.
"""
from datetime import datetime
import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, String
from sqlalchemy.dialects.postgresql import UUID

from complaint_hub.core.database import Base


class WorkerType(str, enum.Enum):
    """Trades a worker can be registered under."""
    ELECTRICIAN = "electrician"
    PLUMBER = "plumber"
    CLEANER = "cleaner"
    TECHNICIAN = "technician"
    MAINTENANCE = "maintenance"


class Worker(Base):
    """
    Staff identity that complaints can be assigned to.

    Complaints point at workers by id only; removing a worker never removes
    complaints.
    """
    __tablename__ = "workers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), unique=True, nullable=False, index=True)

    worker_type = Column(SQLEnum(WorkerType, name="staff_type"), nullable=False)
    phone = Column(String(50))

    # Informational only; assignment is not gated on it
    is_available = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )
