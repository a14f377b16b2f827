"""
Profile model: display name and default location for an identity.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from complaint_hub.core.database import Base


class Profile(Base):
    """
    Contact and location metadata, one row per identity.
    """
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), unique=True, nullable=False, index=True)

    full_name = Column(String(255), nullable=False, default="")

    # Location used to pre-fill new complaints
    hostel_name = Column(String(255))
    block = Column(String(50))
    floor = Column(String(50))
    room_number = Column(String(50))

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def location_defaults(self) -> dict:
        """Location fields to copy onto a new complaint."""
        return {
            "hostel_name": self.hostel_name,
            "block": self.block,
            "floor": self.floor,
            "room_number": self.room_number,
        }
