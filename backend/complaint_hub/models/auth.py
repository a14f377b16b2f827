"""
Role assignment model.

Identities are issued by the external identity provider; this table only
maps an identity to the single role the complaint workflow knows about.
"""

from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SQLEnum, func
from sqlalchemy.dialects.postgresql import UUID

from complaint_hub.core.database import Base


class AppRole(str, enum.Enum):
    """Roles known to the complaint workflow."""
    RESIDENT = "resident"
    ADMINISTRATOR = "administrator"
    WORKER = "worker"


class UserRole(Base):
    """Exactly one role per identity."""

    __tablename__ = "user_roles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), unique=True, nullable=False, index=True)
    role = Column(SQLEnum(AppRole, name="app_role"), nullable=False, default=AppRole.RESIDENT)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role={self.role})>"
