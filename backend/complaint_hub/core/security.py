"""
Bearer-token handling and the acting identity passed into every operation.

Tokens are issued by the external identity provider and signed with the
shared ``SECRET_KEY``. Only the ``sub`` claim is trusted; the role always
comes from the role table, never from the token.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import AuthenticationRequired, PermissionDenied
from complaint_hub.models.auth import AppRole

# Missing credentials are reported through AuthenticationRequired, not 403
security_scheme = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation."""

    role: AppRole
    user_id: UUID
    worker_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == AppRole.ADMINISTRATOR

    @property
    def is_worker(self) -> bool:
        return self.role == AppRole.WORKER

    @property
    def is_resident(self) -> bool:
        return self.role == AppRole.RESIDENT


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Used by operator scripts and tests; production tokens come from the
    identity provider.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and verify a token.

    Raises:
        AuthenticationRequired: If the token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationRequired("Invalid authentication credentials")


def subject_from_token(token: Optional[str]) -> UUID:
    """Return the identity a bearer token was issued for."""
    if not token:
        raise AuthenticationRequired()

    payload = decode_token(token)
    subject = payload.get("sub")
    if subject is None:
        raise AuthenticationRequired("Invalid token payload")

    try:
        return UUID(str(subject))
    except ValueError:
        raise AuthenticationRequired("Invalid token subject")


async def get_token_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> UUID:
    """Dependency extracting the caller identity from the bearer credential."""
    return subject_from_token(credentials.credentials if credentials else None)


def ensure_role(actor: Actor, *allowed_roles: AppRole) -> Actor:
    """Raise PermissionDenied unless the actor holds one of ``allowed_roles``."""
    if actor.role not in allowed_roles:
        allowed = ", ".join(role.value for role in allowed_roles)
        raise PermissionDenied(f"Insufficient permissions. Required roles: {allowed}")
    return actor
