"""
Error taxonomy for complaint operations.

Every error carries an HTTP status and a human-readable reason. Business-rule
errors are raised before anything is written; ``StoreFailure`` wraps errors
coming from the database or the change feed.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ComplaintHubError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_reason: str = "Request could not be processed"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class AuthenticationRequired(ComplaintHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_reason = "Unauthorized"


class PermissionDenied(ComplaintHubError):
    status_code = status.HTTP_403_FORBIDDEN
    default_reason = "You are not allowed to perform this action"


class QuotaExceeded(ComplaintHubError):
    status_code = status.HTTP_409_CONFLICT
    default_reason = "Active complaint limit reached"


class StaleVersion(ComplaintHubError):
    status_code = status.HTTP_409_CONFLICT
    default_reason = "Complaint was modified by someone else; reload and retry"


class InvalidTransition(ComplaintHubError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_reason = "Status change is not permitted"


class NotFound(ComplaintHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_reason = "Not found"


class ValidationFailed(ComplaintHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_reason = "Invalid request"


class StoreFailure(ComplaintHubError):
    """Persistence or network failure. Callers may retry; nothing retries here."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_reason = "Storage backend unavailable"


async def complaint_hub_error_handler(request: Request, exc: ComplaintHubError) -> JSONResponse:
    """Render domain errors as ``{"error": reason}``."""
    if isinstance(exc, StoreFailure):
        logger.error(
            "Store failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.reason,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.reason,
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationRequired) else None
    return JSONResponse({"error": exc.reason}, status_code=exc.status_code, headers=headers)


__all__ = [
    "ComplaintHubError",
    "AuthenticationRequired",
    "PermissionDenied",
    "QuotaExceeded",
    "StaleVersion",
    "InvalidTransition",
    "NotFound",
    "ValidationFailed",
    "StoreFailure",
    "complaint_hub_error_handler",
]
