"""
Health check endpoints.
"""

from typing import Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_hub.core.config import settings
from complaint_hub.core.database import get_db
from complaint_hub.core.redis import get_redis

router = APIRouter()


@router.get("/liveness", status_code=status.HTTP_200_OK)
async def liveness() -> Dict[str, str]:
    """Simple liveness probe."""
    return {"status": "alive"}


@router.get("/readiness")
async def readiness(
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    """
    Readiness probe covering the complaint store and the change feed.

    Redis is only checked when it carries the change feed.
    """
    checks: Dict[str, Dict[str, str]] = {}
    overall_status = status.HTTP_200_OK

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = {"status": "pass"}
    except Exception as exc:  # pragma: no cover - probe reports any failure
        checks["database"] = {"status": "fail", "reason": str(exc)}
        overall_status = status.HTTP_503_SERVICE_UNAVAILABLE

    if settings.CHANGE_FEED_BACKEND == "redis":
        try:
            await redis.ping()
            checks["change_feed"] = {"status": "pass", "backend": "redis"}
        except Exception as exc:  # pragma: no cover - probe reports any failure
            checks["change_feed"] = {"status": "fail", "backend": "redis", "reason": str(exc)}
            overall_status = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        checks["change_feed"] = {"status": "pass", "backend": settings.CHANGE_FEED_BACKEND}

    body = {
        "status": "ready" if overall_status == status.HTTP_200_OK else "not_ready",
        "checks": checks,
    }
    return JSONResponse(status_code=overall_status, content=body)
