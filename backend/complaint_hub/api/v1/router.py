"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from complaint_hub.api.v1.endpoints import (
    complaints_router,
    health_router,
    roles_router,
    workers_router,
)

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(complaints_router, prefix="/complaints", tags=["complaints"])
api_router.include_router(workers_router, prefix="/workers", tags=["workers"])
api_router.include_router(roles_router, prefix="/roles", tags=["roles"])
