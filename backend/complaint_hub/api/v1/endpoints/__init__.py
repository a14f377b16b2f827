"""
Convenience exports for API v1 endpoint routers.

This allows ``from complaint_hub.api.v1.endpoints import complaints_router``
style imports used by the aggregate router module.
"""

from .complaints import router as complaints_router
from .health import router as health_router
from .roles import router as roles_router
from .workers import router as workers_router

__all__ = [
    "complaints_router",
    "health_router",
    "roles_router",
    "workers_router",
]
