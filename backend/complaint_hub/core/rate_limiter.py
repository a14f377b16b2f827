"""SlowAPI rate limiting setup."""

from __future__ import annotations

from slowapi import Limiter, extension as slowapi_extension
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import AuthenticationRequired
from complaint_hub.core.security import subject_from_token


def _build_limiter() -> Limiter:
    storage_uri = "memory://" if settings.ENVIRONMENT == "test" else str(settings.REDIS_URL)
    return Limiter(
        key_func=get_remote_address,
        default_limits=["100/minute"],
        storage_uri=storage_uri,
    )


limiter = _build_limiter()


def bearer_subject_key(request: Request) -> str:
    """Rate-limit key: the token subject, or the client address when absent."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"subject:{subject_from_token(token)}"
        except AuthenticationRequired:
            pass
    return get_remote_address(request)


def _rate_limit_handler(request: Request, exc: Exception) -> JSONResponse:
    detail = getattr(exc, "detail", str(exc))
    response = JSONResponse(
        {"error": f"Rate limit exceeded: {detail}"}, status_code=429
    )
    view_limit = getattr(request.state, "view_rate_limit", None)
    if view_limit is not None:
        response = limiter._inject_headers(response, view_limit)
    return response


slowapi_extension._rate_limit_exceeded_handler = _rate_limit_handler


class RateLimitMiddleware(SlowAPIMiddleware):
    exempt_paths = {
        "/metrics",
        "/health",
        f"{settings.API_V1_PREFIX}/health/liveness",
        f"{settings.API_V1_PREFIX}/health/readiness",
    }

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if request.url.path in self.exempt_paths:
            return await call_next(request)
        return await super().dispatch(request, call_next)
