"""
Complaint Hub - Main Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from slowapi.errors import RateLimitExceeded

from complaint_hub.api.v1.router import api_router
from complaint_hub.core.config import settings
from complaint_hub.core.database import close_db, init_db
from complaint_hub.core.exceptions import ComplaintHubError, complaint_hub_error_handler
from complaint_hub.core.logging import RequestContextMiddleware, setup_logging
from complaint_hub.core.metrics import MetricsMiddleware
from complaint_hub.core.rate_limiter import RateLimitMiddleware, _rate_limit_handler, limiter
from complaint_hub.core.redis import close_redis
from complaint_hub.services.change_feed import close_change_feed
from complaint_hub.utils.notifications import background_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown."""
    # Startup
    setup_logging()
    await init_db()
    logger.info("Complaint Hub started (change feed: %s)", settings.CHANGE_FEED_BACKEND)
    yield
    # Shutdown
    await background_notifier.close()
    await close_change_feed()
    await close_redis()
    await close_db()


app = FastAPI(
    title="Complaint Hub",
    description="Hostel complaint lifecycle: raising, assignment, resolution and live views",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)
app.state.limiter = limiter


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request parsing errors in the same ``{"error": reason}`` shape."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    reason = f"{location}: {message}" if location else message
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, reason)
    return JSONResponse({"error": reason}, status_code=status.HTTP_400_BAD_REQUEST)


app.add_exception_handler(ComplaintHubError, complaint_hub_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

# Middleware
app.add_middleware(RateLimitMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Mount Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "complaint-hub"}


@app.get("/")
async def root():
    """Root endpoint with system information."""
    return {
        "service": "Complaint Hub",
        "version": "1.0.0",
        "docs": "/api/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
