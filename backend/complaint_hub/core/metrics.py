"""
Prometheus metrics and instrumentation helpers.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


HTTP_REQUESTS_TOTAL = Counter(
    "complaint_hub_http_requests_total",
    "Total count of HTTP requests processed.",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "complaint_hub_http_request_duration_seconds",
    "Histogram of HTTP request durations in seconds.",
    ["method", "path"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

HTTP_REQUEST_ERRORS = Counter(
    "complaint_hub_http_request_errors_total",
    "Count of HTTP requests resulting in error responses.",
    ["method", "path", "status"],
)

STATUS_TRANSITIONS = Counter(
    "complaint_hub_status_transitions_total",
    "Complaint status changes applied, by actor role.",
    ["from_status", "to_status", "role"],
)

AUTHORIZATION_DENIALS = Counter(
    "complaint_hub_authorization_denials_total",
    "Mutations rejected before reaching the store.",
    ["role", "action"],
)

QUOTA_REJECTIONS = Counter(
    "complaint_hub_quota_rejections_total",
    "Complaint creations blocked by the active complaint limit.",
)

CHANGE_EVENTS = Counter(
    "complaint_hub_change_events_total",
    "Change events published to the change feed.",
    ["table", "operation"],
)

ACTIVE_SUBSCRIPTIONS = Gauge(
    "complaint_hub_active_view_subscriptions",
    "Viewer sessions currently subscribed to the change feed.",
)

EXTERNAL_API_RETRIES = Counter(
    "complaint_hub_external_api_retries_total",
    "Retries issued when calling external APIs.",
    ["service"],
)


def _normalise_path(request: Request) -> str:
    """
    Collapse path parameters into their names to keep label cardinality low.

    The label is rebuilt from the full request path because the matched route
    may only know its path relative to the router it was included from.
    """
    path = request.url.path
    params = request.scope.get("path_params") or {}
    if request.scope.get("route") is None or not params:
        return path
    names = {str(value): name for name, value in params.items()}
    segments = [
        "{%s}" % names[segment] if segment in names else segment
        for segment in path.split("/")
    ]
    return "/".join(segments)


def observe_http_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record metrics for an HTTP request."""
    status_str = str(status_code)
    HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=status_str).inc()
    HTTP_REQUEST_DURATION.labels(method=method, path=path).observe(duration)

    if status_code >= 400:
        HTTP_REQUEST_ERRORS.labels(method=method, path=path, status=status_str).inc()


def record_status_transition(from_status: str, to_status: str, role: str) -> None:
    STATUS_TRANSITIONS.labels(from_status=from_status, to_status=to_status, role=role).inc()


def record_authorization_denial(role: str, action: str) -> None:
    AUTHORIZATION_DENIALS.labels(role=role, action=action).inc()


def record_quota_rejection() -> None:
    QUOTA_REJECTIONS.inc()


def record_change_event(table: str, operation: str) -> None:
    CHANGE_EVENTS.labels(table=table, operation=operation).inc()


def record_external_api_retry(service: str) -> None:
    """Increment retry counter for an external service."""
    EXTERNAL_API_RETRIES.labels(service=service).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for capturing request metrics."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        method = request.method
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            observe_http_request(method, _normalise_path(request), 500, duration)
            raise

        duration = time.perf_counter() - start
        observe_http_request(method, _normalise_path(request), response.status_code, duration)
        return response


__all__ = [
    "MetricsMiddleware",
    "HTTP_REQUESTS_TOTAL",
    "HTTP_REQUEST_DURATION",
    "HTTP_REQUEST_ERRORS",
    "STATUS_TRANSITIONS",
    "AUTHORIZATION_DENIALS",
    "QUOTA_REJECTIONS",
    "CHANGE_EVENTS",
    "ACTIVE_SUBSCRIPTIONS",
    "EXTERNAL_API_RETRIES",
    "observe_http_request",
    "record_status_transition",
    "record_authorization_denial",
    "record_quota_rejection",
    "record_change_event",
    "record_external_api_retry",
]
