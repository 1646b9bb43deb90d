"""
Prometheus metrics and instrumentation helpers.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from civicconnect.services.organization_directory import IssueCategory

KNOWN_CATEGORIES = frozenset(category.value for category in IssueCategory)


HTTP_REQUESTS_TOTAL = Counter(
    "civicconnect_http_requests_total",
    "Total count of HTTP requests processed.",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "civicconnect_http_request_duration_seconds",
    "Histogram of HTTP request durations in seconds.",
    ["method", "path"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

HTTP_REQUEST_ERRORS = Counter(
    "civicconnect_http_request_errors_total",
    "Count of HTTP requests resulting in error responses.",
    ["method", "path", "status"],
)

ISSUES_CREATED = Counter(
    "civicconnect_issues_created_total",
    "Issues reported, partitioned by category and whether they were assigned.",
    ["category", "assigned"],
)

ASSIGNMENT_CHANGES = Counter(
    "civicconnect_assignment_changes_total",
    "Changes to issue/organization assignments.",
    ["operation"],
)

ROLE_RESOLUTIONS = Counter(
    "civicconnect_role_resolutions_total",
    "Role resolutions partitioned by resulting kind and deciding source.",
    ["kind", "source"],
)

CACHE_OPERATIONS = Counter(
    "civicconnect_cache_operations_total",
    "Cache operations partitioned by outcome.",
    ["operation"],
)

STORE_FAILURES = Counter(
    "civicconnect_store_failures_total",
    "Failed calls to the backing store.",
    ["operation"],
)


def _normalise_path(request: Request) -> str:
    """Prefer route path templates to reduce cardinality in metrics."""
    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if template is None:
        return request.url.path
    # included routers may leave their prefix in root_path rather than the template
    root_path = request.scope.get("root_path", "").rstrip("/")
    if root_path and not template.startswith(root_path):
        template = root_path + template
    return template or "/"


def observe_http_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record metrics for an HTTP request."""
    status_str = str(status_code)
    HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=status_str).inc()
    HTTP_REQUEST_DURATION.labels(method=method, path=path).observe(duration)

    if status_code >= 400:
        HTTP_REQUEST_ERRORS.labels(method=method, path=path, status=status_str).inc()


def _category_label(category: str | None) -> str:
    if not category:
        return "uncategorized"
    if category in KNOWN_CATEGORIES:
        return category
    return "other"


def record_issue_created(category: str | None, assigned: bool) -> None:
    """Count a new issue; free-form categories collapse into ``other``."""
    ISSUES_CREATED.labels(
        category=_category_label(category), assigned=str(assigned).lower()
    ).inc()


def record_assignment_change(operation: str) -> None:
    """Increment the assignment counter (``assign``, ``unassign``, ``repair``)."""
    ASSIGNMENT_CHANGES.labels(operation=operation).inc()


def record_role_resolution(kind: str, source: str) -> None:
    ROLE_RESOLUTIONS.labels(kind=kind, source=source).inc()


def record_cache_operation(operation: str) -> None:
    """Increment cache operation counters."""
    CACHE_OPERATIONS.labels(operation=operation).inc()


def record_store_failure(operation: str) -> None:
    STORE_FAILURES.labels(operation=operation).inc()


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
        # The route is only known once routing has run.
        observe_http_request(method, _normalise_path(request), response.status_code, duration)
        return response


__all__ = [
    "MetricsMiddleware",
    "HTTP_REQUESTS_TOTAL",
    "HTTP_REQUEST_DURATION",
    "HTTP_REQUEST_ERRORS",
    "ISSUES_CREATED",
    "ASSIGNMENT_CHANGES",
    "ROLE_RESOLUTIONS",
    "CACHE_OPERATIONS",
    "STORE_FAILURES",
    "observe_http_request",
    "record_issue_created",
    "record_assignment_change",
    "record_role_resolution",
    "record_cache_operation",
    "record_store_failure",
]
