"""
Prometheus request metrics shared by both services.

Metrics live in the default ``prometheus_client`` registry, which also carries
the process collector (resident memory, CPU time, open fds). Scraping and
storage happen outside the service through ``GET /metrics``.
"""
from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

UNMATCHED_ROUTE = "unmatched"

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status"]
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "status"],
    buckets=[0.1, 0.5, 1, 2, 5, 10]
)


def route_label(request: Request) -> str:
    """Matched route template, e.g. ``/products/{product_id}``, so labels stay bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


def observe_request(method: str, route: str, status: int, duration_seconds: float) -> None:
    labels = {"method": method, "route": route, "status": str(status)}
    HTTP_REQUESTS_TOTAL.labels(**labels).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(duration_seconds)


def render_latest():
    """Exposition body and content type for the default registry."""
    return generate_latest(), CONTENT_TYPE_LATEST
