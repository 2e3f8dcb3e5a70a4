"""
api/metrics.py -- Prometheus request metrics.

Two series, recorded by the request middleware in api/main.py and exposed
on GET /metrics:

  http_requests_total{path, method, status}        counter
  http_request_duration_seconds{path, method}      histogram

`path` is the matched route template (e.g. "/posts"), never the raw URL, so
scanners hitting random URLs cannot grow the label set. Requests that match
no route are recorded under "unmatched".
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request

REQUEST_COUNTER = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    labelnames=("path", "method", "status"),
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=("path", "method"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

UNMATCHED_PATH = "unmatched"


def route_path(request: Request) -> str:
    """Route template for the request, available once routing has run."""
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_PATH)


def observe_request(request: Request, status_code: int, duration: float) -> None:
    path = route_path(request)
    REQUEST_LATENCY.labels(path=path, method=request.method).observe(duration)
    REQUEST_COUNTER.labels(path=path, method=request.method, status=str(status_code)).inc()


def render_latest() -> tuple[bytes, str]:
    """Current exposition text and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    "REQUEST_COUNTER",
    "REQUEST_LATENCY",
    "observe_request",
    "render_latest",
    "route_path",
]
