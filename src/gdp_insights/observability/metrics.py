from __future__ import annotations

"""Prometheus metrics for the GDP Insights API.

Adds an HTTP middleware that records request latency per method/path/status,
plus counters for record mutations and trend analyses.
"""

import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

REQUEST_LATENCY = Histogram(
    "gdp_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

RECORD_MUTATIONS = Counter(
    "gdp_record_mutations_total",
    "Record create/update/delete attempts by outcome",
    labelnames=("operation", "outcome"),
)

ANALYSIS_REQUESTS = Counter(
    "gdp_analysis_requests_total",
    "Trend analysis requests by outcome",
    labelnames=("outcome",),
)


def record_mutation(operation: str, outcome: str) -> None:
    RECORD_MUTATIONS.labels(operation=operation, outcome=outcome).inc()


def record_analysis(outcome: str) -> None:
    ANALYSIS_REQUESTS.labels(outcome=outcome).inc()


def sanitize_path(path: str) -> str:
    """Reduce high-cardinality paths (e.g. /records/{id}) to their first segment.

    A leading /api prefix is kept so both mounts stay distinguishable.
    """
    if not path:
        return "/"
    segs = [s for s in path.split("?")[0].split("/") if s]
    if not segs:
        return "/"
    if segs[0] == "api" and len(segs) > 1:
        return f"/api/{segs[1]}"
    return "/" + segs[0]


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
