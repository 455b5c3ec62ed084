"""Prometheus metrics for HTTP requests and CRM sync activity.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- crm_write_attempts_total / crm_failed_fields_total: field-fallback sync counters
- bulk_sync_records_total: per-record results of bulk runs
- get_metrics_response(): FastAPI route handler for /metrics
"""

from __future__ import annotations

import time

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── CRM Sync Metrics ─────────────────────────────────────────────────────────

crm_write_attempts_total = Counter(
    "crm_write_attempts_total",
    "CRM write attempts by fallback tier",
    ["record_type", "tier", "status"],
)

crm_failed_fields_total = Counter(
    "crm_failed_fields_total",
    "Properties the CRM schema refused, reconciled into notes",
    ["record_type"],
)

bulk_sync_records_total = Counter(
    "bulk_sync_records_total",
    "Records processed by bulk sync runs",
    ["record_type", "status"],
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
