"""
Prometheus metrics.

HTTP traffic is recorded by PrometheusMiddleware. Pipeline stages and
completion-service calls are recorded where they happen (generation_pipeline,
completion_client) using the collectors defined here.
"""

import time

from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# ── HTTP ─────────────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

# Stage calls hold the request open for the whole model round-trip, so the
# upper buckets reach the read timeout.
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

# ── Generation pipeline ──────────────────────────────────────────────────────

generation_stage_total = Counter(
    "generation_stage_total",
    "Generation pipeline stage invocations",
    ["stage", "outcome"],
)

generation_stage_duration_seconds = Histogram(
    "generation_stage_duration_seconds",
    "Generation pipeline stage duration in seconds",
    ["stage"],
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

generation_stages_in_progress = Gauge(
    "generation_stages_in_progress",
    "Generations with a stage currently running in this process",
)

# ── Completion service ───────────────────────────────────────────────────────

completion_requests_total = Counter(
    "completion_requests_total",
    "Requests sent to the completion service",
    ["provider", "outcome"],
)


def _normalize_path(path: str) -> str:
    """/api/generations/42/validate → /api/generations/{id}/validate"""
    parts = path.strip("/").split("/")
    return "/" + "/".join("{id}" if i > 1 and part.isdigit() else part for i, part in enumerate(parts))


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        path = _normalize_path(request.url.path)
        started = time.perf_counter()
        response = await call_next(request)

        http_requests_total.labels(
            method=request.method, path=path, status_code=response.status_code,
        ).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(
            time.perf_counter() - started
        )
        return response
