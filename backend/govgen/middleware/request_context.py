"""
Request context middleware.

Each request gets an id, from X-Request-ID or freshly minted. Requests
addressed to one generation (/api/generations/{id}/...) also bind that id.
Both live in ContextVars, so any log line emitted while a stage runs can be
tied back to the call and the generation that caused it.
"""

import logging
import re
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

_GENERATION_PATH = re.compile(r"^/api/generations/(\d+)(?:/|$)")

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_generation_id_var: ContextVar[int | None] = ContextVar("generation_id", default=None)


def get_request_id() -> str:
    return _request_id_var.get()


def get_generation_id() -> int | None:
    """Generation addressed by the current request, if any."""
    return _generation_id_var.get()


def _generation_id_from_path(path: str) -> int | None:
    match = _GENERATION_PATH.match(path)
    return int(match.group(1)) if match else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        generation_id = _generation_id_from_path(request.url.path)
        request_token = _request_id_var.set(request_id)
        generation_token = _generation_id_var.set(generation_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            _generation_id_var.reset(generation_token)
            _request_id_var.reset(request_token)

        response.headers["X-Request-ID"] = request_id

        extra = {"duration_ms": elapsed_ms, "request_id": request_id}
        if generation_id is not None:
            extra["generation_id"] = generation_id
        logger.info(
            "%s %s -> %s in %.0fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
            extra=extra,
        )
        return response
