"""
GET /api/health — database and completion-service reachability.

    healthy    database connected, completion service answering
    degraded   database connected, completion service down
    unhealthy  database unreachable

Results are cached briefly so a polling load balancer does not turn into a
stream of model-server probes.
"""

import time

import httpx
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from govgen.config import settings
from govgen.database import engine

router = APIRouter(tags=["health"])

CACHE_TTL_SECONDS = 10.0

_cached: dict | None = None
_cached_at = 0.0


def _probe_url() -> str:
    base = settings.llm_base_url.rstrip("/")
    return f"{base}/api/tags" if settings.llm_provider == "ollama" else f"{base}/models"


async def check_database() -> dict:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        return {"status": "disconnected", "error": str(exc)}
    return {"status": "connected"}


async def check_completion_service() -> dict:
    headers = {"Authorization": f"Bearer {settings.llm_api_key}"} if settings.llm_api_key else {}
    component = {"provider": settings.llm_provider, "model": settings.llm_model}
    try:
        async with httpx.AsyncClient(timeout=3.0) as client:
            resp = await client.get(_probe_url(), headers=headers)
    except httpx.HTTPError as exc:
        return {**component, "status": "unreachable", "error": str(exc)}
    if resp.status_code != 200:
        return {**component, "status": "error", "http_status": resp.status_code}
    return {**component, "status": "reachable"}


@router.get("/api/health")
async def health_check():
    global _cached, _cached_at

    if _cached is not None and time.monotonic() - _cached_at < CACHE_TTL_SECONDS:
        return _cached

    database = await check_database()
    completion = await check_completion_service()
    if database["status"] != "connected":
        overall = "unhealthy"
    elif completion["status"] != "reachable":
        overall = "degraded"
    else:
        overall = "healthy"

    _cached = {
        "status": overall,
        "environment": settings.environment,
        "components": {"database": database, "completion_service": completion},
    }
    _cached_at = time.monotonic()
    return _cached
