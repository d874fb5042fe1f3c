"""
Shared FastAPI dependencies.

Callers arrive already authenticated: a Bearer JWT whose `sub` is the owner
identity and whose `role` maps to permissions through ROLE_PERMISSIONS.
/api/health and /metrics need no token.
"""

import logging
from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.auth.context import RequestContext
from govgen.auth.jwt import decode_access_token
from govgen.auth.permissions import Permission
from govgen.auth.roles import ROLE_PERMISSIONS, Role
from govgen.config import settings
from govgen.database import async_session
from govgen.services.completion_client import CompletionClient, build_completion_client

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/api/health", "/metrics"})


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request. Stage writes commit themselves; anything left
    pending is committed on success and rolled back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@lru_cache(maxsize=1)
def get_completion_client() -> CompletionClient:
    """Process-wide completion client built from settings."""
    return build_completion_client(settings)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


async def get_request_context(request: Request) -> RequestContext:
    if request.url.path.rstrip("/") in PUBLIC_PATHS:
        return RequestContext(permissions=ROLE_PERMISSIONS[Role.VIEWER])

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Missing bearer token")

    try:
        claims = decode_access_token(token)
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        raise _unauthorized("Invalid or expired token")

    owner_id = claims.get("sub")
    if not owner_id:
        raise _unauthorized("Token has no subject")

    try:
        role = Role(claims.get("role", Role.VIEWER.value))
    except ValueError:
        logger.info("Unknown role %r for %s; treating as viewer", claims.get("role"), owner_id)
        role = Role.VIEWER

    return RequestContext(user_id=owner_id, role=role, permissions=ROLE_PERMISSIONS[role])


def require(*perms: Permission):
    """Dependency factory: the caller must hold every listed permission.

        ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN))
    """
    async def _check(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        for perm in perms:
            ctx.require_permission(perm)
        return ctx
    return _check
