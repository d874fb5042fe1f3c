"""
RequestContext — who is asking and what they may do.

The pipeline treats `user_id` as the owner identity: documents feeding the
reasoning stage and the generations themselves are scoped to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import HTTPException

from govgen.auth.permissions import Permission
from govgen.auth.roles import Role


@dataclass
class RequestContext:
    user_id: str = "anonymous"
    role: Role = Role.VIEWER
    permissions: set[Permission] = field(default_factory=set)

    def has_permission(self, perm: Permission) -> bool:
        return perm in self.permissions

    def require_permission(self, perm: Permission) -> None:
        """Raise 403 if the caller lacks the given permission."""
        if not self.has_permission(perm):
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: requires {perm.value}",
            )

    @property
    def actor(self) -> str:
        """Identity string for log lines."""
        return f"{self.role.value}:{self.user_id}"
