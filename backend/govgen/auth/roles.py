"""
Role definitions — which bundles of permissions make up each role.

    VIEWER < AUTHOR < ENGINEER < ADMIN

Authors curate the governance corpus; engineers drive generations.
"""

from enum import Enum
from govgen.auth.permissions import Permission


class Role(str, Enum):
    VIEWER = "viewer"
    AUTHOR = "author"
    ENGINEER = "engineer"
    ADMIN = "admin"


# ── Viewer: read documents, generations and metrics ──
_VIEWER_PERMS: set[Permission] = {
    Permission.DOCUMENTS_READ,
    Permission.GENERATIONS_READ,
    Permission.METRICS_VIEW,
}

# ── Author: viewer + maintain governance documents ──
_AUTHOR_PERMS: set[Permission] = {
    *_VIEWER_PERMS,
    Permission.DOCUMENTS_WRITE,
}

# ── Engineer: author + run the generation pipeline ──
_ENGINEER_PERMS: set[Permission] = {
    *_AUTHOR_PERMS,
    Permission.GENERATIONS_RUN,
}

# ── Admin: everything ──
_ADMIN_PERMS: set[Permission] = {p for p in Permission}


ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.VIEWER: _VIEWER_PERMS,
    Role.AUTHOR: _AUTHOR_PERMS,
    Role.ENGINEER: _ENGINEER_PERMS,
    Role.ADMIN: _ADMIN_PERMS,
}
