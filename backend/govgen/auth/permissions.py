"""
Permission constants — every action the service exposes.

Each permission follows the pattern `resource:action`. JWTs carry a role
claim, which maps to a set of these permissions via ROLE_PERMISSIONS.
"""

from enum import Enum


class Permission(str, Enum):
    # ── Governance documents ──
    DOCUMENTS_READ = "documents:read"
    DOCUMENTS_WRITE = "documents:write"         # create, update, delete

    # ── Generations ──
    GENERATIONS_READ = "generations:read"       # list, detail, status polling
    GENERATIONS_RUN = "generations:run"         # create, reason, generate, validate, fail

    # ── Metrics ──
    METRICS_VIEW = "metrics:view"
