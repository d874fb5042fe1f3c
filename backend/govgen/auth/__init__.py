from govgen.auth.permissions import Permission
from govgen.auth.roles import Role, ROLE_PERMISSIONS
from govgen.auth.context import RequestContext

__all__ = ["Permission", "Role", "ROLE_PERMISSIONS", "RequestContext"]
