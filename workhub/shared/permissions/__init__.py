"""
Shared permission system for organization and project access control.

This module provides the permission catalog, the single permission -> route
mapping and the route guard used across all domains. FastAPI dependency
factories live in `workhub.shared.permissions.dependencies`, which imports the
domain resolvers and is therefore not re-exported here.

Usage:
    from workhub.shared.permissions import OrgPermission
    from workhub.shared.permissions.dependencies import require_org_permission

    @router.get("/{org_id}/billing")
    async def get_billing(
        access: UserAccess = Depends(
            require_org_permission(OrgPermission.BILLING_VIEW)
        )
    ):
        pass
"""

from .guards import (
    check_access,
    enforce_access,
    get_fallback_route,
    get_route_key_for_path,
    guard_org_tab_access,
    guard_route_access,
    guard_route_key_access,
    is_path_allowed,
)
from .models import (
    ROLE_PERMISSIONS,
    AppRouteKey,
    OrganizationRole,
    OrgMemberStatus,
    OrgPermission,
    ProjectAccess,
    ProjectPermission,
    UserAccess,
)
from .services import (
    can_access_route_key,
    get_route_keys_for_permissions,
    has_any_org_access,
    has_org_permission,
    has_permission,
)

__all__ = [
    "AppRouteKey",
    "OrgMemberStatus",
    "OrgPermission",
    "OrganizationRole",
    "ProjectAccess",
    "ProjectPermission",
    "ROLE_PERMISSIONS",
    "UserAccess",
    "can_access_route_key",
    "check_access",
    "enforce_access",
    "get_fallback_route",
    "get_route_key_for_path",
    "get_route_keys_for_permissions",
    "guard_org_tab_access",
    "guard_route_access",
    "guard_route_key_access",
    "has_any_org_access",
    "has_org_permission",
    "has_permission",
    "is_path_allowed",
]
