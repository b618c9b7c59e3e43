from typing import Iterable, List, Optional, Set
from urllib.parse import parse_qs, urlsplit

from .models import (
    ORG_SETTINGS_TABS,
    PERMISSION_TO_ROUTE_KEYS,
    PROJECT_PERMISSION_TO_ROUTE_KEYS,
    ROLE_PERMISSIONS,
    ROUTE_KEY_METADATA,
    ROUTE_KEY_TO_PATH,
    WORKSPACE_ID_PLACEHOLDER,
    AppRouteKey,
    OrganizationRole,
    OrgPermission,
    OrgSettingsTab,
    ProjectPermission,
    ProjectRouteKey,
    RouteCategory,
    UserAccess,
)


def has_permission(role: OrganizationRole, permission: OrgPermission) -> bool:
    """
    Check if a role's default permission set contains a permission.

    Args:
        role: The organization role to check
        permission: The permission to validate

    Returns:
        True if the role has the permission by default, False otherwise
    """
    return permission in ROLE_PERMISSIONS[role]


def get_route_keys_for_permissions(
    permissions: Iterable[OrgPermission],
) -> Set[AppRouteKey]:
    """
    Map a permission set to the route keys it unlocks.

    A route key is unlocked when the set holds at least one of the route's
    required permissions. Every component that needs routes for a
    permission set goes through this function.

    Args:
        permissions: Effective organization permissions

    Returns:
        Set of unlocked route keys
    """
    route_keys: Set[AppRouteKey] = set()
    for permission in permissions:
        route_keys |= PERMISSION_TO_ROUTE_KEYS.get(permission, frozenset())
    return route_keys


def get_project_route_keys_for_permissions(
    permissions: Iterable[str],
) -> Set[ProjectRouteKey]:
    """Project counterpart of get_route_keys_for_permissions; unknown strings unlock nothing."""
    known = {p.value: p for p in ProjectPermission}
    route_keys: Set[ProjectRouteKey] = set()
    for permission in permissions:
        project_permission = known.get(permission)
        if project_permission is not None:
            route_keys |= PROJECT_PERMISSION_TO_ROUTE_KEYS.get(
                project_permission, frozenset()
            )
    return route_keys


def resolve_route_path(
    route_key: AppRouteKey, workspace_id: Optional[str] = None
) -> Optional[str]:
    """
    Resolve a route key to its concrete path.

    Returns None for a workspace-templated route when no workspace is given.
    """
    path = ROUTE_KEY_TO_PATH[route_key]
    if WORKSPACE_ID_PLACEHOLDER in path:
        if not workspace_id:
            return None
        return path.replace(WORKSPACE_ID_PLACEHOLDER, workspace_id)
    return path


def get_allowed_paths(
    route_keys: Iterable[AppRouteKey], workspace_id: Optional[str] = None
) -> List[str]:
    paths = {resolve_route_path(key, workspace_id) for key in route_keys}
    return sorted(path for path in paths if path is not None)


def split_path(path: str) -> tuple[str, Optional[str]]:
    """Split a path into its normalized base and the selected `tab` query value."""
    parts = urlsplit(path)
    base = parts.path or "/"
    if len(base) > 1:
        base = base.rstrip("/")
    tab_values = parse_qs(parts.query).get("tab")
    return base, tab_values[0] if tab_values else None


# Route-key groupings


def get_all_route_keys() -> List[AppRouteKey]:
    return list(AppRouteKey)


def get_workspace_independent_route_keys() -> List[AppRouteKey]:
    return [key for key, meta in ROUTE_KEY_METADATA.items() if not meta.requires_workspace]


def get_org_route_keys() -> List[AppRouteKey]:
    return [
        key
        for key, meta in ROUTE_KEY_METADATA.items()
        if meta.category == RouteCategory.ORG
    ]


def get_workspace_route_keys() -> List[AppRouteKey]:
    return [
        key
        for key, meta in ROUTE_KEY_METADATA.items()
        if meta.category == RouteCategory.WORKSPACE
    ]


# Access helpers


def has_org_permission(access: UserAccess, permission: OrgPermission) -> bool:
    """Owners hold every permission; everyone else needs it in their resolved set."""
    return access.is_owner or permission in access.permissions


def can_access_route_key(access: UserAccess, route_key: AppRouteKey) -> bool:
    return access.is_owner or route_key in access.allowed_route_keys


def has_any_org_access(access: UserAccess) -> bool:
    """True when the user can reach at least one organization screen."""
    if access.is_owner:
        return True
    org_keys = set(get_org_route_keys())
    return any(key in org_keys for key in access.allowed_route_keys)


def get_visible_org_tabs(access: UserAccess) -> List[OrgSettingsTab]:
    return [tab for tab in ORG_SETTINGS_TABS if has_org_permission(access, tab.permission)]


def get_default_org_tab(access: UserAccess) -> Optional[str]:
    visible = get_visible_org_tabs(access)
    return visible[0].tab if visible else None


def get_org_tab(tab: str) -> Optional[OrgSettingsTab]:
    for settings_tab in ORG_SETTINGS_TABS:
        if settings_tab.tab == tab:
            return settings_tab
    return None


def can_access_org_tab(access: UserAccess, tab: str) -> bool:
    settings_tab = get_org_tab(tab)
    if settings_tab is None:
        return False
    return has_org_permission(access, settings_tab.permission)
