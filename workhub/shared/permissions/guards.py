"""
Route guard for organization and project access.

Consumes the resolvers' output and decides whether a request or navigation
may proceed. Two entry styles are offered for each check: a non-throwing
variant for conditional rendering (is_path_allowed, check_access) and a
throwing variant for request handlers (guard_route_access, enforce_access).
"""

import logging
import re
from typing import List, NamedTuple, Optional, Pattern, Union

from pydantic import BaseModel

from workhub.shared.exceptions import (
    MissingPermissionError,
    NotAMemberError,
    NotAuthenticatedError,
    RedirectRequired,
    ResourceNotFoundError,
)

from .models import (
    ROUTE_KEY_TO_PATH,
    WORKSPACE_ID_PLACEHOLDER,
    AppRouteKey,
    OrgPermission,
    ProjectAccess,
    ProjectPermission,
    ProjectRouteKey,
    UserAccess,
)
from .services import (
    can_access_org_tab,
    can_access_route_key,
    get_default_org_tab,
    get_org_route_keys,
    get_org_tab,
    has_any_org_access,
    has_org_permission,
    resolve_route_path,
    split_path,
)

logger = logging.getLogger(__name__)

FORBIDDEN_PATH = "/403"
WELCOME_PATH = ROUTE_KEY_TO_PATH[AppRouteKey.WELCOME]

FALLBACK_ORDER: List[AppRouteKey] = [
    AppRouteKey.ORG_DASHBOARD,
    AppRouteKey.WORKSPACES,
    AppRouteKey.WELCOME,
    AppRouteKey.PROFILE,
]


class RouteMatch(NamedTuple):
    route_key: AppRouteKey
    workspace_id: Optional[str] = None


class AccessDecision(BaseModel):
    model_config = {"frozen": True}

    allowed: bool
    status_code: int = 200
    reason: Optional[str] = None
    resource: Optional[str] = None


_EXACT_ROUTES = [
    (split_path(path), key)
    for key, path in ROUTE_KEY_TO_PATH.items()
    if WORKSPACE_ID_PLACEHOLDER not in path
]


def _reserved_segments(prefix: str) -> List[str]:
    """Literal segments of exact routes directly under a template's prefix (e.g. "create")."""
    reserved = set()
    for (base, _), _key in _EXACT_ROUTES:
        if base.startswith(prefix):
            reserved.add(base[len(prefix) :].split("/")[0])
    return sorted(segment for segment in reserved if segment)


def _compile_templates() -> List[tuple[Pattern[str], AppRouteKey]]:
    templated = [
        (key, path) for key, path in ROUTE_KEY_TO_PATH.items() if WORKSPACE_ID_PLACEHOLDER in path
    ]
    # Longest template first so /workspaces/x/tasks never resolves to WORKSPACE_HOME
    templated.sort(key=lambda item: len(item[1]), reverse=True)
    compiled = []
    for key, path in templated:
        base, _ = split_path(path)
        prefix = base.split(WORKSPACE_ID_PLACEHOLDER)[0]
        excluded = "".join(
            rf"(?!{re.escape(segment)}(?:/|$))" for segment in _reserved_segments(prefix)
        )
        regex = re.escape(base).replace(
            re.escape(WORKSPACE_ID_PLACEHOLDER), rf"{excluded}(?P<workspace_id>[^/]+)"
        )
        compiled.append((re.compile(rf"^{regex}(?:/.*)?$"), key))
    return compiled


_TEMPLATE_ROUTES = _compile_templates()


def match_route(path: str) -> Optional[RouteMatch]:
    """
    Find the route key a concrete path belongs to.

    Exact routes are tried first. A route carrying a tab parameter matches
    only that tab; a route without one matches only when no tab is selected.
    Workspace-templated routes match any workspace id and nested subpaths.

    Args:
        path: Concrete path, optionally with a query string

    Returns:
        The matched route key and captured workspace id, or None when unknown
    """
    base, tab = split_path(path)
    for (pattern_base, pattern_tab), key in _EXACT_ROUTES:
        if pattern_base == base and pattern_tab == tab:
            return RouteMatch(key)

    for regex, key in _TEMPLATE_ROUTES:
        match = regex.match(base)
        if match:
            return RouteMatch(key, match.group("workspace_id"))
    return None


def get_route_key_for_path(path: str) -> Optional[AppRouteKey]:
    match = match_route(path)
    return match.route_key if match else None


def is_path_allowed(path: str, access: UserAccess) -> bool:
    """Non-throwing path check; unknown paths are denied."""
    match = match_route(path)
    if match is None:
        return False
    if access.is_owner:
        return True
    if not can_access_route_key(access, match.route_key):
        return False
    if match.workspace_id is not None and match.workspace_id != access.workspace_id:
        return False
    return True


def get_fallback_route(access: UserAccess) -> str:
    """First reachable screen in fallback order; the profile is always reachable."""
    for route_key in FALLBACK_ORDER:
        if can_access_route_key(access, route_key):
            path = resolve_route_path(route_key, access.workspace_id)
            if path is not None:
                return path
    return ROUTE_KEY_TO_PATH[AppRouteKey.PROFILE]


def _denied_redirect(route_key: AppRouteKey, access: UserAccess) -> str:
    # Members without any org screen land on the welcome page instead of a 403
    if route_key in get_org_route_keys() and not has_any_org_access(access):
        return WELCOME_PATH
    return FORBIDDEN_PATH


def guard_route_access(current_path: str, access: UserAccess) -> AppRouteKey:
    """
    Guard a page entry point.

    Args:
        current_path: The path being rendered
        access: Resolved organization access of the current user

    Returns:
        The route key of the allowed path

    Raises:
        ResourceNotFoundError: If the path maps to no known route
        RedirectRequired: If the user may not view the path
    """
    match = match_route(current_path)
    if match is None:
        raise ResourceNotFoundError("Route")
    if is_path_allowed(current_path, access):
        return match.route_key

    location = _denied_redirect(match.route_key, access)
    logger.info(
        f"Route {current_path} denied for member {access.org_member_id}, redirecting to {location}"
    )
    raise RedirectRequired(location)


def guard_route_key_access(route_key: AppRouteKey, access: UserAccess) -> None:
    if not can_access_route_key(access, route_key):
        raise RedirectRequired(_denied_redirect(route_key, access))


def guard_org_tab_access(tab: str, access: UserAccess) -> str:
    """
    Guard an organization settings tab.

    Returns the tab when allowed. A denied tab redirects to the user's default
    tab, or to the fallback route when no tab is visible.
    """
    if get_org_tab(tab) is None:
        raise ResourceNotFoundError("Organization tab")
    if can_access_org_tab(access, tab):
        return tab

    default_tab = get_default_org_tab(access)
    if default_tab is not None:
        raise RedirectRequired(f"/organization?tab={default_tab}")
    raise RedirectRequired(get_fallback_route(access))


def _parse_org_requirement(
    required: str,
) -> Optional[Union[OrgPermission, AppRouteKey]]:
    for enum_type in (OrgPermission, AppRouteKey):
        try:
            return enum_type(required)
        except ValueError:
            continue
    return None


def _parse_project_requirement(
    required: str,
) -> Optional[Union[ProjectPermission, ProjectRouteKey]]:
    for enum_type in (ProjectPermission, ProjectRouteKey):
        try:
            return enum_type(required)
        except ValueError:
            continue
    return None


def _check_org_access(access: UserAccess, required: str) -> AccessDecision:
    if access.org_member_id is None and not access.is_owner:
        return AccessDecision(allowed=False, status_code=401, reason="Not a member")

    requirement = _parse_org_requirement(required)
    if requirement is None:
        return AccessDecision(allowed=False, status_code=404, reason=f"Unknown: {required}")
    if access.is_owner:
        return AccessDecision(allowed=True)

    if isinstance(requirement, OrgPermission):
        allowed = has_org_permission(access, requirement)
    else:
        allowed = can_access_route_key(access, requirement)
    if allowed:
        return AccessDecision(allowed=True)
    return AccessDecision(allowed=False, status_code=403, reason=f"Missing: {required}")


def _check_project_access(access: ProjectAccess, required: str) -> AccessDecision:
    if not access.project_exists:
        return AccessDecision(
            allowed=False, status_code=404, reason="Unknown project", resource="Project"
        )
    if not access.has_access:
        return AccessDecision(allowed=False, status_code=401, reason="Not a member")

    requirement = _parse_project_requirement(required)
    if requirement is None:
        return AccessDecision(allowed=False, status_code=404, reason=f"Unknown: {required}")
    if access.is_admin:
        return AccessDecision(allowed=True)

    if isinstance(requirement, ProjectPermission):
        allowed = requirement.value in access.permissions
    else:
        allowed = requirement in access.allowed_route_keys
    if allowed:
        return AccessDecision(allowed=True)
    return AccessDecision(allowed=False, status_code=403, reason=f"Missing: {required}")


def check_access(
    access: Optional[Union[UserAccess, ProjectAccess]], required: str
) -> AccessDecision:
    """
    Request-time decision for a permission or route key.

    Args:
        access: Resolved access, or None when there is no identity
        required: A permission string or route key name

    Returns:
        AccessDecision carrying 401 (no identity / not a member),
        404 (unknown project, permission or route key), 403 (missing permission)
        or an allow
    """
    if access is None:
        return AccessDecision(allowed=False, status_code=401, reason="No identity")
    if isinstance(access, ProjectAccess):
        return _check_project_access(access, required)
    return _check_org_access(access, required)


def enforce_access(
    access: Optional[Union[UserAccess, ProjectAccess]], required: str
) -> None:
    """Raising variant of check_access for request handlers."""
    decision = check_access(access, required)
    if decision.allowed:
        return

    logger.debug(f"Access denied ({decision.status_code}): {decision.reason}")
    if decision.status_code == 401:
        if access is None:
            raise NotAuthenticatedError()
        raise NotAMemberError()
    if decision.status_code == 404:
        raise ResourceNotFoundError(decision.resource or f"Permission or route {required}")
    raise MissingPermissionError(required)
