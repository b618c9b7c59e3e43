"""
Routing hints derived from a lifecycle state, and the navigation-time guard.

Allowed and blocked paths use three pattern forms: "*" (everything),
"/prefix/*" (the prefix and anything below it) and a plain path (the path
and anything below it). When both lists match a path, the more specific
pattern wins and a blocked pattern wins a tie. A path matched by neither
list is denied.
"""

from typing import Iterable, List, Optional, Sequence

from workhub.shared.permissions.models import OrganizationRole

from .models import (
    LifecycleRouting,
    LifecycleState,
    NavigationAction,
    NavigationDecision,
    ResolvedLifecycle,
)

SIGN_IN_PATH = "/sign-in"
VERIFY_EMAIL_NEEDED_PATH = "/verify-email-needed"
ONBOARDING_PATH = "/onboarding"
WELCOME_PATH = "/welcome"
ORGANIZATION_PATH = "/organization"
RESET_PASSWORD_PATH = "/reset-password"
LEGAL_PATH = "/legal"
BILLING_PATH = "/billing"
WORKSPACE_CREATE_PATH = "/workspaces/create"

PUBLIC_ROUTES: List[str] = [
    "/sign-in",
    "/sign-up",
    "/verify-email",
    "/verify-email-sent",
    "/verify-email-needed",
    "/forgot-password",
    "/reset-password",
    "/oauth",
    "/auth/callback",
]

JOIN_ROUTES: List[str] = [ONBOARDING_PATH, "/invite", "/join"]

PROFILE_ROUTES: List[str] = ["/profile", "/profile/accountinfo", "/profile/password"]

BILLING_ROUTES: List[str] = ["/organization/settings/billing", "/settings/billing", "/billing"]

WORKSPACE_ROUTES = "/workspaces/*"
WORKSPACE_LIST_PATH = "/"

NO_WORKSPACE_STATES = frozenset(
    {
        LifecycleState.ORG_MEMBER_PENDING,
        LifecycleState.ORG_OWNER_NO_WORKSPACE,
        LifecycleState.ORG_ADMIN_NO_WORKSPACE,
        LifecycleState.ORG_MEMBER_NO_WORKSPACE,
    }
)

LIFECYCLE_STATE_LABELS = {
    LifecycleState.UNAUTHENTICATED: "Not signed in",
    LifecycleState.EMAIL_UNVERIFIED: "Email verification required",
    LifecycleState.NO_ACCOUNT_TYPE: "Account setup required",
    LifecycleState.PERSONAL_NO_WORKSPACE: "Create your workspace",
    LifecycleState.PERSONAL_ACTIVE: "Active",
    LifecycleState.ORG_ONBOARDING: "Create or join an organization",
    LifecycleState.ORG_MEMBER_PENDING: "Invitation pending",
    LifecycleState.ORG_OWNER_NO_WORKSPACE: "Create your first workspace",
    LifecycleState.ORG_OWNER_ACTIVE: "Active",
    LifecycleState.ORG_ADMIN_NO_WORKSPACE: "Waiting for workspace assignment",
    LifecycleState.ORG_ADMIN_ACTIVE: "Active",
    LifecycleState.ORG_MEMBER_NO_WORKSPACE: "Waiting for workspace assignment",
    LifecycleState.ORG_MEMBER_ACTIVE: "Active",
    LifecycleState.SUSPENDED: "Account suspended",
}


def workspace_path(workspace_id: Optional[str]) -> Optional[str]:
    return f"/workspaces/{workspace_id}" if workspace_id else None


def get_lifecycle_routing(
    state: LifecycleState, workspace_id: Optional[str] = None
) -> LifecycleRouting:
    """
    Derive redirect/allow/block hints for a state.

    Args:
        state: The resolved lifecycle state
        workspace_id: Active workspace, used as redirect target for active states

    Returns:
        LifecycleRouting for the state
    """
    if state == LifecycleState.EMAIL_UNVERIFIED:
        return LifecycleRouting(
            redirect_to=VERIFY_EMAIL_NEEDED_PATH,
            allowed_paths=[*PUBLIC_ROUTES, *PROFILE_ROUTES],
            blocked_paths=[ONBOARDING_PATH, WORKSPACE_ROUTES, ORGANIZATION_PATH, WELCOME_PATH],
        )

    if state == LifecycleState.NO_ACCOUNT_TYPE:
        return LifecycleRouting(
            redirect_to=ONBOARDING_PATH,
            allowed_paths=[ONBOARDING_PATH, *PROFILE_ROUTES],
            blocked_paths=[WORKSPACE_ROUTES, ORGANIZATION_PATH, WELCOME_PATH],
        )

    if state == LifecycleState.PERSONAL_NO_WORKSPACE:
        return LifecycleRouting(
            redirect_to=ONBOARDING_PATH,
            allowed_paths=[ONBOARDING_PATH, *PROFILE_ROUTES],
            blocked_paths=[ORGANIZATION_PATH, WORKSPACE_ROUTES],
        )

    if state == LifecycleState.ORG_ONBOARDING:
        return LifecycleRouting(
            redirect_to=ONBOARDING_PATH,
            allowed_paths=list(JOIN_ROUTES),
            blocked_paths=[WORKSPACE_ROUTES, ORGANIZATION_PATH, WELCOME_PATH],
        )

    if state in NO_WORKSPACE_STATES:
        allowed = [WELCOME_PATH, ORGANIZATION_PATH, *JOIN_ROUTES, *PROFILE_ROUTES]
        if state == LifecycleState.ORG_OWNER_NO_WORKSPACE:
            allowed += [WORKSPACE_CREATE_PATH, *BILLING_ROUTES]
        return LifecycleRouting(
            redirect_to=WELCOME_PATH,
            allowed_paths=allowed,
            blocked_paths=[WORKSPACE_ROUTES],
        )

    if state == LifecycleState.PERSONAL_ACTIVE:
        return LifecycleRouting(
            redirect_to=workspace_path(workspace_id),
            allowed_paths=["*"],
            blocked_paths=[ONBOARDING_PATH, WELCOME_PATH, ORGANIZATION_PATH],
        )

    if state in (LifecycleState.ORG_OWNER_ACTIVE, LifecycleState.ORG_ADMIN_ACTIVE):
        return LifecycleRouting(
            redirect_to=workspace_path(workspace_id),
            allowed_paths=["*"],
            blocked_paths=[ONBOARDING_PATH, WELCOME_PATH],
        )

    if state == LifecycleState.ORG_MEMBER_ACTIVE:
        return LifecycleRouting(
            redirect_to=workspace_path(workspace_id),
            allowed_paths=[
                WORKSPACE_LIST_PATH,
                WORKSPACE_ROUTES,
                ORGANIZATION_PATH,
                *PROFILE_ROUTES,
            ],
            blocked_paths=[ONBOARDING_PATH, WELCOME_PATH],
        )

    if state == LifecycleState.SUSPENDED:
        return LifecycleRouting(
            redirect_to=BILLING_PATH,
            allowed_paths=[*BILLING_ROUTES, *PROFILE_ROUTES],
            blocked_paths=[WORKSPACE_ROUTES, ONBOARDING_PATH],
        )

    # UNAUTHENTICATED and anything unrecognised
    return LifecycleRouting(
        redirect_to=SIGN_IN_PATH,
        allowed_paths=list(PUBLIC_ROUTES),
        blocked_paths=["*"],
    )


def apply_gates(
    routing: LifecycleRouting, must_reset_password: bool, legal_blocked: bool
) -> LifecycleRouting:
    """Password-reset and legal gates replace the state's routing entirely."""
    if must_reset_password:
        return LifecycleRouting(
            redirect_to=RESET_PASSWORD_PATH,
            allowed_paths=[RESET_PASSWORD_PATH],
            blocked_paths=["*"],
        )
    if legal_blocked:
        return LifecycleRouting(
            redirect_to=LEGAL_PATH,
            allowed_paths=[LEGAL_PATH],
            blocked_paths=["*"],
        )
    return routing


def _pattern_specificity(pattern: str, path: str) -> Optional[int]:
    """Length of the matched prefix, or None when the pattern does not match."""
    if pattern == "*":
        return 0
    prefix = pattern[:-2] if pattern.endswith("/*") else pattern
    if path == prefix:
        return len(prefix) + 1
    if prefix == "/" and not pattern.endswith("/*"):
        return None
    if path.startswith(prefix.rstrip("/") + "/"):
        return len(prefix)
    return None


def _best_match(patterns: Iterable[str], path: str) -> Optional[int]:
    scores = [s for s in (_pattern_specificity(p, path) for p in patterns) if s is not None]
    return max(scores) if scores else None


def is_path_allowed_by(allowed: Sequence[str], blocked: Sequence[str], path: str) -> bool:
    path = path.split("?", 1)[0] or "/"
    allowed_score = _best_match(allowed, path)
    if allowed_score is None:
        return False
    blocked_score = _best_match(blocked, path)
    return blocked_score is None or allowed_score > blocked_score


def is_path_allowed_for_state(lifecycle: ResolvedLifecycle, path: str) -> bool:
    return is_path_allowed_by(lifecycle.allowed_paths, lifecycle.blocked_paths, path)


def decide_navigation(lifecycle: ResolvedLifecycle, path: str) -> NavigationDecision:
    """
    Navigation-time guard.

    Proceeds when the lifecycle allows the path, otherwise redirects to the
    lifecycle's redirect target. Without a target the navigation is blocked,
    except for organization owners, who are redirected to the organization
    dashboard instead.
    """
    if is_path_allowed_for_state(lifecycle, path):
        return NavigationDecision(
            action=NavigationAction.PROCEED, path=path, state=lifecycle.state
        )

    target = lifecycle.redirect_to
    if target is None and lifecycle.org_role == OrganizationRole.OWNER:
        target = ORGANIZATION_PATH
    if target is not None and target != path:
        return NavigationDecision(
            action=NavigationAction.REDIRECT,
            path=path,
            redirect_to=target,
            state=lifecycle.state,
        )
    return NavigationDecision(action=NavigationAction.BLOCK, path=path, state=lifecycle.state)


def get_lifecycle_state_label(state: LifecycleState) -> str:
    return LIFECYCLE_STATE_LABELS.get(state, "Unknown")


def is_active_state(state: LifecycleState) -> bool:
    return state in (
        LifecycleState.PERSONAL_ACTIVE,
        LifecycleState.ORG_OWNER_ACTIVE,
        LifecycleState.ORG_ADMIN_ACTIVE,
        LifecycleState.ORG_MEMBER_ACTIVE,
    )


def requires_onboarding(state: LifecycleState) -> bool:
    return state in (
        LifecycleState.NO_ACCOUNT_TYPE,
        LifecycleState.PERSONAL_NO_WORKSPACE,
        LifecycleState.ORG_ONBOARDING,
    )


def is_restricted_org_member(state: LifecycleState) -> bool:
    return state in (
        LifecycleState.ORG_MEMBER_PENDING,
        LifecycleState.ORG_MEMBER_NO_WORKSPACE,
        LifecycleState.ORG_ADMIN_NO_WORKSPACE,
    )
