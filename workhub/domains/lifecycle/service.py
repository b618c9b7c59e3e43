# workhub/domains/lifecycle/service.py
import logging
from typing import Any, List, Optional

from workhub.core.cache import AccessCache
from workhub.core.database import PrismaClient
from workhub.core.settings import settings
from workhub.domains.auth.models import AccountType, User
from workhub.shared.exceptions import InvariantViolationError
from workhub.shared.permissions.models import OrganizationRole, OrgMemberStatus

from .models import (
    AccountLifecycleState,
    BillingStatus,
    LifecycleResponse,
    LifecycleState,
    ResolvedLifecycle,
)
from .routing import apply_gates, get_lifecycle_routing

logger = logging.getLogger(__name__)

ORG_STATES = frozenset(
    {
        LifecycleState.ORG_MEMBER_PENDING,
        LifecycleState.ORG_OWNER_NO_WORKSPACE,
        LifecycleState.ORG_OWNER_ACTIVE,
        LifecycleState.ORG_ADMIN_NO_WORKSPACE,
        LifecycleState.ORG_ADMIN_ACTIVE,
        LifecycleState.ORG_MEMBER_NO_WORKSPACE,
        LifecycleState.ORG_MEMBER_ACTIVE,
    }
)

MANAGEMENT_ROLES = frozenset({OrganizationRole.OWNER, OrganizationRole.ADMIN})


def unauthenticated_lifecycle() -> ResolvedLifecycle:
    routing = get_lifecycle_routing(LifecycleState.UNAUTHENTICATED)
    return ResolvedLifecycle(
        state=LifecycleState.UNAUTHENTICATED,
        redirect_to=routing.redirect_to,
        allowed_paths=routing.allowed_paths,
        blocked_paths=routing.blocked_paths,
    )


def _org_state(role: OrganizationRole, has_workspace: bool) -> LifecycleState:
    if role == OrganizationRole.OWNER:
        return (
            LifecycleState.ORG_OWNER_ACTIVE
            if has_workspace
            else LifecycleState.ORG_OWNER_NO_WORKSPACE
        )
    if role == OrganizationRole.ADMIN:
        return (
            LifecycleState.ORG_ADMIN_ACTIVE
            if has_workspace
            else LifecycleState.ORG_ADMIN_NO_WORKSPACE
        )
    # MODERATOR and MEMBER share the member branch
    return (
        LifecycleState.ORG_MEMBER_ACTIVE
        if has_workspace
        else LifecycleState.ORG_MEMBER_NO_WORKSPACE
    )


def validate_lifecycle_invariants(lifecycle: ResolvedLifecycle) -> None:
    """
    Check that a resolved lifecycle is internally consistent.

    Raises:
        InvariantViolationError: naming the first broken invariant
    """
    state = lifecycle.state.value

    if state.startswith("PERSONAL_") and lifecycle.account_type != AccountType.PERSONAL:
        raise InvariantViolationError(
            "LIFECYCLE_PERSONAL_TYPE_MISMATCH",
            "PERSONAL state requires PERSONAL account type",
        )
    if state.startswith("ORG_") and lifecycle.account_type != AccountType.ORG:
        raise InvariantViolationError(
            "LIFECYCLE_ORG_TYPE_MISMATCH", "ORG state requires ORG account type"
        )
    if lifecycle.state in ORG_STATES and not lifecycle.org_id:
        raise InvariantViolationError(
            "LIFECYCLE_ORG_REQUIRED", "This state requires an organization"
        )
    if state.endswith("_ACTIVE") and not lifecycle.has_workspace:
        raise InvariantViolationError(
            "LIFECYCLE_ACTIVE_WORKSPACE_REQUIRED",
            "ACTIVE state requires a workspace",
        )
    if state.endswith("_NO_WORKSPACE") and lifecycle.has_workspace:
        raise InvariantViolationError(
            "LIFECYCLE_NO_WORKSPACE_MISMATCH",
            "NO_WORKSPACE state requires no workspace",
        )
    if state.startswith("ORG_OWNER_") and lifecycle.org_role != OrganizationRole.OWNER:
        raise InvariantViolationError(
            "LIFECYCLE_OWNER_ROLE_MISMATCH", "ORG_OWNER state requires OWNER role"
        )


def to_legacy_state(
    lifecycle: ResolvedLifecycle, user: Optional[User]
) -> AccountLifecycleState:
    """Project a resolved lifecycle onto the flat legacy account summary."""
    return AccountLifecycleState(
        is_authenticated=lifecycle.state != LifecycleState.UNAUTHENTICATED,
        has_user=lifecycle.user_id is not None,
        is_email_verified=lifecycle.is_email_verified,
        has_org=lifecycle.state in ORG_STATES,
        has_workspace=lifecycle.has_workspace,
        user=user if lifecycle.user_id is not None else None,
        account_type=lifecycle.account_type,
        active_org_id=lifecycle.org_id,
        active_org_name=lifecycle.org_name,
        active_workspace_id=lifecycle.workspace_id,
        must_reset_password=lifecycle.must_reset_password,
        org_role=lifecycle.org_role,
    )


class LifecycleService:
    """
    Resolves the account lifecycle of a user.

    Resolution is a pure function of a point-in-time read of the user record
    and the membership collections. Any failure while reading, and any
    inconsistent result, resolves to UNAUTHENTICATED.
    """

    def __init__(self, db: PrismaClient, cache: Optional[AccessCache] = None):
        self.db = db
        self.cache = cache

    async def resolve(self, user: Optional[User]) -> ResolvedLifecycle:
        """
        Resolve the lifecycle for a user, or for an anonymous caller.

        Args:
            user: The authenticated user, or None

        Returns:
            ResolvedLifecycle with state and routing hints
        """
        if user is None:
            return unauthenticated_lifecycle()

        cache_key = ("lifecycle", user.id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            lifecycle = await self._resolve_user(user)
            validate_lifecycle_invariants(lifecycle)
        except InvariantViolationError as e:
            logger.error(f"Lifecycle invariant {e.invariant} broken for user {user.id}")
            return unauthenticated_lifecycle()
        except Exception as e:
            logger.error(f"Lifecycle resolution failed for user {user.id}: {e}")
            return unauthenticated_lifecycle()

        if self.cache is not None:
            self.cache.set(cache_key, lifecycle)
        return lifecycle

    async def resolve_with_legacy(self, user: Optional[User]) -> LifecycleResponse:
        """Resolve once and return both the lifecycle and its legacy projection."""
        lifecycle = await self.resolve(user)
        return LifecycleResponse(
            legacy_state=to_legacy_state(lifecycle, user), lifecycle=lifecycle
        )

    async def _resolve_user(self, user: User) -> ResolvedLifecycle:
        prefs = user.prefs
        base = {
            "user_id": user.id,
            "account_type": prefs.account_type,
            "is_email_verified": user.email_verified,
            "must_reset_password": prefs.must_reset_password,
        }

        if settings.REQUIRE_EMAIL_VERIFICATION and not user.email_verified:
            return self._build(LifecycleState.EMAIL_UNVERIFIED, base)

        if prefs.account_type is None:
            return self._build(LifecycleState.NO_ACCOUNT_TYPE, base)

        must_accept_legal = prefs.accepted_terms_version != settings.LEGAL_CURRENT_VERSION

        if prefs.account_type == AccountType.PERSONAL:
            workspace_ids = await self._active_workspace_ids(user.id, None)
            workspace_id = self._preferred_workspace(workspace_ids, prefs.active_workspace_id)
            billing_status = await self._billing_status({"userId": user.id})
            fields = {
                **base,
                "workspace_id": workspace_id,
                "has_workspace": workspace_id is not None,
                "billing_status": billing_status,
                "must_accept_legal": must_accept_legal,
            }
            if billing_status == BillingStatus.SUSPENDED:
                return self._build(LifecycleState.SUSPENDED, fields)
            state = (
                LifecycleState.PERSONAL_ACTIVE
                if workspace_id
                else LifecycleState.PERSONAL_NO_WORKSPACE
            )
            return self._build(state, fields)

        membership = await self._primary_membership(user.id, prefs.primary_organization_id)
        if membership is None:
            return self._build(
                LifecycleState.ORG_ONBOARDING,
                {**base, "must_accept_legal": must_accept_legal},
            )

        org_id = membership.organizationId
        organization = await self.db.organization.find_unique(where={"id": org_id})
        if organization is None:
            raise LookupError(f"Organization {org_id} not found")

        role = OrganizationRole(membership.role)
        member_status = OrgMemberStatus(membership.status)

        legal_blocked = False
        org_legal_accepted = (
            getattr(organization, "legalAcceptedVersion", None)
            == settings.LEGAL_CURRENT_VERSION
        )
        if not org_legal_accepted:
            if role in MANAGEMENT_ROLES:
                must_accept_legal = True
            else:
                legal_blocked = True
                must_accept_legal = False

        billing_status = await self._billing_status({"organizationId": org_id})
        fields = {
            **base,
            "org_id": org_id,
            "org_name": organization.name,
            "org_role": role,
            "org_member_status": member_status,
            "billing_status": billing_status,
            "must_accept_legal": must_accept_legal,
            "legal_blocked": legal_blocked,
        }

        if billing_status == BillingStatus.SUSPENDED:
            return self._build(LifecycleState.SUSPENDED, fields)

        if member_status == OrgMemberStatus.PENDING:
            return self._build(LifecycleState.ORG_MEMBER_PENDING, fields)

        workspace_ids = await self._active_workspace_ids(user.id, org_id)
        workspace_id = self._preferred_workspace(workspace_ids, prefs.active_workspace_id)
        fields["workspace_id"] = workspace_id
        fields["has_workspace"] = workspace_id is not None
        return self._build(_org_state(role, workspace_id is not None), fields)

    def _build(self, state: LifecycleState, fields: dict[str, Any]) -> ResolvedLifecycle:
        routing = get_lifecycle_routing(state, fields.get("workspace_id"))
        routing = apply_gates(
            routing,
            must_reset_password=bool(fields.get("must_reset_password")),
            legal_blocked=bool(fields.get("legal_blocked")),
        )
        return ResolvedLifecycle(
            state=state,
            redirect_to=routing.redirect_to,
            allowed_paths=routing.allowed_paths,
            blocked_paths=routing.blocked_paths,
            **fields,
        )

    async def _primary_membership(
        self, user_id: str, preferred_org_id: Optional[str]
    ) -> Optional[Any]:
        memberships = await self.db.organizationmember.find_many(where={"userId": user_id})
        if not memberships:
            return None
        for membership in memberships:
            if membership.organizationId == preferred_org_id:
                return membership
        return memberships[0]

    async def _active_workspace_ids(
        self, user_id: str, organization_id: Optional[str]
    ) -> List[str]:
        """ACTIVE workspace memberships whose workspace belongs to the given scope."""
        memberships = await self.db.workspacemember.find_many(
            where={"userId": user_id, "status": "ACTIVE"}
        )
        if not memberships:
            return []
        ids = [m.workspaceId for m in memberships]
        workspaces = await self.db.workspace.find_many(
            where={"id": {"in": ids}, "organizationId": organization_id}
        )
        in_scope = {w.id for w in workspaces}
        return [workspace_id for workspace_id in ids if workspace_id in in_scope]

    @staticmethod
    def _preferred_workspace(
        workspace_ids: List[str], preferred_id: Optional[str]
    ) -> Optional[str]:
        if preferred_id and preferred_id in workspace_ids:
            return preferred_id
        return workspace_ids[0] if workspace_ids else None

    async def _billing_status(self, where: dict[str, Any]) -> Optional[BillingStatus]:
        account = await self.db.billingaccount.find_first(where=where)
        if account is None or account.status is None:
            return None
        return BillingStatus(account.status)
