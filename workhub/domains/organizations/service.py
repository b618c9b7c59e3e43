# workhub/domains/organizations/service.py
import logging
from typing import Any, Iterable, List, Optional, Set

from workhub.core.cache import AccessCache
from workhub.core.database import PrismaClient
from workhub.shared.exceptions import (
    InvariantViolationError,
    MissingPermissionError,
    ResourceNotFoundError,
)
from workhub.shared.permissions.models import (
    ALWAYS_ACCESSIBLE_ROUTES,
    ORG_MEMBER_BASE_ROUTES,
    OWNER_RESERVED_PERMISSIONS,
    ROLE_PERMISSIONS,
    WORKSPACE_MEMBER_ROUTES,
    AppRouteKey,
    OrganizationRole,
    OrgMemberStatus,
    OrgPermission,
    UserAccess,
)
from workhub.shared.permissions.services import (
    get_allowed_paths,
    get_route_keys_for_permissions,
    has_org_permission,
)

from .models import (
    EligibilityResult,
    OrganizationMemberResponse,
    PermissionGrantResponse,
)

logger = logging.getLogger(__name__)

LOCK_ACTIVE_OWNERS_SQL = (
    'SELECT id FROM "organization_members" '
    'WHERE "organizationId" = $1 AND "role" = $2 AND "status" = $3 FOR UPDATE'
)


def _ordered_route_keys(route_keys: Iterable[AppRouteKey]) -> List[AppRouteKey]:
    wanted = set(route_keys)
    return [key for key in AppRouteKey if key in wanted]


def _ordered_permissions(permissions: Iterable[OrgPermission]) -> List[OrgPermission]:
    wanted = set(permissions)
    return [permission for permission in OrgPermission if permission in wanted]


def parse_permissions(raw: Iterable[str]) -> Set[OrgPermission]:
    """Convert stored permission strings, skipping keys no longer in the catalog."""
    known = {p.value: p for p in OrgPermission}
    parsed: Set[OrgPermission] = set()
    for value in raw:
        permission = known.get(value)
        if permission is None:
            logger.debug(f"Ignoring unknown organization permission {value}")
            continue
        parsed.add(permission)
    return parsed


async def is_active_org_owner(db: PrismaClient, organization_id: str, user_id: str) -> bool:
    """Organization owners act as OWNER on every workspace and project of their organization."""
    membership = await db.organizationmember.find_first(
        where={
            "organizationId": organization_id,
            "userId": user_id,
            "role": OrganizationRole.OWNER.value,
            "status": OrgMemberStatus.ACTIVE.value,
        }
    )
    return membership is not None


def build_base_access(
    organization_id: Optional[str] = None, workspace_id: Optional[str] = None
) -> UserAccess:
    """Access for a user with no membership in scope: always-accessible screens only."""
    route_keys = _ordered_route_keys(ALWAYS_ACCESSIBLE_ROUTES)
    return UserAccess(
        organization_id=organization_id,
        workspace_id=workspace_id,
        allowed_route_keys=route_keys,
        allowed_paths=get_allowed_paths(route_keys),
    )


def build_owner_access(
    organization_id: str, org_member_id: str, workspace_id: Optional[str] = None
) -> UserAccess:
    route_keys = list(AppRouteKey)
    return UserAccess(
        organization_id=organization_id,
        workspace_id=workspace_id,
        org_member_id=org_member_id,
        role=OrganizationRole.OWNER,
        is_owner=True,
        permissions=list(OrgPermission),
        allowed_route_keys=route_keys,
        allowed_paths=get_allowed_paths(route_keys, workspace_id),
    )


def build_member_access(
    organization_id: str,
    org_member_id: str,
    role: OrganizationRole,
    permissions: Set[OrgPermission],
    workspace_id: Optional[str] = None,
) -> UserAccess:
    route_keys = (
        get_route_keys_for_permissions(permissions)
        | ALWAYS_ACCESSIBLE_ROUTES
        | ORG_MEMBER_BASE_ROUTES
    )
    if workspace_id:
        route_keys |= WORKSPACE_MEMBER_ROUTES
    ordered = _ordered_route_keys(route_keys)
    return UserAccess(
        organization_id=organization_id,
        workspace_id=workspace_id,
        org_member_id=org_member_id,
        role=role,
        is_owner=False,
        permissions=_ordered_permissions(permissions),
        allowed_route_keys=ordered,
        allowed_paths=get_allowed_paths(ordered, workspace_id),
    )


class OrgAccessResolver:
    """
    Computes organization-scoped access for (user, organization).

    Normal denials (no organization, no ACTIVE membership) return base access.
    Read failures propagate to the caller.
    """

    def __init__(self, db: PrismaClient, cache: Optional[AccessCache] = None):
        self.db = db
        self.cache = cache

    async def resolve(
        self,
        user_id: str,
        organization_id: Optional[str],
        workspace_id: Optional[str] = None,
    ) -> UserAccess:
        """
        Resolve a user's access within an organization.

        Args:
            user_id: The user to resolve for
            organization_id: Organization in scope, or None
            workspace_id: Optional workspace used for workspace routes and paths

        Returns:
            UserAccess with role, permissions, route keys and concrete paths
        """
        if not organization_id:
            return build_base_access(workspace_id=workspace_id)

        cache_key = ("org", user_id, organization_id, workspace_id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        access = await self._resolve(user_id, organization_id, workspace_id)

        if self.cache is not None:
            self.cache.set(cache_key, access)
        return access

    async def _resolve(
        self, user_id: str, organization_id: str, workspace_id: Optional[str]
    ) -> UserAccess:
        membership = await self.db.organizationmember.find_first(
            where={
                "organizationId": organization_id,
                "userId": user_id,
                "status": OrgMemberStatus.ACTIVE.value,
            }
        )
        if membership is None:
            return build_base_access(organization_id, workspace_id)

        role = OrganizationRole(membership.role)
        # Owners hold everything; no grant table is consulted
        if role == OrganizationRole.OWNER:
            return build_owner_access(organization_id, membership.id, workspace_id)

        permissions = set(ROLE_PERMISSIONS[role])
        permissions |= await self._explicit_permissions(membership.id)
        permissions |= await self._department_permissions(membership.id, organization_id)

        return build_member_access(
            organization_id, membership.id, role, permissions, workspace_id
        )

    async def _explicit_permissions(self, org_member_id: str) -> Set[OrgPermission]:
        grants = await self.db.orgmemberpermission.find_many(
            where={"orgMemberId": org_member_id}
        )
        return parse_permissions(grant.permission for grant in grants)

    async def _department_permissions(
        self, org_member_id: str, organization_id: str
    ) -> Set[OrgPermission]:
        assignments = await self.db.orgmemberdepartment.find_many(
            where={"orgMemberId": org_member_id}
        )
        if not assignments:
            return set()

        departments = await self.db.department.find_many(
            where={
                "id": {"in": [a.departmentId for a in assignments]},
                "organizationId": organization_id,
            }
        )
        raw: List[str] = []
        for department in departments:
            raw.extend(department.permissions or [])
        return parse_permissions(raw)


class OrganizationMembershipService:
    """
    Mutation boundary for organization membership.

    Enforces that every organization keeps at least one ACTIVE OWNER, that
    only owners hand out the OWNER role or owner-reserved permissions, and
    that non-owners only grant permissions they hold. Each successful
    mutation drops the affected user's cached access.
    """

    def __init__(self, db: PrismaClient, cache: Optional[AccessCache] = None):
        self.db = db
        self.cache = cache

    async def update_member_role(
        self,
        organization_id: str,
        user_id: str,
        new_role: OrganizationRole,
        actor: UserAccess,
    ) -> OrganizationMemberResponse:
        """
        Change a member's role.

        Args:
            organization_id: The organization ID
            user_id: The member whose role changes
            new_role: Role to assign
            actor: Resolved access of the user making the change

        Returns:
            The updated membership

        Raises:
            ResourceNotFoundError: If the member does not exist
            InvariantViolationError: If the change grants OWNER without being
                an owner, touches an owner without being one, or demotes the
                last ACTIVE OWNER
        """
        member = await self._get_member(organization_id, user_id)
        current_role = OrganizationRole(member.role)

        if new_role == OrganizationRole.OWNER and not actor.is_owner:
            raise InvariantViolationError(
                "OWNER_GRANT_REQUIRES_OWNER", "Only an owner can grant the OWNER role"
            )
        if current_role == OrganizationRole.OWNER and not actor.is_owner:
            raise InvariantViolationError(
                "OWNER_CHANGE_REQUIRES_OWNER", "Only an owner can change an owner's role"
            )

        async with self.db.tx() as tx:
            if current_role == OrganizationRole.OWNER and new_role != OrganizationRole.OWNER:
                await self._ensure_not_last_owner(tx, member, organization_id)
            updated = await tx.organizationmember.update(
                where={"id": member.id}, data={"role": new_role.value}
            )
        logger.info(
            f"Member {user_id} of {organization_id} changed from {current_role.value} to {new_role.value}"
        )
        self._invalidate(user_id)
        return OrganizationMemberResponse.from_prisma(updated)

    async def remove_member(
        self, organization_id: str, user_id: str, actor: UserAccess
    ) -> None:
        """
        Remove a member and their explicit grants from an organization.

        Raises:
            ResourceNotFoundError: If the member does not exist
            InvariantViolationError: If removing an owner without being one,
                or removing the last ACTIVE OWNER
        """
        member = await self._get_member(organization_id, user_id)

        is_owner = member.role == OrganizationRole.OWNER.value
        if is_owner and not actor.is_owner:
            raise InvariantViolationError(
                "OWNER_CHANGE_REQUIRES_OWNER", "Only an owner can remove an owner"
            )

        async with self.db.tx() as tx:
            if is_owner:
                await self._ensure_not_last_owner(tx, member, organization_id)
            await tx.orgmemberpermission.delete_many(where={"orgMemberId": member.id})
            await tx.orgmemberdepartment.delete_many(where={"orgMemberId": member.id})
            await tx.organizationmember.delete(where={"id": member.id})
        logger.info(f"Removed member {user_id} from organization {organization_id}")
        self._invalidate(user_id)

    async def grant_permission(
        self,
        organization_id: str,
        user_id: str,
        permission: OrgPermission,
        actor: UserAccess,
    ) -> PermissionGrantResponse:
        """
        Grant an explicit permission to a member. Granting an existing
        permission returns the existing grant.

        Raises:
            ResourceNotFoundError: If the member does not exist
            InvariantViolationError: If a non-owner grants an owner-reserved permission
            MissingPermissionError: If a non-owner grants a permission they lack
        """
        self._check_grantable(permission, actor)
        member = await self._get_member(organization_id, user_id)

        existing = await self.db.orgmemberpermission.find_first(
            where={"orgMemberId": member.id, "permission": permission.value}
        )
        if existing is not None:
            return self._format_grant(existing)

        grant = await self.db.orgmemberpermission.create(
            data={
                "orgMemberId": member.id,
                "permission": permission.value,
                "grantedBy": actor.org_member_id,
            }
        )
        logger.info(f"Granted {permission.value} to member {user_id} of {organization_id}")
        self._invalidate(user_id)
        return self._format_grant(grant)

    async def revoke_permission(
        self,
        organization_id: str,
        user_id: str,
        permission: OrgPermission,
        actor: UserAccess,
    ) -> None:
        self._check_grantable(permission, actor)
        member = await self._get_member(organization_id, user_id)

        grant = await self.db.orgmemberpermission.find_first(
            where={"orgMemberId": member.id, "permission": permission.value}
        )
        if grant is None:
            raise ResourceNotFoundError("Permission grant")

        await self.db.orgmemberpermission.delete(where={"id": grant.id})
        logger.info(f"Revoked {permission.value} from member {user_id} of {organization_id}")
        self._invalidate(user_id)

    async def can_leave_organization(
        self, organization_id: str, user_id: str
    ) -> EligibilityResult:
        """
        Check whether a member may leave an organization.
        Read failures deny.
        """
        try:
            member = await self.db.organizationmember.find_first(
                where={"organizationId": organization_id, "userId": user_id}
            )
            if member is None:
                return EligibilityResult(allowed=False, reason="Not a member of this organization")
            if member.role == OrganizationRole.OWNER.value:
                owners = await self._active_owner_count(organization_id)
                if owners <= 1:
                    return EligibilityResult(
                        allowed=False,
                        reason="Transfer ownership before leaving: you are the last owner",
                    )
            return EligibilityResult(allowed=True)
        except Exception as e:
            logger.error(f"Leave check failed for {user_id} in {organization_id}: {e}")
            return EligibilityResult(allowed=False, reason="Unable to verify membership")

    async def can_delete_account(self, user_id: str) -> EligibilityResult:
        """
        Check whether a user may delete their account: denied while they are
        the only ACTIVE OWNER of any organization. Read failures deny.
        """
        try:
            ownerships = await self.db.organizationmember.find_many(
                where={
                    "userId": user_id,
                    "role": OrganizationRole.OWNER.value,
                    "status": OrgMemberStatus.ACTIVE.value,
                }
            )
            for ownership in ownerships:
                owners = await self._active_owner_count(ownership.organizationId)
                if owners <= 1:
                    return EligibilityResult(
                        allowed=False,
                        reason=f"You are the only owner of organization {ownership.organizationId}",
                    )
            return EligibilityResult(allowed=True)
        except Exception as e:
            logger.error(f"Account deletion check failed for {user_id}: {e}")
            return EligibilityResult(allowed=False, reason="Unable to verify ownership")

    def _check_grantable(self, permission: OrgPermission, actor: UserAccess) -> None:
        if actor.is_owner:
            return
        if permission in OWNER_RESERVED_PERMISSIONS:
            raise InvariantViolationError(
                "OWNER_PERMISSION_REQUIRES_OWNER",
                f"Only an owner can grant {permission.value}",
            )
        if not has_org_permission(actor, permission):
            raise MissingPermissionError(permission.value)

    async def _get_member(self, organization_id: str, user_id: str) -> Any:
        member = await self.db.organizationmember.find_first(
            where={"organizationId": organization_id, "userId": user_id}
        )
        if member is None:
            raise ResourceNotFoundError("Member")
        return member

    async def _active_owner_count(
        self, organization_id: str, db: Optional[PrismaClient] = None
    ) -> int:
        return await (db or self.db).organizationmember.count(
            where={
                "organizationId": organization_id,
                "role": OrganizationRole.OWNER.value,
                "status": OrgMemberStatus.ACTIVE.value,
            }
        )

    async def _ensure_not_last_owner(
        self, tx: PrismaClient, member: Any, organization_id: str
    ) -> None:
        """
        Reject the change when the member is the last ACTIVE OWNER.

        Runs inside the caller's transaction. The owner rows stay locked until
        it commits, so two owners demoting each other cannot both pass.
        """
        if member.status != OrgMemberStatus.ACTIVE.value:
            return
        await tx.query_raw(
            LOCK_ACTIVE_OWNERS_SQL,
            organization_id,
            OrganizationRole.OWNER.value,
            OrgMemberStatus.ACTIVE.value,
        )
        owners = await self._active_owner_count(organization_id, tx)
        if owners <= 1:
            logger.warning(f"Rejected change to last owner of {organization_id}")
            raise InvariantViolationError(
                "LAST_OWNER", "An organization must keep at least one active owner"
            )

    def _invalidate(self, user_id: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_user(user_id)

    @staticmethod
    def _format_grant(grant: Any) -> PermissionGrantResponse:
        return PermissionGrantResponse(
            id=grant.id,
            org_member_id=grant.orgMemberId,
            permission=OrgPermission(grant.permission),
            granted_by=getattr(grant, "grantedBy", None),
        )
