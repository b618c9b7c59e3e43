# workhub/domains/organizations/routes.py
from typing import Optional

from fastapi import APIRouter, Depends, status

from workhub.core.cache import AccessCache, get_access_cache
from workhub.core.database import PrismaClient, get_db
from workhub.domains.auth.dependencies import get_current_user
from workhub.domains.auth.models import User
from workhub.domains.organizations.models import (
    EligibilityResult,
    OrganizationMemberResponse,
    PermissionGrantRequest,
    PermissionGrantResponse,
    UpdateMemberRoleRequest,
)
from workhub.domains.organizations.service import (
    OrgAccessResolver,
    OrganizationMembershipService,
)
from workhub.shared.permissions import OrgPermission, UserAccess
from workhub.shared.permissions.dependencies import require_org_permission

router = APIRouter(prefix="/organizations", tags=["Organizations"])


@router.get(
    "/{org_id}/access",
    response_model=UserAccess,
    operation_id="getOrganizationAccess",
)
async def get_organization_access(
    org_id: str,
    workspace_id: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> UserAccess:
    """Resolved access of the current user; non-members get base access."""
    resolver = OrgAccessResolver(db, cache)
    return await resolver.resolve(user.id, org_id, workspace_id)


@router.get(
    "/{org_id}/leave-eligibility",
    response_model=EligibilityResult,
    operation_id="getLeaveEligibility",
)
async def get_leave_eligibility(
    org_id: str,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
) -> EligibilityResult:
    service = OrganizationMembershipService(db)
    return await service.can_leave_organization(org_id, user.id)


@router.patch(
    "/{org_id}/members/{user_id}",
    response_model=OrganizationMemberResponse,
    operation_id="updateOrganizationMemberRole",
)
async def update_member_role(
    org_id: str,
    user_id: str,
    request: UpdateMemberRoleRequest,
    actor: UserAccess = Depends(require_org_permission(OrgPermission.MEMBERS_MANAGE)),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> OrganizationMemberResponse:
    service = OrganizationMembershipService(db, cache)
    return await service.update_member_role(org_id, user_id, request.role, actor)


@router.delete(
    "/{org_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="removeOrganizationMember",
)
async def remove_member(
    org_id: str,
    user_id: str,
    actor: UserAccess = Depends(require_org_permission(OrgPermission.MEMBERS_MANAGE)),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> None:
    service = OrganizationMembershipService(db, cache)
    await service.remove_member(org_id, user_id, actor)


@router.post(
    "/{org_id}/members/{user_id}/permissions",
    response_model=PermissionGrantResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="grantOrganizationPermission",
)
async def grant_permission(
    org_id: str,
    user_id: str,
    request: PermissionGrantRequest,
    actor: UserAccess = Depends(require_org_permission(OrgPermission.MEMBERS_MANAGE)),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> PermissionGrantResponse:
    service = OrganizationMembershipService(db, cache)
    return await service.grant_permission(org_id, user_id, request.permission, actor)


@router.delete(
    "/{org_id}/members/{user_id}/permissions",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="revokeOrganizationPermission",
)
async def revoke_permission(
    org_id: str,
    user_id: str,
    permission: OrgPermission,
    actor: UserAccess = Depends(require_org_permission(OrgPermission.MEMBERS_MANAGE)),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> None:
    service = OrganizationMembershipService(db, cache)
    await service.revoke_permission(org_id, user_id, permission, actor)
