# workhub/domains/organizations/models.py
from typing import Any, Optional

from pydantic import BaseModel

from workhub.shared.permissions.models import (
    OrganizationRole,
    OrgMemberStatus,
    OrgPermission,
)


class OrganizationMemberResponse(BaseModel):
    id: str
    user_id: str
    organization_id: str
    role: OrganizationRole
    status: OrgMemberStatus

    @classmethod
    def from_prisma(cls, member: Any) -> "OrganizationMemberResponse":
        return cls(
            id=member.id,
            user_id=member.userId,
            organization_id=member.organizationId,
            role=OrganizationRole(member.role),
            status=OrgMemberStatus(member.status),
        )


class UpdateMemberRoleRequest(BaseModel):
    role: OrganizationRole


class PermissionGrantRequest(BaseModel):
    permission: OrgPermission


class PermissionGrantResponse(BaseModel):
    id: str
    org_member_id: str
    permission: OrgPermission
    granted_by: Optional[str]


class EligibilityResult(BaseModel):
    """Outcome of a pre-mutation check such as leaving an org or deleting an account."""

    allowed: bool
    reason: Optional[str] = None
