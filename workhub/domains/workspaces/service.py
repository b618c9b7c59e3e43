# workhub/domains/workspaces/service.py
import logging
from typing import Any, Optional, Set

from workhub.core.cache import AccessCache
from workhub.core.database import PrismaClient
from workhub.domains.auth.models import AccountType, User
from workhub.domains.organizations.service import OrgAccessResolver, is_active_org_owner
from workhub.shared.exceptions import (
    InvalidDataError,
    InvariantViolationError,
    MissingPermissionError,
    ResourceNotFoundError,
)
from workhub.shared.permissions.models import OrgPermission
from workhub.shared.permissions.services import has_org_permission

from .models import (
    ActorRole,
    MembershipAction,
    WorkspaceCreateRequest,
    WorkspaceMemberResponse,
    WorkspaceMemberStatus,
    WorkspaceResponse,
    WorkspaceRole,
    WorkspaceValidationResult,
    can_transition,
    get_transition,
)

logger = logging.getLogger(__name__)

PERSONAL_SINGLE_WORKSPACE = "PERSONAL_SINGLE_WORKSPACE"
MISSING_WORKSPACE_CREATE = "MISSING_WORKSPACE_CREATE"
ACCOUNT_TYPE_REQUIRED = "ACCOUNT_TYPE_REQUIRED"
ORGANIZATION_REQUIRED = "ORGANIZATION_REQUIRED"


class WorkspaceService:
    """Workspace creation and the soft-delete membership ledger."""

    def __init__(self, db: PrismaClient, cache: Optional[AccessCache] = None):
        self.db = db
        self.cache = cache

    async def validate_workspace_creation(
        self, user: User, organization_id: Optional[str] = None
    ) -> WorkspaceValidationResult:
        """
        Check whether a user may create a workspace.

        PERSONAL accounts own exactly one workspace. ORG accounts need
        org.workspace.create (or ownership) in the target organization.

        Args:
            user: The user creating the workspace
            organization_id: Target organization; defaults to the user's primary one

        Returns:
            WorkspaceValidationResult with a reason and code when not allowed
        """
        account_type = user.prefs.account_type

        if account_type == AccountType.PERSONAL:
            if organization_id:
                return WorkspaceValidationResult(
                    allowed=False,
                    reason="Personal accounts cannot create organization workspaces",
                    code=ORGANIZATION_REQUIRED,
                )
            owned = await self.db.workspacemember.count(
                where={
                    "userId": user.id,
                    "role": WorkspaceRole.OWNER.value,
                    "status": WorkspaceMemberStatus.ACTIVE.value,
                }
            )
            if owned >= 1:
                return WorkspaceValidationResult(
                    allowed=False,
                    reason="Personal accounts are limited to one workspace",
                    code=PERSONAL_SINGLE_WORKSPACE,
                )
            return WorkspaceValidationResult(allowed=True)

        if account_type == AccountType.ORG:
            organization_id = organization_id or user.prefs.primary_organization_id
            if not organization_id:
                return WorkspaceValidationResult(
                    allowed=False,
                    reason="An organization is required to create a workspace",
                    code=ORGANIZATION_REQUIRED,
                )
            access = await OrgAccessResolver(self.db, self.cache).resolve(
                user.id, organization_id
            )
            if not has_org_permission(access, OrgPermission.WORKSPACE_CREATE):
                return WorkspaceValidationResult(
                    allowed=False,
                    reason="You do not have permission to create workspaces",
                    code=MISSING_WORKSPACE_CREATE,
                )
            return WorkspaceValidationResult(allowed=True)

        return WorkspaceValidationResult(
            allowed=False,
            reason="Choose an account type before creating a workspace",
            code=ACCOUNT_TYPE_REQUIRED,
        )

    async def create_workspace(
        self, user: User, request: WorkspaceCreateRequest
    ) -> WorkspaceResponse:
        """
        Create a workspace and make the creator its owner.

        Raises:
            InvariantViolationError: If a PERSONAL account already owns a workspace
            MissingPermissionError: If the user may not create org workspaces
            InvalidDataError: For any other rejected creation
        """
        validation = await self.validate_workspace_creation(user, request.organization_id)
        if not validation.allowed:
            logger.info(f"Workspace creation rejected for {user.id}: {validation.code}")
            if validation.code == PERSONAL_SINGLE_WORKSPACE:
                raise InvariantViolationError(
                    PERSONAL_SINGLE_WORKSPACE, validation.reason or ""
                )
            if validation.code == MISSING_WORKSPACE_CREATE:
                raise MissingPermissionError(OrgPermission.WORKSPACE_CREATE.value)
            raise InvalidDataError(validation.reason or "Workspace creation not allowed")

        organization_id = None
        if user.prefs.account_type == AccountType.ORG:
            organization_id = request.organization_id or user.prefs.primary_organization_id

        existing = await self.db.workspace.count(where={"organizationId": organization_id})
        workspace = await self.db.workspace.create(
            data={
                "name": request.name,
                "organizationId": organization_id,
                "isDefault": existing == 0,
            }
        )
        await self.db.workspacemember.create(
            data={
                "workspaceId": workspace.id,
                "userId": user.id,
                "role": WorkspaceRole.OWNER.value,
                "status": WorkspaceMemberStatus.ACTIVE.value,
            }
        )
        logger.info(f"Created workspace {workspace.id} for {user.id}")
        self._invalidate(user.id)
        return WorkspaceResponse(
            id=workspace.id,
            name=workspace.name,
            organization_id=workspace.organizationId,
            is_default=workspace.isDefault,
        )

    async def add_member(
        self,
        workspace_id: str,
        user_id: str,
        role: WorkspaceRole,
        actor_id: str,
    ) -> WorkspaceMemberResponse:
        """
        Add a member, reactivating a DELETED membership in place.

        A previously removed member gets their original row back with
        status ACTIVE, so the membership id never changes.

        Raises:
            ResourceNotFoundError: If the workspace does not exist
            MissingPermissionError: If the actor may not add members
        """
        workspace = await self._get_workspace(workspace_id)
        actor_roles = await self._actor_roles(workspace, actor_id, user_id)
        if not actor_roles & {ActorRole.OWNER, ActorRole.ADMIN}:
            raise MissingPermissionError("workspace.members.manage")
        if role == WorkspaceRole.OWNER and ActorRole.OWNER not in actor_roles:
            raise InvariantViolationError(
                "OWNER_GRANT_REQUIRES_OWNER", "Only an owner can add another owner"
            )

        existing = await self.db.workspacemember.find_first(
            where={"workspaceId": workspace_id, "userId": user_id}
        )
        if existing is None:
            member = await self.db.workspacemember.create(
                data={
                    "workspaceId": workspace_id,
                    "userId": user_id,
                    "role": role.value,
                    "status": WorkspaceMemberStatus.ACTIVE.value,
                }
            )
        elif existing.status == WorkspaceMemberStatus.ACTIVE.value:
            return WorkspaceMemberResponse.from_prisma(existing)
        else:
            transition = get_transition(
                WorkspaceMemberStatus(existing.status), MembershipAction.REACTIVATE
            )
            member = await self.db.workspacemember.update(
                where={"id": existing.id},
                data={"status": transition.to_status.value, "role": role.value},
            )
            logger.info(f"Reactivated membership {existing.id} in workspace {workspace_id}")

        self._invalidate(user_id)
        return WorkspaceMemberResponse.from_prisma(member)

    async def remove_member(
        self, workspace_id: str, user_id: str, actor_id: str
    ) -> WorkspaceMemberResponse:
        """
        Soft-delete a membership (ACTIVE -> DELETED).

        Raises:
            ResourceNotFoundError: If the workspace or membership does not exist
            InvalidStateTransitionError: If the membership is already DELETED
            MissingPermissionError: If the actor may not remove the member
        """
        workspace = await self._get_workspace(workspace_id)
        member = await self.db.workspacemember.find_first(
            where={"workspaceId": workspace_id, "userId": user_id}
        )
        if member is None:
            raise ResourceNotFoundError("Workspace member")

        status = WorkspaceMemberStatus(member.status)
        transition = get_transition(status, MembershipAction.REMOVE)
        actor_roles = await self._actor_roles(workspace, actor_id, user_id)
        if not can_transition(status, MembershipAction.REMOVE, actor_roles):
            raise MissingPermissionError("workspace.members.manage")

        updated = await self.db.workspacemember.update(
            where={"id": member.id}, data={"status": transition.to_status.value}
        )
        logger.info(f"Removed {user_id} from workspace {workspace_id}")
        self._invalidate(user_id)
        return WorkspaceMemberResponse.from_prisma(updated)

    async def _get_workspace(self, workspace_id: str) -> Any:
        workspace = await self.db.workspace.find_unique(where={"id": workspace_id})
        if workspace is None:
            raise ResourceNotFoundError("Workspace")
        return workspace

    async def _actor_roles(
        self, workspace: Any, actor_id: str, target_user_id: str
    ) -> Set[ActorRole]:
        """Every capacity the actor holds for the workspace."""
        roles: Set[ActorRole] = set()
        if actor_id == target_user_id:
            roles.add(ActorRole.SELF)

        membership = await self.db.workspacemember.find_first(
            where={
                "workspaceId": workspace.id,
                "userId": actor_id,
                "status": WorkspaceMemberStatus.ACTIVE.value,
            }
        )
        if membership is not None and membership.role == WorkspaceRole.OWNER.value:
            roles.add(ActorRole.OWNER)
        elif membership is not None and membership.role == WorkspaceRole.ADMIN.value:
            roles.add(ActorRole.ADMIN)

        if workspace.organizationId and await is_active_org_owner(
            self.db, workspace.organizationId, actor_id
        ):
            roles.add(ActorRole.OWNER)
        return roles

    def _invalidate(self, user_id: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_user(user_id)
