from typing import Awaitable, Callable, Optional

from fastapi import Depends

from workhub.core.cache import AccessCache, get_access_cache
from workhub.core.database import PrismaClient, get_db
from workhub.domains.auth.dependencies import get_current_user
from workhub.domains.auth.models import User
from workhub.domains.organizations.service import OrgAccessResolver
from workhub.domains.projects.service import ProjectAccessResolver

from .guards import enforce_access
from .models import OrgPermission, ProjectAccess, ProjectPermission, UserAccess


def require_org_permission(
    permission: OrgPermission,
) -> Callable[..., Awaitable[UserAccess]]:
    """
    Dependency factory for organization permission checks.

    Creates a dependency that resolves the current user's access to the
    organization in the path and validates it holds the permission.

    Args:
        permission: The permission required to access the endpoint

    Returns:
        Async dependency function that validates permission and returns the access
    """

    async def check_permission(
        org_id: str,
        workspace_id: Optional[str] = None,
        user: User = Depends(get_current_user),
        db: PrismaClient = Depends(get_db),
        cache: AccessCache = Depends(get_access_cache),
    ) -> UserAccess:
        """
        Validate user has required permission for organization.

        Args:
            org_id: Organization ID from path parameter
            workspace_id: Optional workspace context from the query string
            user: Current user
            db: Database connection
            cache: Access cache

        Returns:
            UserAccess of the current user if authorized

        Raises:
            NotAMemberError: If the user is not an active member
            MissingPermissionError: If the user lacks the permission
        """
        access = await OrgAccessResolver(db, cache).resolve(user.id, org_id, workspace_id)
        enforce_access(access, permission.value)
        return access

    return check_permission


def require_project_permission(
    permission: ProjectPermission,
) -> Callable[..., Awaitable[ProjectAccess]]:
    """Dependency factory for project permission checks on `{project_id}` routes."""

    async def check_permission(
        project_id: str,
        user: User = Depends(get_current_user),
        db: PrismaClient = Depends(get_db),
        cache: AccessCache = Depends(get_access_cache),
    ) -> ProjectAccess:
        access = await ProjectAccessResolver(db, cache).resolve(user.id, project_id)
        enforce_access(access, permission.value)
        return access

    return check_permission
