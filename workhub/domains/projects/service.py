# workhub/domains/projects/service.py
import logging
from typing import Any, Dict, List, Optional, Set

from workhub.core.cache import AccessCache
from workhub.core.database import PrismaClient
from workhub.domains.organizations.service import is_active_org_owner
from workhub.domains.workspaces.models import WorkspaceMemberStatus, WorkspaceRole
from workhub.shared.exceptions import (
    MissingPermissionError,
    NotAMemberError,
    ResourceNotFoundError,
)
from workhub.shared.permissions.models import (
    PROJECT_ROLE_TEMPLATE_PERMISSIONS,
    ProjectRouteKey,
)
from workhub.shared.permissions.services import get_project_route_keys_for_permissions

from .models import (
    ProjectAccess,
    ProjectRoleAssignment,
    ProjectRoleTemplate,
    role_template,
)

logger = logging.getLogger(__name__)

ADMIN_TEMPLATES = frozenset({ProjectRoleTemplate.OWNER, ProjectRoleTemplate.ADMIN})
WORKSPACE_ADMIN_ROLES = [WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value]


def has_project_permission(access: ProjectAccess, permission: str) -> bool:
    """Admins implicitly hold every project permission."""
    if not access.has_access:
        return False
    return access.is_admin or permission in access.permissions


def assert_project_access(
    access: ProjectAccess, permission: Optional[str] = None
) -> ProjectAccess:
    """
    Raise unless the access grants entry to the project (and the permission, if given).

    Raises:
        ResourceNotFoundError: If the project does not exist
        NotAMemberError: If the user has no access to the project
        MissingPermissionError: If the user lacks the permission
    """
    if not access.project_exists:
        raise ResourceNotFoundError("Project")
    if not access.has_access:
        raise NotAMemberError("Not a member of this project")
    if permission is not None and not has_project_permission(access, permission):
        raise MissingPermissionError(permission)
    return access


class ProjectAccessResolver:
    """
    Computes project-scoped access by merging every team membership a user
    holds in a project. An ACTIVE OWNER or ADMIN of the project's workspace,
    and an ACTIVE OWNER of the workspace's organization, is always a project
    admin, even with no project rows at all.
    """

    def __init__(self, db: PrismaClient, cache: Optional[AccessCache] = None):
        self.db = db
        self.cache = cache

    async def resolve(self, user_id: str, project_id: str) -> ProjectAccess:
        cache_key = ("project", user_id, project_id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        access = await self._resolve(user_id, project_id)

        if self.cache is not None:
            self.cache.set(cache_key, access)
        return access

    async def _resolve(self, user_id: str, project_id: str) -> ProjectAccess:
        project = await self.db.project.find_unique(where={"id": project_id})
        if project is None:
            return ProjectAccess(project_id=project_id, project_exists=False)

        rows = await self.db.projectmember.find_many(
            where={"userId": user_id, "projectId": project_id}
        )
        roles = await self._roles_by_id(project_id, {row.roleId for row in rows})
        teams = await self._teams_by_id({row.teamId for row in rows if row.teamId})

        permissions: Set[str] = set()
        assignments: List[ProjectRoleAssignment] = []
        templates: Set[ProjectRoleTemplate] = set()
        for row in rows:
            role = roles.get(row.roleId)
            if role is None:
                logger.debug(f"Project member row {row.id} references missing role {row.roleId}")
                continue

            template = role_template(role)
            if template is not None:
                templates.add(template)
                permissions |= {p.value for p in PROJECT_ROLE_TEMPLATE_PERMISSIONS[template]}
            permissions |= set(role.permissions or [])

            team = teams.get(row.teamId) if row.teamId else None
            assignments.append(
                ProjectRoleAssignment(
                    role_id=role.id,
                    role_name=role.name,
                    team_id=row.teamId,
                    team_name=team.name if team else None,
                )
            )

        workspace_admin = await self._is_workspace_admin(user_id, project.workspaceId)
        admin_by_role = bool(templates & ADMIN_TEMPLATES)
        is_admin = admin_by_role or workspace_admin

        if is_admin:
            route_keys = set(ProjectRouteKey)
        else:
            route_keys = get_project_route_keys_for_permissions(permissions)

        return ProjectAccess(
            project_id=project_id,
            workspace_id=project.workspaceId,
            has_access=bool(assignments) or workspace_admin,
            is_admin=is_admin,
            is_owner=ProjectRoleTemplate.OWNER in templates,
            inherited_from_workspace=workspace_admin and not admin_by_role,
            permissions=sorted(permissions),
            roles=assignments,
            allowed_route_keys=[key for key in ProjectRouteKey if key in route_keys],
        )

    async def _roles_by_id(self, project_id: str, role_ids: Set[str]) -> Dict[str, Any]:
        if not role_ids:
            return {}
        roles = await self.db.projectrole.find_many(
            where={"id": {"in": sorted(role_ids)}, "projectId": project_id}
        )
        return {role.id: role for role in roles}

    async def _teams_by_id(self, team_ids: Set[str]) -> Dict[str, Any]:
        if not team_ids:
            return {}
        teams = await self.db.projectteam.find_many(where={"id": {"in": sorted(team_ids)}})
        return {team.id: team for team in teams}

    async def _is_workspace_admin(self, user_id: str, workspace_id: Optional[str]) -> bool:
        if not workspace_id:
            return False
        membership = await self.db.workspacemember.find_first(
            where={
                "workspaceId": workspace_id,
                "userId": user_id,
                "status": WorkspaceMemberStatus.ACTIVE.value,
                "role": {"in": WORKSPACE_ADMIN_ROLES},
            }
        )
        if membership is not None:
            return True

        workspace = await self.db.workspace.find_unique(where={"id": workspace_id})
        if workspace is None or not workspace.organizationId:
            return False
        return await is_active_org_owner(self.db, workspace.organizationId, user_id)
