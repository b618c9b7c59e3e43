"""
Tests for project access resolution across team memberships.
"""

from types import SimpleNamespace

import pytest

from tests.helpers.fake_prisma import FakePrisma
from tests.helpers.seeding import seed_org, seed_org_member, seed_workspace
from workhub.core.cache import AccessCache
from workhub.domains.projects.models import ProjectRoleTemplate, role_template
from workhub.domains.projects.service import (
    ProjectAccessResolver,
    assert_project_access,
    has_project_permission,
)
from workhub.shared.exceptions import (
    MissingPermissionError,
    NotAMemberError,
    ResourceNotFoundError,
)
from workhub.shared.permissions.models import (
    PROJECT_ROLE_TEMPLATE_PERMISSIONS,
    ProjectAccess,
    ProjectRouteKey,
)

USER_ID = "user-1"
PROJECT_ID = "project-1"


@pytest.fixture
def project_db(fake_db: FakePrisma) -> FakePrisma:
    """Workspace ws-1 holding project-1 with two teams and three roles."""
    seed_workspace(fake_db, "ws-1")
    fake_db.project.add(id=PROJECT_ID, workspaceId="ws-1", name="Launch")
    fake_db.projectteam.add(id="team-a", projectId=PROJECT_ID, name="Design")
    fake_db.projectteam.add(id="team-b", projectId=PROJECT_ID, name="Backend")
    fake_db.projectrole.add(
        id="role-viewer", projectId=PROJECT_ID, name="Viewer", template="VIEWER"
    )
    fake_db.projectrole.add(
        id="role-release",
        projectId=PROJECT_ID,
        name="Release manager",
        permissions=["sprint.start", "sprint.complete"],
    )
    fake_db.projectrole.add(
        id="role-lead", projectId=PROJECT_ID, name="Lead", template="ADMIN"
    )
    return fake_db


@pytest.fixture
def resolver(project_db: FakePrisma) -> ProjectAccessResolver:
    return ProjectAccessResolver(project_db)


def add_row(db: FakePrisma, role_id: str, team_id: str | None = None) -> SimpleNamespace:
    return db.projectmember.add(
        projectId=PROJECT_ID, userId=USER_ID, roleId=role_id, teamId=team_id
    )


class TestProjectAccessResolver:
    @pytest.mark.asyncio
    async def test_unknown_project(self, fake_db: FakePrisma) -> None:
        access = await ProjectAccessResolver(fake_db).resolve(USER_ID, "nope")
        assert access.project_exists is False
        assert access.has_access is False
        assert access.permissions == []

    @pytest.mark.asyncio
    async def test_outsider(self, resolver: ProjectAccessResolver) -> None:
        access = await resolver.resolve(USER_ID, PROJECT_ID)
        assert access.has_access is False
        assert access.workspace_id == "ws-1"

    @pytest.mark.asyncio
    async def test_viewer(self, resolver: ProjectAccessResolver, project_db: FakePrisma) -> None:
        add_row(project_db, "role-viewer", "team-a")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.has_access
        assert not access.is_admin
        assert set(access.permissions) == {
            p.value for p in PROJECT_ROLE_TEMPLATE_PERMISSIONS[ProjectRoleTemplate.VIEWER]
        }
        assert ProjectRouteKey.PROJECT_BOARD in access.allowed_route_keys
        assert ProjectRouteKey.PROJECT_SETTINGS not in access.allowed_route_keys
        assert access.roles[0].team_name == "Design"

    @pytest.mark.asyncio
    async def test_union_across_teams(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        add_row(project_db, "role-viewer", "team-a")
        add_row(project_db, "role-release", "team-b")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert "board.view" in access.permissions
        assert "sprint.start" in access.permissions
        assert {role.team_id for role in access.roles} == {"team-a", "team-b"}
        assert access.permissions == sorted(access.permissions)

    @pytest.mark.asyncio
    async def test_leaving_a_team_drops_its_permissions(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        add_row(project_db, "role-viewer", "team-a")
        release_row = add_row(project_db, "role-release", "team-b")
        await project_db.projectmember.delete(where={"id": release_row.id})

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert "sprint.start" not in access.permissions
        assert "board.view" in access.permissions

    @pytest.mark.asyncio
    async def test_admin_template(self, resolver: ProjectAccessResolver, project_db: FakePrisma) -> None:
        add_row(project_db, "role-lead")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.is_admin
        assert not access.is_owner
        assert not access.inherited_from_workspace
        assert access.allowed_route_keys == list(ProjectRouteKey)

    @pytest.mark.asyncio
    async def test_role_from_other_project_ignored(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        project_db.projectrole.add(id="role-foreign", projectId="project-2", name="Owner")
        add_row(project_db, "role-foreign")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.has_access is False
        assert access.is_admin is False

    @pytest.mark.asyncio
    async def test_role_named_admin_without_template_is_custom(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        """A role's display name never promotes it to a template."""
        project_db.projectrole.add(
            id="role-named-admin", projectId=PROJECT_ID, name="Admin", permissions=["project.view"]
        )
        add_row(project_db, "role-named-admin")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.has_access
        assert access.is_admin is False
        assert access.permissions == ["project.view"]


class TestWorkspaceAdminOverride:
    """An ACTIVE OWNER or ADMIN of the workspace is always a project admin."""

    @pytest.mark.parametrize("role", ["OWNER", "ADMIN"])
    @pytest.mark.asyncio
    async def test_override_without_project_rows(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma, role: str
    ) -> None:
        project_db.workspacemember.add(workspaceId="ws-1", userId=USER_ID, role=role)

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.has_access
        assert access.is_admin
        assert access.inherited_from_workspace
        assert access.roles == []
        assert access.allowed_route_keys == list(ProjectRouteKey)

    @pytest.mark.asyncio
    async def test_override_on_top_of_viewer_role(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        project_db.workspacemember.add(workspaceId="ws-1", userId=USER_ID, role="ADMIN")
        add_row(project_db, "role-viewer", "team-a")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.is_admin
        assert access.inherited_from_workspace
        assert has_project_permission(access, "task.delete")

    @pytest.mark.asyncio
    async def test_workspace_member_gets_no_override(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        project_db.workspacemember.add(workspaceId="ws-1", userId=USER_ID, role="MEMBER")
        access = await resolver.resolve(USER_ID, PROJECT_ID)
        assert access.has_access is False

    @pytest.mark.asyncio
    async def test_removed_workspace_admin_gets_no_override(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        project_db.workspacemember.add(
            workspaceId="ws-1", userId=USER_ID, role="ADMIN", status="DELETED"
        )
        access = await resolver.resolve(USER_ID, PROJECT_ID)
        assert access.is_admin is False

    @pytest.mark.asyncio
    async def test_org_owner_without_workspace_or_project_rows(self, fake_db: FakePrisma) -> None:
        """An organization owner is never locked out of a project in their organization."""
        seed_org(fake_db, "org-1")
        seed_org_member(fake_db, "org-1", USER_ID, role="OWNER")
        seed_workspace(fake_db, "ws-org", org_id="org-1")
        fake_db.project.add(id="project-org", workspaceId="ws-org", name="Roadmap")

        access = await ProjectAccessResolver(fake_db).resolve(USER_ID, "project-org")

        assert access.has_access
        assert access.is_admin
        assert access.inherited_from_workspace
        assert access.allowed_route_keys == list(ProjectRouteKey)

    @pytest.mark.parametrize("role,status", [("ADMIN", "ACTIVE"), ("OWNER", "PENDING")])
    @pytest.mark.asyncio
    async def test_org_admin_or_pending_owner_gets_no_override(
        self, fake_db: FakePrisma, role: str, status: str
    ) -> None:
        seed_org(fake_db, "org-1")
        seed_org_member(fake_db, "org-1", USER_ID, role=role, status=status)
        seed_workspace(fake_db, "ws-org", org_id="org-1")
        fake_db.project.add(id="project-org", workspaceId="ws-org", name="Roadmap")

        access = await ProjectAccessResolver(fake_db).resolve(USER_ID, "project-org")

        assert access.has_access is False

    @pytest.mark.asyncio
    async def test_project_admin_is_not_inherited(
        self, resolver: ProjectAccessResolver, project_db: FakePrisma
    ) -> None:
        project_db.workspacemember.add(workspaceId="ws-1", userId=USER_ID, role="OWNER")
        add_row(project_db, "role-lead")

        access = await resolver.resolve(USER_ID, PROJECT_ID)

        assert access.is_admin
        assert access.inherited_from_workspace is False


class TestProjectResolverCache:
    @pytest.mark.asyncio
    async def test_cached_until_invalidated(
        self, project_db: FakePrisma, cache: AccessCache
    ) -> None:
        resolver = ProjectAccessResolver(project_db, cache)
        assert not (await resolver.resolve(USER_ID, PROJECT_ID)).has_access

        add_row(project_db, "role-viewer")
        assert not (await resolver.resolve(USER_ID, PROJECT_ID)).has_access

        cache.invalidate_user(USER_ID)
        assert (await resolver.resolve(USER_ID, PROJECT_ID)).has_access


class TestProjectPermissionHelpers:
    def test_has_project_permission(self, viewer_project_access: ProjectAccess) -> None:
        assert has_project_permission(viewer_project_access, "board.view")
        assert not has_project_permission(viewer_project_access, "task.delete")

    def test_admin_has_everything(self, admin_project_access: ProjectAccess) -> None:
        assert has_project_permission(admin_project_access, "role.delete")

    def test_no_access_has_nothing(self, no_project_access: ProjectAccess) -> None:
        assert not has_project_permission(no_project_access, "project.view")

    def test_assert_project_access(
        self,
        viewer_project_access: ProjectAccess,
        no_project_access: ProjectAccess,
    ) -> None:
        assert assert_project_access(viewer_project_access, "board.view") is viewer_project_access
        with pytest.raises(MissingPermissionError):
            assert_project_access(viewer_project_access, "task.delete")
        with pytest.raises(NotAMemberError):
            assert_project_access(no_project_access)

    def test_assert_unknown_project(self) -> None:
        missing = ProjectAccess(project_id="missing", project_exists=False)
        with pytest.raises(ResourceNotFoundError):
            assert_project_access(missing)


class TestRoleTemplate:
    @pytest.mark.parametrize(
        "template,name,expected",
        [
            ("MEMBER", "Contributor", ProjectRoleTemplate.MEMBER),
            ("viewer", "Read only", ProjectRoleTemplate.VIEWER),
            (None, "Viewer", None),
            (None, "Admin", None),
            (None, "Release manager", None),
            ("CUSTOM", "Owner", None),
        ],
    )
    def test_role_template(
        self, template: str | None, name: str, expected: ProjectRoleTemplate | None
    ) -> None:
        assert role_template(SimpleNamespace(template=template, name=name)) == expected
