"""
Test fixtures for resolved organization and project access.
"""

import pytest

from workhub.domains.organizations.service import (
    build_base_access,
    build_member_access,
    build_owner_access,
)
from workhub.shared.permissions.models import (
    ROLE_PERMISSIONS,
    OrganizationRole,
    ProjectAccess,
    ProjectPermission,
    ProjectRouteKey,
    UserAccess,
)


@pytest.fixture
def owner_access(test_organization_id: str) -> UserAccess:
    """Resolved access of an ACTIVE OWNER with a workspace in context."""
    return build_owner_access(test_organization_id, "owner-member-id", "ws-1")


@pytest.fixture
def admin_access(test_organization_id: str) -> UserAccess:
    """Resolved access of an ADMIN holding only the role defaults."""
    return build_member_access(
        test_organization_id,
        "admin-member-id",
        OrganizationRole.ADMIN,
        set(ROLE_PERMISSIONS[OrganizationRole.ADMIN]),
        "ws-1",
    )


@pytest.fixture
def member_access(test_organization_id: str) -> UserAccess:
    """Resolved access of a plain MEMBER with workspace ws-1 in context."""
    return build_member_access(
        test_organization_id, "member-member-id", OrganizationRole.MEMBER, set(), "ws-1"
    )


@pytest.fixture
def member_access_no_workspace(test_organization_id: str) -> UserAccess:
    """Plain MEMBER without a workspace in context."""
    return build_member_access(
        test_organization_id, "member-member-id", OrganizationRole.MEMBER, set()
    )


@pytest.fixture
def base_access(test_organization_id: str) -> UserAccess:
    """Access of an authenticated non-member."""
    return build_base_access(test_organization_id)


@pytest.fixture
def viewer_project_access() -> ProjectAccess:
    """Project access of a Viewer: read-only permissions, no admin."""
    return ProjectAccess(
        project_id="project-1",
        workspace_id="ws-1",
        has_access=True,
        permissions=[
            ProjectPermission.BOARD_VIEW.value,
            ProjectPermission.PROJECT_VIEW.value,
            ProjectPermission.REPORTS_VIEW.value,
            ProjectPermission.SPRINT_VIEW.value,
        ],
        allowed_route_keys=[
            ProjectRouteKey.PROJECT_DASHBOARD,
            ProjectRouteKey.PROJECT_TASKS,
            ProjectRouteKey.PROJECT_SPRINTS,
            ProjectRouteKey.PROJECT_BOARD,
            ProjectRouteKey.PROJECT_REPORTS,
        ],
    )


@pytest.fixture
def admin_project_access() -> ProjectAccess:
    """Project access of a project admin."""
    return ProjectAccess(
        project_id="project-1",
        workspace_id="ws-1",
        has_access=True,
        is_admin=True,
        allowed_route_keys=list(ProjectRouteKey),
    )


@pytest.fixture
def no_project_access() -> ProjectAccess:
    return ProjectAccess(project_id="project-1")
