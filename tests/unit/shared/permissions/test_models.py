"""
Tests for the permission catalog and its lookup tables.
"""

import pytest
from pydantic import ValidationError

from tests.utils.permission_testing import PermissionTestHelpers
from workhub.shared.permissions.models import (
    OWNER_RESERVED_PERMISSIONS,
    PERMISSION_TO_ROUTE_KEYS,
    PROJECT_PERMISSION_TO_ROUTE_KEYS,
    PROJECT_ROLE_TEMPLATE_PERMISSIONS,
    PROJECT_ROUTE_TO_REQUIRED_PERMISSIONS,
    ROLE_PERMISSIONS,
    ROUTE_KEY_METADATA,
    ROUTE_KEY_TO_PATH,
    ROUTE_TO_REQUIRED_PERMISSIONS,
    WORKSPACE_ID_PLACEHOLDER,
    WORKSPACE_MEMBER_ROUTES,
    AppRouteKey,
    OrganizationRole,
    OrgPermission,
    ProjectPermission,
    ProjectRoleTemplate,
    UserAccess,
    invert_route_table,
)


class TestLookupTableTotality:
    """Every enum member has an entry in each table keyed by it."""

    @pytest.mark.parametrize("role", list(OrganizationRole))
    def test_every_role_has_defaults(self, role: OrganizationRole) -> None:
        assert role in ROLE_PERMISSIONS

    @pytest.mark.parametrize("permission", list(OrgPermission))
    def test_every_permission_maps_to_routes(self, permission: OrgPermission) -> None:
        assert PERMISSION_TO_ROUTE_KEYS[permission]

    @pytest.mark.parametrize("route_key", list(AppRouteKey))
    def test_every_route_key_has_path_and_metadata(self, route_key: AppRouteKey) -> None:
        assert ROUTE_KEY_TO_PATH[route_key].startswith("/")
        assert ROUTE_KEY_METADATA[route_key].label

    def test_every_template_has_permissions(self) -> None:
        assert set(PROJECT_ROLE_TEMPLATE_PERMISSIONS) == set(ProjectRoleTemplate)


class TestRolePermissions:
    """Tests for the organization role defaults."""

    def test_owner_holds_everything(self) -> None:
        assert ROLE_PERMISSIONS[OrganizationRole.OWNER] == frozenset(OrgPermission)

    def test_member_holds_nothing_by_default(self) -> None:
        assert ROLE_PERMISSIONS[OrganizationRole.MEMBER] == frozenset()

    def test_roles_are_nested(self) -> None:
        """Each role's defaults include those of every less privileged role."""
        hierarchy = PermissionTestHelpers.role_hierarchy()
        for lower, higher in zip(hierarchy, hierarchy[1:]):
            assert ROLE_PERMISSIONS[lower] <= ROLE_PERMISSIONS[higher]

    @pytest.mark.parametrize("role", PermissionTestHelpers.get_non_owner_roles())
    def test_reserved_permissions_are_owner_only(self, role: OrganizationRole) -> None:
        assert not ROLE_PERMISSIONS[role] & OWNER_RESERVED_PERMISSIONS


class TestRouteTables:
    """The route -> permissions tables are exact inverses of the canonical tables."""

    def test_org_inverse_round_trips(self) -> None:
        for route_key, permissions in ROUTE_TO_REQUIRED_PERMISSIONS.items():
            for permission in permissions:
                assert route_key in PERMISSION_TO_ROUTE_KEYS[permission]
        for permission, route_keys in PERMISSION_TO_ROUTE_KEYS.items():
            for route_key in route_keys:
                assert permission in ROUTE_TO_REQUIRED_PERMISSIONS[route_key]

    def test_project_inverse_round_trips(self) -> None:
        for permission, route_keys in PROJECT_PERMISSION_TO_ROUTE_KEYS.items():
            for route_key in route_keys:
                assert permission in PROJECT_ROUTE_TO_REQUIRED_PERMISSIONS[route_key]

    def test_invert_route_table(self) -> None:
        inverted = invert_route_table({"a": frozenset({1, 2}), "b": frozenset({2})})
        assert inverted == {1: frozenset({"a"}), 2: frozenset({"a", "b"})}

    def test_billing_routes_accept_view_or_manage(self) -> None:
        assert ROUTE_TO_REQUIRED_PERMISSIONS[AppRouteKey.ORG_BILLING] == frozenset(
            {OrgPermission.BILLING_VIEW, OrgPermission.BILLING_MANAGE}
        )

    def test_workspace_member_routes_are_templated(self) -> None:
        assert WORKSPACE_MEMBER_ROUTES
        for route_key in WORKSPACE_MEMBER_ROUTES:
            assert WORKSPACE_ID_PLACEHOLDER in ROUTE_KEY_TO_PATH[route_key]


class TestProjectTemplates:
    def test_viewer_is_subset_of_member(self) -> None:
        assert (
            PROJECT_ROLE_TEMPLATE_PERMISSIONS[ProjectRoleTemplate.VIEWER]
            <= PROJECT_ROLE_TEMPLATE_PERMISSIONS[ProjectRoleTemplate.MEMBER]
        )

    def test_admin_templates_hold_everything(self) -> None:
        for template in (ProjectRoleTemplate.OWNER, ProjectRoleTemplate.ADMIN):
            assert PROJECT_ROLE_TEMPLATE_PERMISSIONS[template] == frozenset(ProjectPermission)


class TestUserAccess:
    def test_defaults_grant_nothing(self) -> None:
        access = UserAccess()
        assert access.is_owner is False
        assert access.permissions == []
        assert access.allowed_route_keys == []

    def test_is_immutable(self) -> None:
        access = UserAccess(organization_id="org-1")
        with pytest.raises(ValidationError):
            access.is_owner = True  # type: ignore[misc]
