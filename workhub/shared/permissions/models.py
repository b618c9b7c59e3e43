from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field


class OrganizationRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    MEMBER = "MEMBER"


class OrgMemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"


class OrgPermission(str, Enum):
    """
    Organization-scoped permission keys.

    Keys follow the pattern org.<category>.<action>. OWNER implicitly holds
    every key; every other role gets its role default plus explicit and
    department grants.
    """

    # Billing
    BILLING_VIEW = "org.billing.view"
    BILLING_MANAGE = "org.billing.manage"

    # Members
    MEMBERS_VIEW = "org.members.view"
    MEMBERS_MANAGE = "org.members.manage"

    # Settings
    SETTINGS_MANAGE = "org.settings.manage"

    # Audit & Compliance
    AUDIT_VIEW = "org.audit.view"
    COMPLIANCE_VIEW = "org.compliance.view"

    # Departments
    DEPARTMENTS_MANAGE = "org.departments.manage"

    # Security
    SECURITY_VIEW = "org.security.view"

    # Workspaces
    WORKSPACE_CREATE = "org.workspace.create"
    WORKSPACE_ASSIGN = "org.workspace.assign"

    # Permissions management
    PERMISSIONS_MANAGE = "org.permissions.manage"


class ProjectPermission(str, Enum):
    """Project-scoped permission strings stored on project roles."""

    PROJECT_VIEW = "project.view"
    PROJECT_SETTINGS_MANAGE = "project.settings.manage"

    TEAM_CREATE = "team.create"
    TEAM_MANAGE = "team.manage"

    MEMBER_INVITE = "member.invite"
    MEMBER_REMOVE = "member.remove"

    TASK_CREATE = "task.create"
    TASK_UPDATE = "task.update"
    TASK_DELETE = "task.delete"
    TASK_ASSIGN = "task.assign"

    SPRINT_VIEW = "sprint.view"
    SPRINT_CREATE = "sprint.create"
    SPRINT_UPDATE = "sprint.update"
    SPRINT_START = "sprint.start"
    SPRINT_COMPLETE = "sprint.complete"
    SPRINT_DELETE = "sprint.delete"

    BOARD_VIEW = "board.view"
    BOARD_MANAGE = "board.manage"

    COMMENT_CREATE = "comment.create"
    COMMENT_DELETE = "comment.delete"

    ROLE_CREATE = "role.create"
    ROLE_UPDATE = "role.update"
    ROLE_DELETE = "role.delete"

    REPORTS_VIEW = "reports.view"
    REPORTS_EXPORT = "reports.export"


class ProjectRoleTemplate(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class AppRouteKey(str, Enum):
    """Internal identifiers for navigable application screens."""

    # Organization routes (work without workspace)
    ORG_DASHBOARD = "ORG_DASHBOARD"
    ORG_MEMBERS = "ORG_MEMBERS"
    ORG_SETTINGS = "ORG_SETTINGS"
    ORG_BILLING = "ORG_BILLING"
    ORG_USAGE = "ORG_USAGE"
    ORG_AUDIT = "ORG_AUDIT"
    ORG_DEPARTMENTS = "ORG_DEPARTMENTS"
    ORG_SECURITY = "ORG_SECURITY"
    ORG_PERMISSIONS = "ORG_PERMISSIONS"

    # Workspace routes
    WORKSPACES = "WORKSPACES"
    WORKSPACE_CREATE = "WORKSPACE_CREATE"
    WORKSPACE_HOME = "WORKSPACE_HOME"
    WORKSPACE_TASKS = "WORKSPACE_TASKS"
    WORKSPACE_TEAMS = "WORKSPACE_TEAMS"
    WORKSPACE_PROGRAMS = "WORKSPACE_PROGRAMS"
    WORKSPACE_TIMELINE = "WORKSPACE_TIMELINE"
    WORKSPACE_SETTINGS = "WORKSPACE_SETTINGS"
    WORKSPACE_SPACES = "WORKSPACE_SPACES"
    WORKSPACE_PROJECTS = "WORKSPACE_PROJECTS"

    # Profile routes (always accessible to authenticated users)
    PROFILE = "PROFILE"
    PROFILE_ACCOUNT = "PROFILE_ACCOUNT"
    PROFILE_PASSWORD = "PROFILE_PASSWORD"

    # Welcome
    WELCOME = "WELCOME"


class ProjectRouteKey(str, Enum):
    PROJECT_DASHBOARD = "PROJECT_DASHBOARD"
    PROJECT_TASKS = "PROJECT_TASKS"
    PROJECT_SPRINTS = "PROJECT_SPRINTS"
    PROJECT_BOARD = "PROJECT_BOARD"
    PROJECT_MEMBERS = "PROJECT_MEMBERS"
    PROJECT_TEAMS = "PROJECT_TEAMS"
    PROJECT_ROLES = "PROJECT_ROLES"
    PROJECT_REPORTS = "PROJECT_REPORTS"
    PROJECT_SETTINGS = "PROJECT_SETTINGS"


class RouteCategory(str, Enum):
    ORG = "org"
    WORKSPACE = "workspace"
    PROFILE = "profile"
    SYSTEM = "system"


class RouteKeyMetadata(BaseModel):
    model_config = {"frozen": True}

    label: str
    description: str
    category: RouteCategory
    requires_workspace: bool


class OrgSettingsTab(BaseModel):
    model_config = {"frozen": True}

    tab: str
    route_key: AppRouteKey
    permission: OrgPermission


ROUTE_KEY_METADATA: Dict[AppRouteKey, RouteKeyMetadata] = {
    AppRouteKey.ORG_DASHBOARD: RouteKeyMetadata(
        label="Organization Dashboard",
        description="Organization overview and summary",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_MEMBERS: RouteKeyMetadata(
        label="Members",
        description="View and manage organization members",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_SETTINGS: RouteKeyMetadata(
        label="Organization Settings",
        description="Manage organization settings",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_BILLING: RouteKeyMetadata(
        label="Billing",
        description="View and manage billing",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_USAGE: RouteKeyMetadata(
        label="Usage",
        description="View organization usage metrics",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_AUDIT: RouteKeyMetadata(
        label="Audit Logs",
        description="View audit logs and activity",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_DEPARTMENTS: RouteKeyMetadata(
        label="Departments",
        description="Manage departments",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_SECURITY: RouteKeyMetadata(
        label="Security",
        description="View security settings",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.ORG_PERMISSIONS: RouteKeyMetadata(
        label="Permissions",
        description="Manage member permissions",
        category=RouteCategory.ORG,
        requires_workspace=False,
    ),
    AppRouteKey.WORKSPACES: RouteKeyMetadata(
        label="Workspaces",
        description="View all workspaces",
        category=RouteCategory.WORKSPACE,
        requires_workspace=False,
    ),
    AppRouteKey.WORKSPACE_CREATE: RouteKeyMetadata(
        label="Create Workspace",
        description="Create a new workspace",
        category=RouteCategory.WORKSPACE,
        requires_workspace=False,
    ),
    AppRouteKey.WORKSPACE_HOME: RouteKeyMetadata(
        label="Home",
        description="Workspace home",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_TASKS: RouteKeyMetadata(
        label="My Spaces",
        description="View and manage tasks",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_TEAMS: RouteKeyMetadata(
        label="Teams",
        description="View and manage teams",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_PROGRAMS: RouteKeyMetadata(
        label="Programs",
        description="View and manage programs",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_TIMELINE: RouteKeyMetadata(
        label="Timeline",
        description="View timeline",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_SETTINGS: RouteKeyMetadata(
        label="Settings",
        description="Workspace settings",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_SPACES: RouteKeyMetadata(
        label="Spaces",
        description="View and manage spaces",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.WORKSPACE_PROJECTS: RouteKeyMetadata(
        label="Projects",
        description="View and manage projects",
        category=RouteCategory.WORKSPACE,
        requires_workspace=True,
    ),
    AppRouteKey.PROFILE: RouteKeyMetadata(
        label="Profile",
        description="User profile",
        category=RouteCategory.PROFILE,
        requires_workspace=False,
    ),
    AppRouteKey.PROFILE_ACCOUNT: RouteKeyMetadata(
        label="Account Info",
        description="Account information settings",
        category=RouteCategory.PROFILE,
        requires_workspace=False,
    ),
    AppRouteKey.PROFILE_PASSWORD: RouteKeyMetadata(
        label="Password",
        description="Password settings",
        category=RouteCategory.PROFILE,
        requires_workspace=False,
    ),
    AppRouteKey.WELCOME: RouteKeyMetadata(
        label="Welcome",
        description="Welcome page",
        category=RouteCategory.SYSTEM,
        requires_workspace=False,
    ),
}


# Canonical direction: each permission names the routes it unlocks.
# The route -> required permissions table below is derived from it.
PERMISSION_TO_ROUTE_KEYS: Dict[OrgPermission, FrozenSet[AppRouteKey]] = {
    OrgPermission.BILLING_VIEW: frozenset({AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE}),
    OrgPermission.BILLING_MANAGE: frozenset(
        {AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE}
    ),
    OrgPermission.MEMBERS_VIEW: frozenset(
        {AppRouteKey.ORG_DASHBOARD, AppRouteKey.ORG_MEMBERS}
    ),
    OrgPermission.MEMBERS_MANAGE: frozenset(
        {AppRouteKey.ORG_DASHBOARD, AppRouteKey.ORG_MEMBERS}
    ),
    OrgPermission.SETTINGS_MANAGE: frozenset({AppRouteKey.ORG_SETTINGS}),
    OrgPermission.AUDIT_VIEW: frozenset({AppRouteKey.ORG_AUDIT}),
    OrgPermission.COMPLIANCE_VIEW: frozenset({AppRouteKey.ORG_AUDIT}),
    OrgPermission.DEPARTMENTS_MANAGE: frozenset({AppRouteKey.ORG_DEPARTMENTS}),
    OrgPermission.SECURITY_VIEW: frozenset({AppRouteKey.ORG_SECURITY}),
    OrgPermission.WORKSPACE_CREATE: frozenset(
        {AppRouteKey.WORKSPACES, AppRouteKey.WORKSPACE_CREATE}
    ),
    OrgPermission.WORKSPACE_ASSIGN: frozenset({AppRouteKey.WORKSPACES}),
    OrgPermission.PERMISSIONS_MANAGE: frozenset({AppRouteKey.ORG_PERMISSIONS}),
}

PROJECT_PERMISSION_TO_ROUTE_KEYS: Dict[ProjectPermission, FrozenSet[ProjectRouteKey]] = {
    ProjectPermission.PROJECT_VIEW: frozenset(
        {ProjectRouteKey.PROJECT_DASHBOARD, ProjectRouteKey.PROJECT_TASKS}
    ),
    ProjectPermission.PROJECT_SETTINGS_MANAGE: frozenset(
        {ProjectRouteKey.PROJECT_SETTINGS}
    ),
    ProjectPermission.TEAM_CREATE: frozenset({ProjectRouteKey.PROJECT_TEAMS}),
    ProjectPermission.TEAM_MANAGE: frozenset({ProjectRouteKey.PROJECT_TEAMS}),
    ProjectPermission.MEMBER_INVITE: frozenset({ProjectRouteKey.PROJECT_MEMBERS}),
    ProjectPermission.MEMBER_REMOVE: frozenset({ProjectRouteKey.PROJECT_MEMBERS}),
    ProjectPermission.SPRINT_VIEW: frozenset({ProjectRouteKey.PROJECT_SPRINTS}),
    ProjectPermission.BOARD_VIEW: frozenset({ProjectRouteKey.PROJECT_BOARD}),
    ProjectPermission.ROLE_CREATE: frozenset({ProjectRouteKey.PROJECT_ROLES}),
    ProjectPermission.ROLE_UPDATE: frozenset({ProjectRouteKey.PROJECT_ROLES}),
    ProjectPermission.ROLE_DELETE: frozenset({ProjectRouteKey.PROJECT_ROLES}),
    ProjectPermission.REPORTS_VIEW: frozenset({ProjectRouteKey.PROJECT_REPORTS}),
}

K = TypeVar("K")
V = TypeVar("V")


def invert_route_table(table: Mapping[K, FrozenSet[V]]) -> Dict[V, FrozenSet[K]]:
    """Build the route -> required permissions table from a permission -> routes table."""
    inverted: Dict[V, set] = {}
    for permission, route_keys in table.items():
        for route_key in route_keys:
            inverted.setdefault(route_key, set()).add(permission)
    return {route_key: frozenset(perms) for route_key, perms in inverted.items()}


ROUTE_TO_REQUIRED_PERMISSIONS: Dict[AppRouteKey, FrozenSet[OrgPermission]] = (
    invert_route_table(PERMISSION_TO_ROUTE_KEYS)
)
PROJECT_ROUTE_TO_REQUIRED_PERMISSIONS: Dict[
    ProjectRouteKey, FrozenSet[ProjectPermission]
] = invert_route_table(PROJECT_PERMISSION_TO_ROUTE_KEYS)


ROUTE_KEY_TO_PATH: Dict[AppRouteKey, str] = {
    # Org routes (dashboard-level, no workspace prefix)
    AppRouteKey.ORG_DASHBOARD: "/organization",
    AppRouteKey.ORG_MEMBERS: "/organization?tab=members",
    AppRouteKey.ORG_SETTINGS: "/organization?tab=general",
    AppRouteKey.ORG_BILLING: "/organization?tab=billing",
    AppRouteKey.ORG_USAGE: "/organization/usage",
    AppRouteKey.ORG_AUDIT: "/organization?tab=audit",
    AppRouteKey.ORG_DEPARTMENTS: "/organization/departments",
    AppRouteKey.ORG_SECURITY: "/organization?tab=security",
    AppRouteKey.ORG_PERMISSIONS: "/organization?tab=permissions",
    # Workspace routes
    AppRouteKey.WORKSPACES: "/",
    AppRouteKey.WORKSPACE_CREATE: "/workspaces/create",
    AppRouteKey.WORKSPACE_HOME: "/workspaces/[workspaceId]",
    AppRouteKey.WORKSPACE_TASKS: "/workspaces/[workspaceId]/tasks",
    AppRouteKey.WORKSPACE_TEAMS: "/workspaces/[workspaceId]/teams",
    AppRouteKey.WORKSPACE_PROGRAMS: "/workspaces/[workspaceId]/programs",
    AppRouteKey.WORKSPACE_TIMELINE: "/workspaces/[workspaceId]/timeline",
    AppRouteKey.WORKSPACE_SETTINGS: "/workspaces/[workspaceId]/settings",
    AppRouteKey.WORKSPACE_SPACES: "/workspaces/[workspaceId]/spaces",
    AppRouteKey.WORKSPACE_PROJECTS: "/workspaces/[workspaceId]/projects",
    # Profile routes
    AppRouteKey.PROFILE: "/profile",
    AppRouteKey.PROFILE_ACCOUNT: "/profile/accountinfo",
    AppRouteKey.PROFILE_PASSWORD: "/profile/password",
    # System routes
    AppRouteKey.WELCOME: "/welcome",
}

WORKSPACE_ID_PLACEHOLDER = "[workspaceId]"

ORG_SETTINGS_TABS: Tuple[OrgSettingsTab, ...] = (
    OrgSettingsTab(
        tab="general",
        route_key=AppRouteKey.ORG_SETTINGS,
        permission=OrgPermission.SETTINGS_MANAGE,
    ),
    OrgSettingsTab(
        tab="members",
        route_key=AppRouteKey.ORG_MEMBERS,
        permission=OrgPermission.MEMBERS_VIEW,
    ),
    OrgSettingsTab(
        tab="security",
        route_key=AppRouteKey.ORG_SECURITY,
        permission=OrgPermission.SECURITY_VIEW,
    ),
    OrgSettingsTab(
        tab="departments",
        route_key=AppRouteKey.ORG_DEPARTMENTS,
        permission=OrgPermission.DEPARTMENTS_MANAGE,
    ),
    OrgSettingsTab(
        tab="billing",
        route_key=AppRouteKey.ORG_BILLING,
        permission=OrgPermission.BILLING_VIEW,
    ),
    OrgSettingsTab(
        tab="audit",
        route_key=AppRouteKey.ORG_AUDIT,
        permission=OrgPermission.AUDIT_VIEW,
    ),
    OrgSettingsTab(
        tab="permissions",
        route_key=AppRouteKey.ORG_PERMISSIONS,
        permission=OrgPermission.PERMISSIONS_MANAGE,
    ),
)

# Route keys every authenticated user can reach, with or without an organization
ALWAYS_ACCESSIBLE_ROUTES: FrozenSet[AppRouteKey] = frozenset(
    {
        AppRouteKey.PROFILE,
        AppRouteKey.PROFILE_ACCOUNT,
        AppRouteKey.PROFILE_PASSWORD,
        AppRouteKey.WELCOME,
    }
)

# Route keys any ACTIVE organization member can reach
ORG_MEMBER_BASE_ROUTES: FrozenSet[AppRouteKey] = frozenset({AppRouteKey.WORKSPACES})

# Route keys unlocked by an active workspace context
WORKSPACE_MEMBER_ROUTES: FrozenSet[AppRouteKey] = frozenset(
    key for key, meta in ROUTE_KEY_METADATA.items() if meta.requires_workspace
)


ROLE_PERMISSIONS: Dict[OrganizationRole, FrozenSet[OrgPermission]] = {
    # Owners hold everything by definition; resolvers short-circuit before
    # consulting this entry.
    OrganizationRole.OWNER: frozenset(OrgPermission),
    OrganizationRole.ADMIN: frozenset(
        {
            OrgPermission.BILLING_VIEW,
            OrgPermission.MEMBERS_VIEW,
            OrgPermission.MEMBERS_MANAGE,
            OrgPermission.SETTINGS_MANAGE,
            OrgPermission.AUDIT_VIEW,
            OrgPermission.COMPLIANCE_VIEW,
            OrgPermission.DEPARTMENTS_MANAGE,
            OrgPermission.SECURITY_VIEW,
            OrgPermission.WORKSPACE_CREATE,
            OrgPermission.WORKSPACE_ASSIGN,
        }
    ),
    OrganizationRole.MODERATOR: frozenset(
        {
            OrgPermission.MEMBERS_VIEW,
            OrgPermission.AUDIT_VIEW,
            OrgPermission.WORKSPACE_ASSIGN,
        }
    ),
    OrganizationRole.MEMBER: frozenset(),
}

# Only an OWNER may hand these out
OWNER_RESERVED_PERMISSIONS: FrozenSet[OrgPermission] = frozenset(
    {OrgPermission.BILLING_MANAGE, OrgPermission.PERMISSIONS_MANAGE}
)


PROJECT_ROLE_TEMPLATE_PERMISSIONS: Dict[
    ProjectRoleTemplate, FrozenSet[ProjectPermission]
] = {
    ProjectRoleTemplate.OWNER: frozenset(ProjectPermission),
    ProjectRoleTemplate.ADMIN: frozenset(ProjectPermission),
    ProjectRoleTemplate.MEMBER: frozenset(
        {
            ProjectPermission.PROJECT_VIEW,
            ProjectPermission.TASK_CREATE,
            ProjectPermission.TASK_UPDATE,
            ProjectPermission.TASK_ASSIGN,
            ProjectPermission.SPRINT_VIEW,
            ProjectPermission.BOARD_VIEW,
            ProjectPermission.COMMENT_CREATE,
            ProjectPermission.REPORTS_VIEW,
        }
    ),
    ProjectRoleTemplate.VIEWER: frozenset(
        {
            ProjectPermission.PROJECT_VIEW,
            ProjectPermission.SPRINT_VIEW,
            ProjectPermission.BOARD_VIEW,
            ProjectPermission.REPORTS_VIEW,
        }
    ),
}


def _missing_entries(table: Mapping[K, object], universe: List[K]) -> List[K]:
    return [member for member in universe if member not in table]


# Adding an enum member without extending its table fails at import time.
for _table, _enum in (
    (ROLE_PERMISSIONS, OrganizationRole),
    (PERMISSION_TO_ROUTE_KEYS, OrgPermission),
    (ROUTE_KEY_TO_PATH, AppRouteKey),
    (ROUTE_KEY_METADATA, AppRouteKey),
    (PROJECT_ROLE_TEMPLATE_PERMISSIONS, ProjectRoleTemplate),
):
    _missing = _missing_entries(_table, list(_enum))  # type: ignore[arg-type]
    if _missing:
        raise RuntimeError(
            f"{_enum.__name__} members missing from lookup table: {_missing}"
        )


class UserAccess(BaseModel):
    """Organization-scoped access computed for one (user, organization) pair."""

    model_config = {"frozen": True}

    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    org_member_id: Optional[str] = None
    role: Optional[OrganizationRole] = None
    is_owner: bool = False
    permissions: List[OrgPermission] = Field(default_factory=list)
    allowed_route_keys: List[AppRouteKey] = Field(default_factory=list)
    allowed_paths: List[str] = Field(default_factory=list)


class ProjectRoleAssignment(BaseModel):
    model_config = {"frozen": True}

    role_id: str
    role_name: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None


class ProjectAccess(BaseModel):
    """Project-scoped access merged across every team membership of a user."""

    model_config = {"frozen": True}

    project_id: str
    workspace_id: Optional[str] = None
    has_access: bool = False
    is_admin: bool = False
    is_owner: bool = False
    inherited_from_workspace: bool = False
    project_exists: bool = True
    permissions: List[str] = Field(default_factory=list)
    roles: List[ProjectRoleAssignment] = Field(default_factory=list)
    allowed_route_keys: List[ProjectRouteKey] = Field(default_factory=list)
