"""
Tests for workspace creation rules and the membership ledger.
"""

import pytest

from tests.fixtures.auth_fixtures import make_user
from tests.helpers.fake_prisma import FakePrisma
from tests.helpers.seeding import seed_org_member, seed_workspace
from workhub.core.cache import AccessCache
from workhub.domains.auth.models import User
from workhub.domains.workspaces.models import (
    WorkspaceCreateRequest,
    WorkspaceMemberStatus,
    WorkspaceRole,
)
from workhub.domains.workspaces.service import (
    ACCOUNT_TYPE_REQUIRED,
    MISSING_WORKSPACE_CREATE,
    ORGANIZATION_REQUIRED,
    PERSONAL_SINGLE_WORKSPACE,
    WorkspaceService,
)
from workhub.shared.exceptions import (
    InvalidDataError,
    InvalidStateTransitionError,
    InvariantViolationError,
    MissingPermissionError,
    ResourceNotFoundError,
)

ORG_ID = "org-1"


def personal() -> User:
    return make_user("user-1", accountType="PERSONAL")


def org_member() -> User:
    return make_user("user-1", accountType="ORG", primaryOrganizationId=ORG_ID)


@pytest.fixture
def service(fake_db: FakePrisma, cache: AccessCache) -> WorkspaceService:
    return WorkspaceService(fake_db, cache)


class TestValidateWorkspaceCreation:
    """Tests for creation eligibility by account type."""

    @pytest.mark.asyncio
    async def test_first_personal_workspace(self, service: WorkspaceService) -> None:
        result = await service.validate_workspace_creation(personal())
        assert result.allowed
        assert result.code is None

    @pytest.mark.asyncio
    async def test_second_personal_workspace(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        seed_workspace(fake_db, "ws-1", members=[("user-1", "OWNER")])
        result = await service.validate_workspace_creation(personal())
        assert not result.allowed
        assert result.code == PERSONAL_SINGLE_WORKSPACE

    @pytest.mark.asyncio
    async def test_removed_personal_workspace_frees_the_slot(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        seed_workspace(fake_db, "ws-1")
        fake_db.workspacemember.add(
            workspaceId="ws-1", userId="user-1", role="OWNER", status="DELETED"
        )
        assert (await service.validate_workspace_creation(personal())).allowed

    @pytest.mark.asyncio
    async def test_personal_cannot_target_organization(self, service: WorkspaceService) -> None:
        result = await service.validate_workspace_creation(personal(), ORG_ID)
        assert result.code == ORGANIZATION_REQUIRED

    @pytest.mark.asyncio
    async def test_org_admin_may_create(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        seed_org_member(fake_db, ORG_ID, "user-1", role="ADMIN")
        assert (await service.validate_workspace_creation(org_member())).allowed

    @pytest.mark.asyncio
    async def test_org_member_may_not_create(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        seed_org_member(fake_db, ORG_ID, "user-1", role="MEMBER")
        result = await service.validate_workspace_creation(org_member())
        assert result.code == MISSING_WORKSPACE_CREATE

    @pytest.mark.asyncio
    async def test_org_member_with_grant_may_create(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        member = seed_org_member(fake_db, ORG_ID, "user-1", role="MEMBER")
        fake_db.orgmemberpermission.add(orgMemberId=member.id, permission="org.workspace.create")
        assert (await service.validate_workspace_creation(org_member())).allowed

    @pytest.mark.asyncio
    async def test_org_account_without_organization(self, service: WorkspaceService) -> None:
        result = await service.validate_workspace_creation(make_user("user-1", accountType="ORG"))
        assert result.code == ORGANIZATION_REQUIRED

    @pytest.mark.asyncio
    async def test_untyped_account(self, service: WorkspaceService) -> None:
        result = await service.validate_workspace_creation(make_user("user-1"))
        assert result.code == ACCOUNT_TYPE_REQUIRED


class TestCreateWorkspace:
    @pytest.mark.asyncio
    async def test_personal_creates_default_workspace(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        workspace = await service.create_workspace(personal(), WorkspaceCreateRequest(name="Home"))

        assert workspace.organization_id is None
        assert workspace.is_default is True
        owner = await fake_db.workspacemember.find_first(where={"workspaceId": workspace.id})
        assert owner.userId == "user-1"
        assert owner.role == "OWNER"

    @pytest.mark.asyncio
    async def test_personal_second_workspace_rejected(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        await service.create_workspace(personal(), WorkspaceCreateRequest(name="Home"))

        with pytest.raises(InvariantViolationError) as exc_info:
            await service.create_workspace(personal(), WorkspaceCreateRequest(name="Second"))

        assert exc_info.value.invariant == PERSONAL_SINGLE_WORKSPACE
        assert await fake_db.workspace.count() == 1

    @pytest.mark.asyncio
    async def test_org_workspace(self, service: WorkspaceService, fake_db: FakePrisma) -> None:
        seed_org_member(fake_db, ORG_ID, "user-1", role="OWNER")
        seed_workspace(fake_db, "ws-existing", org_id=ORG_ID)

        workspace = await service.create_workspace(
            org_member(), WorkspaceCreateRequest(name="Engineering")
        )

        assert workspace.organization_id == ORG_ID
        assert workspace.is_default is False

    @pytest.mark.asyncio
    async def test_org_member_without_permission(
        self, service: WorkspaceService, fake_db: FakePrisma
    ) -> None:
        seed_org_member(fake_db, ORG_ID, "user-1", role="MEMBER")
        with pytest.raises(MissingPermissionError):
            await service.create_workspace(org_member(), WorkspaceCreateRequest(name="Nope"))

    @pytest.mark.asyncio
    async def test_untyped_account(self, service: WorkspaceService) -> None:
        with pytest.raises(InvalidDataError):
            await service.create_workspace(make_user("user-1"), WorkspaceCreateRequest(name="X"))

    @pytest.mark.asyncio
    async def test_invalidates_creator_cache(
        self, service: WorkspaceService, cache: AccessCache
    ) -> None:
        cache.set(("lifecycle", "user-1"), "stale")
        await service.create_workspace(personal(), WorkspaceCreateRequest(name="Home"))
        assert cache.get(("lifecycle", "user-1")) is None


@pytest.fixture
def team_workspace(fake_db: FakePrisma) -> str:
    seed_workspace(
        fake_db,
        "ws-1",
        org_id=ORG_ID,
        members=[("owner", "OWNER"), ("admin", "ADMIN"), ("user-2", "MEMBER")],
    )
    return "ws-1"


class TestAddMember:
    """Tests for adding and reactivating members."""

    @pytest.mark.asyncio
    async def test_admin_adds_member(self, service: WorkspaceService, team_workspace: str) -> None:
        member = await service.add_member(team_workspace, "user-3", WorkspaceRole.MEMBER, "admin")
        assert member.status == WorkspaceMemberStatus.ACTIVE
        assert member.role == WorkspaceRole.MEMBER

    @pytest.mark.asyncio
    async def test_member_cannot_add(self, service: WorkspaceService, team_workspace: str) -> None:
        with pytest.raises(MissingPermissionError):
            await service.add_member(team_workspace, "user-3", WorkspaceRole.MEMBER, "user-2")

    @pytest.mark.asyncio
    async def test_admin_cannot_add_owner(
        self, service: WorkspaceService, team_workspace: str
    ) -> None:
        with pytest.raises(InvariantViolationError):
            await service.add_member(team_workspace, "user-3", WorkspaceRole.OWNER, "admin")

    @pytest.mark.asyncio
    async def test_org_owner_acts_as_workspace_owner(
        self, service: WorkspaceService, fake_db: FakePrisma, team_workspace: str
    ) -> None:
        seed_org_member(fake_db, ORG_ID, "org-boss", role="OWNER")
        member = await service.add_member(team_workspace, "user-3", WorkspaceRole.OWNER, "org-boss")
        assert member.role == WorkspaceRole.OWNER

    @pytest.mark.asyncio
    async def test_active_member_returned_unchanged(
        self, service: WorkspaceService, fake_db: FakePrisma, team_workspace: str
    ) -> None:
        existing = await fake_db.workspacemember.find_first(where={"userId": "user-2"})
        member = await service.add_member(team_workspace, "user-2", WorkspaceRole.ADMIN, "owner")
        assert member.id == existing.id
        assert member.role == WorkspaceRole.MEMBER

    @pytest.mark.asyncio
    async def test_readd_reactivates_same_row(
        self, service: WorkspaceService, fake_db: FakePrisma, team_workspace: str
    ) -> None:
        removed = await service.remove_member(team_workspace, "user-2", "owner")
        assert removed.status == WorkspaceMemberStatus.DELETED

        readded = await service.add_member(team_workspace, "user-2", WorkspaceRole.MEMBER, "owner")

        assert readded.id == removed.id
        assert readded.status == WorkspaceMemberStatus.ACTIVE
        assert await fake_db.workspacemember.count(where={"userId": "user-2"}) == 1

    @pytest.mark.asyncio
    async def test_missing_workspace(self, service: WorkspaceService) -> None:
        with pytest.raises(ResourceNotFoundError):
            await service.add_member("ws-missing", "user-3", WorkspaceRole.MEMBER, "owner")


class TestRemoveMember:
    @pytest.mark.asyncio
    async def test_member_removes_self(
        self, service: WorkspaceService, team_workspace: str
    ) -> None:
        removed = await service.remove_member(team_workspace, "user-2", "user-2")
        assert removed.status == WorkspaceMemberStatus.DELETED

    @pytest.mark.asyncio
    async def test_member_cannot_remove_others(
        self, service: WorkspaceService, team_workspace: str
    ) -> None:
        with pytest.raises(MissingPermissionError):
            await service.remove_member(team_workspace, "admin", "user-2")

    @pytest.mark.asyncio
    async def test_remove_twice(self, service: WorkspaceService, team_workspace: str) -> None:
        await service.remove_member(team_workspace, "user-2", "admin")
        with pytest.raises(InvalidStateTransitionError):
            await service.remove_member(team_workspace, "user-2", "admin")

    @pytest.mark.asyncio
    async def test_rows_are_never_deleted(
        self, service: WorkspaceService, fake_db: FakePrisma, team_workspace: str
    ) -> None:
        await service.remove_member(team_workspace, "user-2", "admin")
        assert await fake_db.workspacemember.count(where={"workspaceId": team_workspace}) == 3

    @pytest.mark.asyncio
    async def test_missing_membership(self, service: WorkspaceService, team_workspace: str) -> None:
        with pytest.raises(ResourceNotFoundError):
            await service.remove_member(team_workspace, "ghost", "owner")

    @pytest.mark.asyncio
    async def test_removed_admin_loses_powers(
        self, service: WorkspaceService, team_workspace: str
    ) -> None:
        await service.remove_member(team_workspace, "admin", "owner")
        with pytest.raises(MissingPermissionError):
            await service.remove_member(team_workspace, "user-2", "admin")
