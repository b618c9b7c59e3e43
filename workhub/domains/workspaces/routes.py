# workhub/domains/workspaces/routes.py
from fastapi import APIRouter, Depends, status

from workhub.core.cache import AccessCache, get_access_cache
from workhub.core.database import PrismaClient, get_db
from workhub.domains.auth.dependencies import get_current_user
from workhub.domains.auth.models import User
from workhub.domains.workspaces.models import (
    AddWorkspaceMemberRequest,
    WorkspaceCreateRequest,
    WorkspaceMemberResponse,
    WorkspaceResponse,
    WorkspaceValidationRequest,
    WorkspaceValidationResult,
)
from workhub.domains.workspaces.service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["Workspaces"])


@router.post(
    "/validate",
    response_model=WorkspaceValidationResult,
    operation_id="validateWorkspaceCreation",
)
async def validate_workspace_creation(
    request: WorkspaceValidationRequest,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> WorkspaceValidationResult:
    service = WorkspaceService(db, cache)
    return await service.validate_workspace_creation(user, request.organization_id)


@router.post(
    "",
    response_model=WorkspaceResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createWorkspace",
)
async def create_workspace(
    request: WorkspaceCreateRequest,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> WorkspaceResponse:
    service = WorkspaceService(db, cache)
    return await service.create_workspace(user, request)


@router.post(
    "/{workspace_id}/members",
    response_model=WorkspaceMemberResponse,
    operation_id="addWorkspaceMember",
)
async def add_workspace_member(
    workspace_id: str,
    request: AddWorkspaceMemberRequest,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> WorkspaceMemberResponse:
    service = WorkspaceService(db, cache)
    return await service.add_member(workspace_id, request.user_id, request.role, user.id)


@router.delete(
    "/{workspace_id}/members/{user_id}",
    response_model=WorkspaceMemberResponse,
    operation_id="removeWorkspaceMember",
)
async def remove_workspace_member(
    workspace_id: str,
    user_id: str,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> WorkspaceMemberResponse:
    service = WorkspaceService(db, cache)
    return await service.remove_member(workspace_id, user_id, user.id)
