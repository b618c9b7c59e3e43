# workhub/domains/auth/routes.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from workhub.core.cache import AccessCache, get_access_cache
from workhub.core.database import PrismaClient, get_db
from workhub.domains.auth.dependencies import get_current_user, get_lifecycle_user
from workhub.domains.auth.models import User
from workhub.domains.lifecycle.models import LifecycleResponse, NavigationDecision
from workhub.domains.lifecycle.routing import decide_navigation
from workhub.domains.lifecycle.service import LifecycleService
from workhub.domains.organizations.models import EligibilityResult
from workhub.domains.organizations.service import OrganizationMembershipService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get(
    "/lifecycle",
    response_model=LifecycleResponse,
    operation_id="getLifecycle",
)
async def get_lifecycle(
    user: Optional[User] = Depends(get_lifecycle_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> LifecycleResponse:
    service = LifecycleService(db, cache)
    return await service.resolve_with_legacy(user)


@router.get(
    "/navigation",
    response_model=NavigationDecision,
    operation_id="getNavigationDecision",
)
async def get_navigation_decision(
    path: str = Query(..., min_length=1),
    user: Optional[User] = Depends(get_lifecycle_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> NavigationDecision:
    lifecycle = await LifecycleService(db, cache).resolve(user)
    return decide_navigation(lifecycle, path)


@router.get(
    "/account/deletion-eligibility",
    response_model=EligibilityResult,
    operation_id="getAccountDeletionEligibility",
)
async def get_account_deletion_eligibility(
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
) -> EligibilityResult:
    service = OrganizationMembershipService(db)
    return await service.can_delete_account(user.id)
