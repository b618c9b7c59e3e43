# workhub/domains/lifecycle/models.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from workhub.domains.auth.models import AccountType, User
from workhub.shared.permissions.models import OrganizationRole, OrgMemberStatus


class LifecycleState(str, Enum):
    """
    Where an account sits in the auth -> org -> workspace onboarding funnel.
    Exactly one state is resolved per user per request.
    """

    # Unauthenticated / identity gates
    UNAUTHENTICATED = "UNAUTHENTICATED"
    EMAIL_UNVERIFIED = "EMAIL_UNVERIFIED"
    NO_ACCOUNT_TYPE = "NO_ACCOUNT_TYPE"

    # PERSONAL account states
    PERSONAL_NO_WORKSPACE = "PERSONAL_NO_WORKSPACE"
    PERSONAL_ACTIVE = "PERSONAL_ACTIVE"

    # ORG account without any organization membership
    ORG_ONBOARDING = "ORG_ONBOARDING"

    # ORG states
    ORG_MEMBER_PENDING = "ORG_MEMBER_PENDING"
    ORG_OWNER_NO_WORKSPACE = "ORG_OWNER_NO_WORKSPACE"
    ORG_OWNER_ACTIVE = "ORG_OWNER_ACTIVE"
    ORG_ADMIN_NO_WORKSPACE = "ORG_ADMIN_NO_WORKSPACE"
    ORG_ADMIN_ACTIVE = "ORG_ADMIN_ACTIVE"
    ORG_MEMBER_NO_WORKSPACE = "ORG_MEMBER_NO_WORKSPACE"
    ORG_MEMBER_ACTIVE = "ORG_MEMBER_ACTIVE"

    # Billing gate
    SUSPENDED = "SUSPENDED"


class BillingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DUE = "DUE"
    SUSPENDED = "SUSPENDED"


class LifecycleRouting(BaseModel):
    model_config = {"frozen": True}

    redirect_to: Optional[str] = None
    allowed_paths: List[str] = Field(default_factory=list)
    blocked_paths: List[str] = Field(default_factory=list)


class ResolvedLifecycle(BaseModel):
    """Computed lifecycle of one user. Never persisted."""

    model_config = {"frozen": True}

    state: LifecycleState
    user_id: Optional[str] = None
    account_type: Optional[AccountType] = None
    org_id: Optional[str] = None
    org_name: Optional[str] = None
    org_role: Optional[OrganizationRole] = None
    org_member_status: Optional[OrgMemberStatus] = None
    workspace_id: Optional[str] = None
    has_workspace: bool = False
    must_reset_password: bool = False
    is_email_verified: bool = False
    billing_status: Optional[BillingStatus] = None
    must_accept_legal: bool = False
    legal_blocked: bool = False
    redirect_to: Optional[str] = None
    allowed_paths: List[str] = Field(default_factory=list)
    blocked_paths: List[str] = Field(default_factory=list)


class AccountLifecycleState(BaseModel):
    """Flat account summary kept for older web clients."""

    is_authenticated: bool
    has_user: bool
    is_email_verified: bool
    has_org: bool
    has_workspace: bool
    user: Optional[User] = None
    account_type: Optional[AccountType] = None
    active_org_id: Optional[str] = None
    active_org_name: Optional[str] = None
    active_workspace_id: Optional[str] = None
    must_reset_password: bool = False
    org_role: Optional[OrganizationRole] = None


class LifecycleResponse(BaseModel):
    legacy_state: AccountLifecycleState
    lifecycle: ResolvedLifecycle


class NavigationAction(str, Enum):
    PROCEED = "PROCEED"
    BLOCK = "BLOCK"
    REDIRECT = "REDIRECT"


class NavigationDecision(BaseModel):
    model_config = {"frozen": True}

    action: NavigationAction
    path: str
    redirect_to: Optional[str] = None
    state: LifecycleState
