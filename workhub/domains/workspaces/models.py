# workhub/domains/workspaces/models.py
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from workhub.shared.exceptions import InvalidStateTransitionError


class WorkspaceRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class WorkspaceMemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class MembershipAction(str, Enum):
    REMOVE = "REMOVE"
    REACTIVATE = "REACTIVATE"


class ActorRole(str, Enum):
    """Capacity in which someone acts on a workspace membership."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    SELF = "SELF"


class MembershipTransition(NamedTuple):
    to_status: WorkspaceMemberStatus
    allowed_actors: FrozenSet[ActorRole]


# Soft-delete ledger: rows are never hard-deleted, only moved between states
MEMBERSHIP_TRANSITIONS: Dict[
    Tuple[WorkspaceMemberStatus, MembershipAction], MembershipTransition
] = {
    (WorkspaceMemberStatus.ACTIVE, MembershipAction.REMOVE): MembershipTransition(
        WorkspaceMemberStatus.DELETED,
        frozenset({ActorRole.OWNER, ActorRole.ADMIN, ActorRole.SELF}),
    ),
    (WorkspaceMemberStatus.DELETED, MembershipAction.REACTIVATE): MembershipTransition(
        WorkspaceMemberStatus.ACTIVE,
        frozenset({ActorRole.OWNER, ActorRole.ADMIN}),
    ),
}


def get_transition(
    status: WorkspaceMemberStatus, action: MembershipAction
) -> MembershipTransition:
    """
    Look up a ledger transition.

    Raises:
        InvalidStateTransitionError: If the action is not defined for the status
    """
    transition = MEMBERSHIP_TRANSITIONS.get((status, action))
    if transition is None:
        raise InvalidStateTransitionError(
            f"Cannot {action.value.lower()} a membership that is {status.value}"
        )
    return transition


def can_transition(
    status: WorkspaceMemberStatus,
    action: MembershipAction,
    actor_roles: Iterable[ActorRole],
) -> bool:
    transition = MEMBERSHIP_TRANSITIONS.get((status, action))
    if transition is None:
        return False
    return bool(transition.allowed_actors & set(actor_roles))


class WorkspaceValidationRequest(BaseModel):
    organization_id: Optional[str] = None


class WorkspaceValidationResult(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    code: Optional[str] = None


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    organization_id: Optional[str] = None


class WorkspaceResponse(BaseModel):
    id: str
    name: str
    organization_id: Optional[str]
    is_default: bool


class AddWorkspaceMemberRequest(BaseModel):
    user_id: str
    role: WorkspaceRole = WorkspaceRole.MEMBER


class WorkspaceMemberResponse(BaseModel):
    id: str
    workspace_id: str
    user_id: str
    role: WorkspaceRole
    status: WorkspaceMemberStatus

    @classmethod
    def from_prisma(cls, member: Any) -> "WorkspaceMemberResponse":
        return cls(
            id=member.id,
            workspace_id=member.workspaceId,
            user_id=member.userId,
            role=WorkspaceRole(member.role),
            status=WorkspaceMemberStatus(member.status),
        )
