from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from src.domain.entities import Group, Membership, User
from src.domain.errors import LifecycleError

# --- Input Models ---


@dataclass(frozen=True)
class CreateGroupInput:
    name: str
    creator_id: UUID


@dataclass(frozen=True)
class LeaveGroupInput:
    group_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class RemoveMemberInput:
    group_id: UUID
    target_id: UUID
    actor_id: UUID


# --- Output Models ---


@dataclass
class GroupOutput:
    group: Group | None = None
    success: bool = False
    error: LifecycleError | None = None


@dataclass
class MembershipOutput:
    """Result of a leave or removal; membership is the row that was deleted."""

    membership: Membership | None = None
    success: bool = False
    error: LifecycleError | None = None


@dataclass(frozen=True)
class MemberView:
    user: User
    joined_at: datetime
    is_owner: bool = False


@dataclass
class MembersOutput:
    members: list[MemberView] = field(default_factory=list)
    success: bool = False
    error: LifecycleError | None = None
