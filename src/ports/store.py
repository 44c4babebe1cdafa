"""
Entity store port.

Single logical store for users, groups, memberships, pickup requests and
invites. Reads return fresh copies; components never hold them across calls.

Conditional writes (compare-and-swap contract):
- swap_request: applied only if the stored status and claimed_by still match
  the snapshot the caller read. Returns False when the row diverged or vanished.
- delete_request: applied only if the stored status equals expected_status.
- consume_invite: sets used_at only if it is still unset, and inserts the
  membership (if given) in the same transaction. Both or neither.
- add_group: writes the group and its owner membership together.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from src.domain.entities import (
    Group,
    Invite,
    Membership,
    PickupRequest,
    RequestStatus,
    Session,
    User,
    UserLimits,
)


class ConsumeResult(Enum):
    """Outcome of an invite consumption attempt."""

    CONSUMED = "consumed"
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"  # Lost the race or reused token
    ALREADY_MEMBER = "already_member"  # Membership appeared concurrently; rolled back


class UserStorePort(Protocol):
    def get_user(self, user_id: UUID) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def list_users(self, user_ids: list[UUID]) -> list[User]: ...
    def save_user(self, user: User) -> User: ...

    def get_session(self, token: str) -> Session | None: ...
    def save_session(self, session: Session) -> Session: ...

    def get_user_limits(self, user_id: UUID) -> UserLimits | None: ...
    def save_user_limits(self, limits: UserLimits) -> UserLimits: ...


class GroupStorePort(Protocol):
    def get_group(self, group_id: UUID) -> Group | None: ...
    def list_groups(self, group_ids: list[UUID]) -> list[Group]: ...
    def list_groups_created_by(self, user_id: UUID) -> list[Group]: ...
    def add_group(self, group: Group, owner_membership: Membership) -> Group: ...

    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None: ...
    def list_memberships_by_group(self, group_id: UUID) -> list[Membership]: ...
    def list_memberships_by_user(self, user_id: UUID) -> list[Membership]: ...
    def delete_membership(self, group_id: UUID, user_id: UUID) -> bool: ...


class RequestStorePort(Protocol):
    def get_request(self, request_id: UUID) -> PickupRequest | None: ...
    def list_requests_by_group(self, group_id: UUID) -> list[PickupRequest]: ...
    def list_requests_by_user(self, user_id: UUID) -> list[PickupRequest]: ...
    def add_request(self, request: PickupRequest) -> PickupRequest: ...

    def swap_request(self, expected: PickupRequest, updated: PickupRequest) -> bool:
        """Replace the stored request iff it still matches expected's status/claimant."""
        ...

    def delete_request(self, request_id: UUID, expected_status: RequestStatus) -> bool:
        """Remove the request iff its stored status is still expected_status."""
        ...


class InviteStorePort(Protocol):
    def get_invite(self, invite_id: UUID) -> Invite | None: ...
    def get_invite_by_token(self, token: str) -> Invite | None: ...
    def list_invites_for_group_email(self, group_id: UUID, email: str) -> list[Invite]: ...
    def list_invites_by_inviter(self, user_id: UUID) -> list[Invite]: ...
    def list_invites_by_email(self, email: str) -> list[Invite]: ...
    def add_invite(self, invite: Invite) -> Invite: ...

    def add_invite_if_no_open(self, invite: Invite, now: datetime) -> bool:
        """Insert unless an open invite already exists for (group_id, email)."""
        ...

    def consume_invite(
        self,
        invite_id: UUID,
        used_at: datetime,
        membership: Membership | None = None,
    ) -> ConsumeResult:
        """Mark the invite used and (optionally) add the membership atomically."""
        ...

    def delete_expired_invites(self, now: datetime) -> int:
        """Delete invites that are unused and past expires_at. Returns count."""
        ...


class EntityStorePort(UserStorePort, GroupStorePort, RequestStorePort, InviteStorePort, Protocol):
    """Full store surface consumed by the lifecycle components."""
