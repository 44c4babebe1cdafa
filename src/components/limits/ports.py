from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.domain.entities import Group, Invite, Membership, PickupRequest, UserLimits


class LimitsStorePort(Protocol):
    """Read-only store surface the limit policy counts over."""

    def get_user_limits(self, user_id: UUID) -> UserLimits | None: ...
    def list_requests_by_user(self, user_id: UUID) -> list[PickupRequest]: ...
    def list_groups_created_by(self, user_id: UUID) -> list[Group]: ...
    def list_memberships_by_user(self, user_id: UUID) -> list[Membership]: ...
    def list_memberships_by_group(self, group_id: UUID) -> list[Membership]: ...
    def list_invites_by_inviter(self, user_id: UUID) -> list[Invite]: ...
    def list_invites_for_group_email(self, group_id: UUID, email: str) -> list[Invite]: ...


class LimitsWriterPort(LimitsStorePort, Protocol):
    def save_user_limits(self, limits: UserLimits) -> UserLimits: ...
