from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.components.limits import LimitsStorePort
from src.domain.entities import Group, Membership, User


class GroupStorePort(LimitsStorePort, Protocol):
    """Store surface used by group membership management."""

    def list_users(self, user_ids: list[UUID]) -> list[User]: ...

    def get_group(self, group_id: UUID) -> Group | None: ...
    def list_groups(self, group_ids: list[UUID]) -> list[Group]: ...
    def add_group(self, group: Group, owner_membership: Membership) -> Group: ...

    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None: ...
    def delete_membership(self, group_id: UUID, user_id: UUID) -> bool: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
