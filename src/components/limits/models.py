"""
Limit policy models.

Effective ceilings for a user (rules.yaml defaults merged with any
per-user override row) and the usage counts measured against them.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class EffectiveLimits:
    max_open_requests: int
    max_groups_created: int
    max_groups_joined: int
    max_group_members: int
    max_open_invites: int


@dataclass(frozen=True)
class UsageCounts:
    open_requests: int
    groups_created: int
    groups_joined: int
    open_invites: int


@dataclass(frozen=True)
class UsageSummary:
    """Limits and counts together, as shown on a profile page."""

    user_id: UUID
    limits: EffectiveLimits
    usage: UsageCounts

    @property
    def can_create_request(self) -> bool:
        return self.usage.open_requests < self.limits.max_open_requests

    @property
    def can_create_group(self) -> bool:
        return self.usage.groups_created < self.limits.max_groups_created

    @property
    def can_join_group(self) -> bool:
        return self.usage.groups_joined < self.limits.max_groups_joined

    @property
    def can_issue_invite(self) -> bool:
        return self.usage.open_invites < self.limits.max_open_invites


@dataclass(frozen=True)
class InvitationCount:
    current: int
    maximum: int

    @property
    def remaining(self) -> int:
        return max(self.maximum - self.current, 0)

    def __str__(self) -> str:
        return f"{self.current}/{self.maximum}"
