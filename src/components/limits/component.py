"""
Limit policy.

Pure counts over store snapshots plus "can perform X" predicates. The
predicates are advisory: each lifecycle re-reads the counts right before
its write and enforces the ceiling there.

Counting rules:
- open requests: owned requests with status "open" (claimed ones don't count)
- groups created: groups whose owner is the user
- groups joined: every membership, owned groups included
- open invites: issued by the user, unused and unexpired, across all groups
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from src.domain.entities import UserLimits
from src.rules.models import LimitsRules

from .models import EffectiveLimits, InvitationCount, UsageCounts, UsageSummary
from .ports import LimitsStorePort, LimitsWriterPort

# --- Ceilings ---


def resolve_limits(user_id: UUID, store: LimitsStorePort, rules: LimitsRules) -> EffectiveLimits:
    """Rules defaults, overridden by the user's UserLimits row when present."""
    override = store.get_user_limits(user_id)
    if override is None:
        return EffectiveLimits(
            max_open_requests=rules.max_open_requests,
            max_groups_created=rules.max_groups_created,
            max_groups_joined=rules.max_groups_joined,
            max_group_members=rules.max_group_members,
            max_open_invites=rules.max_open_invites,
        )
    return EffectiveLimits(
        max_open_requests=override.max_open_requests,
        max_groups_created=override.max_groups_created,
        max_groups_joined=override.max_groups_joined,
        max_group_members=rules.max_group_members,
        max_open_invites=rules.max_open_invites,
    )


def update_user_limits(
    user_id: UUID,
    store: LimitsWriterPort,
    rules: LimitsRules,
    now: datetime,
    *,
    max_open_requests: int | None = None,
    max_groups_created: int | None = None,
    max_groups_joined: int | None = None,
) -> UserLimits:
    """Create or patch the per-user override row."""
    for name, value in (
        ("max_open_requests", max_open_requests),
        ("max_groups_created", max_groups_created),
        ("max_groups_joined", max_groups_joined),
    ):
        if value is not None and value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    current = store.get_user_limits(user_id)
    if current is None:
        current = UserLimits(
            user_id=user_id,
            max_open_requests=rules.max_open_requests,
            max_groups_created=rules.max_groups_created,
            max_groups_joined=rules.max_groups_joined,
            created_at=now,
            updated_at=now,
        )

    updates: dict[str, object] = {"updated_at": now}
    if max_open_requests is not None:
        updates["max_open_requests"] = max_open_requests
    if max_groups_created is not None:
        updates["max_groups_created"] = max_groups_created
    if max_groups_joined is not None:
        updates["max_groups_joined"] = max_groups_joined

    return store.save_user_limits(current.model_copy(update=updates))


# --- Counts ---


def count_open_requests(user_id: UUID, store: LimitsStorePort) -> int:
    return sum(1 for r in store.list_requests_by_user(user_id) if r.status == "open")


def count_groups_created(user_id: UUID, store: LimitsStorePort) -> int:
    return len(store.list_groups_created_by(user_id))


def count_groups_joined(user_id: UUID, store: LimitsStorePort) -> int:
    return len(store.list_memberships_by_user(user_id))


def count_group_members(group_id: UUID, store: LimitsStorePort) -> int:
    return len(store.list_memberships_by_group(group_id))


def count_open_invites(user_id: UUID, store: LimitsStorePort, now: datetime) -> int:
    return sum(1 for i in store.list_invites_by_inviter(user_id) if i.is_open(now))


# --- Predicates ---


def can_create_request(user_id: UUID, store: LimitsStorePort, rules: LimitsRules) -> bool:
    limits = resolve_limits(user_id, store, rules)
    return count_open_requests(user_id, store) < limits.max_open_requests


def can_create_group(user_id: UUID, store: LimitsStorePort, rules: LimitsRules) -> bool:
    limits = resolve_limits(user_id, store, rules)
    return count_groups_created(user_id, store) < limits.max_groups_created


def can_join_group(user_id: UUID, store: LimitsStorePort, rules: LimitsRules) -> bool:
    limits = resolve_limits(user_id, store, rules)
    return count_groups_joined(user_id, store) < limits.max_groups_joined


def group_has_room(group_id: UUID, store: LimitsStorePort, rules: LimitsRules) -> bool:
    return count_group_members(group_id, store) < rules.max_group_members


def can_issue_invite(
    user_id: UUID, store: LimitsStorePort, rules: LimitsRules, now: datetime
) -> bool:
    return count_open_invites(user_id, store, now) < rules.max_open_invites


def has_open_invite(group_id: UUID, email: str, store: LimitsStorePort, now: datetime) -> bool:
    return any(i.is_open(now) for i in store.list_invites_for_group_email(group_id, email))


# --- Summaries ---


def usage_summary(
    user_id: UUID, store: LimitsStorePort, rules: LimitsRules, now: datetime
) -> UsageSummary:
    return UsageSummary(
        user_id=user_id,
        limits=resolve_limits(user_id, store, rules),
        usage=UsageCounts(
            open_requests=count_open_requests(user_id, store),
            groups_created=count_groups_created(user_id, store),
            groups_joined=count_groups_joined(user_id, store),
            open_invites=count_open_invites(user_id, store, now),
        ),
    )


def invitation_count(
    user_id: UUID, store: LimitsStorePort, rules: LimitsRules, now: datetime
) -> InvitationCount:
    """Open invites issued by the user against the ceiling, e.g. "7/10"."""
    return InvitationCount(
        current=count_open_invites(user_id, store, now),
        maximum=rules.max_open_invites,
    )
