"""
Limits component - usage counts and ceilings for requests, groups and invites.
"""

from .component import (
    can_create_group,
    can_create_request,
    can_issue_invite,
    can_join_group,
    count_group_members,
    count_groups_created,
    count_groups_joined,
    count_open_invites,
    count_open_requests,
    group_has_room,
    has_open_invite,
    invitation_count,
    resolve_limits,
    update_user_limits,
    usage_summary,
)
from .models import EffectiveLimits, InvitationCount, UsageCounts, UsageSummary
from .ports import LimitsStorePort, LimitsWriterPort

__all__ = [
    # Ceilings
    "resolve_limits",
    "update_user_limits",
    # Counts
    "count_open_requests",
    "count_groups_created",
    "count_groups_joined",
    "count_group_members",
    "count_open_invites",
    # Predicates
    "can_create_request",
    "can_create_group",
    "can_join_group",
    "can_issue_invite",
    "group_has_room",
    "has_open_invite",
    # Summaries
    "usage_summary",
    "invitation_count",
    # Models
    "EffectiveLimits",
    "InvitationCount",
    "UsageCounts",
    "UsageSummary",
    # Ports
    "LimitsStorePort",
    "LimitsWriterPort",
]
