"""
Group membership component.

Group creation (owner auto-enrolled), self-leave, owner removal of members
and member listings. The owner is always a member and can never leave.
"""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from src.components.limits import count_groups_created, resolve_limits
from src.domain.entities import Group, Membership
from src.domain.errors import ErrorKind, LifecycleError
from src.domain.sanitize import sanitize_text
from src.rules.models import Rules

from .models import (
    CreateGroupInput,
    GroupOutput,
    LeaveGroupInput,
    MembershipOutput,
    MembersOutput,
    MemberView,
    RemoveMemberInput,
)
from .ports import GroupStorePort, TimePort

logger = logging.getLogger(__name__)


def run_create_group(
    inp: CreateGroupInput,
    store: GroupStorePort,
    time: TimePort,
    rules: Rules,
) -> GroupOutput:
    name = sanitize_text(inp.name)
    bounds = rules.groups.name
    if not bounds.contains(len(name)):
        return GroupOutput(
            error=LifecycleError(
                ErrorKind.VALIDATION_ERROR,
                f"Group name must be between {bounds.min} and {bounds.max} characters",
                "name",
            )
        )

    limits = resolve_limits(inp.creator_id, store, rules.limits)
    if count_groups_created(inp.creator_id, store) >= limits.max_groups_created:
        return GroupOutput(
            error=LifecycleError(
                ErrorKind.LIMIT_EXCEEDED,
                f"You can create at most {limits.max_groups_created} groups",
            )
        )

    now = time.now_utc()
    group = Group(id=uuid4(), name=name, created_by=inp.creator_id, created_at=now)
    store.add_group(group, Membership(group_id=group.id, user_id=inp.creator_id, joined_at=now))
    logger.info("Group %s created by %s", group.id, inp.creator_id)
    return GroupOutput(group=group, success=True)


def run_leave(inp: LeaveGroupInput, store: GroupStorePort) -> MembershipOutput:
    group = store.get_group(inp.group_id)
    if group is None:
        return MembershipOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "Group not found"))

    if group.created_by == inp.user_id:
        return MembershipOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "Group owners cannot leave their own group")
        )

    membership = store.get_membership(inp.group_id, inp.user_id)
    if membership is None or not store.delete_membership(inp.group_id, inp.user_id):
        return MembershipOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "You are not a member of this group")
        )

    logger.info("User %s left group %s", inp.user_id, inp.group_id)
    return MembershipOutput(membership=membership, success=True)


def run_remove_member(inp: RemoveMemberInput, store: GroupStorePort) -> MembershipOutput:
    group = store.get_group(inp.group_id)
    if group is None:
        return MembershipOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "Group not found"))

    if group.created_by != inp.actor_id:
        return MembershipOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "Only the group owner can remove members")
        )

    if inp.target_id == inp.actor_id:
        return MembershipOutput(
            error=LifecycleError(
                ErrorKind.VALIDATION_ERROR, "You cannot remove yourself from your own group"
            )
        )

    membership = store.get_membership(inp.group_id, inp.target_id)
    if membership is None or not store.delete_membership(inp.group_id, inp.target_id):
        return MembershipOutput(
            error=LifecycleError(ErrorKind.NOT_FOUND, "User is not a member of this group")
        )

    logger.info("Owner %s removed %s from group %s", inp.actor_id, inp.target_id, inp.group_id)
    return MembershipOutput(membership=membership, success=True)


def run(
    inp: CreateGroupInput | LeaveGroupInput | RemoveMemberInput,
    *,
    store: GroupStorePort,
    time: TimePort | None = None,  # Only needed for create
    rules: Rules | None = None,  # Only needed for create
) -> GroupOutput | MembershipOutput:
    if isinstance(inp, CreateGroupInput):
        assert time and rules
        return run_create_group(inp, store, time, rules)
    elif isinstance(inp, LeaveGroupInput):
        return run_leave(inp, store)
    elif isinstance(inp, RemoveMemberInput):
        return run_remove_member(inp, store)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")


# --- Reads ---


def list_members(group_id: UUID, actor_id: UUID, store: GroupStorePort) -> MembersOutput:
    """Members of a group, owner first then by join time. Members only."""
    group = store.get_group(group_id)
    if group is None:
        return MembersOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "Group not found"))
    if store.get_membership(group_id, actor_id) is None:
        return MembersOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "You are not a member of this group")
        )

    memberships = store.list_memberships_by_group(group_id)
    users = {u.id: u for u in store.list_users([m.user_id for m in memberships])}
    members = [
        MemberView(
            user=users[m.user_id],
            joined_at=m.joined_at,
            is_owner=m.user_id == group.created_by,
        )
        for m in memberships
        if m.user_id in users
    ]
    members.sort(key=lambda v: (not v.is_owner, v.joined_at))
    return MembersOutput(members=members, success=True)


def list_user_groups(user_id: UUID, store: GroupStorePort) -> list[Group]:
    """Groups the user belongs to, oldest membership first."""
    memberships = sorted(store.list_memberships_by_user(user_id), key=lambda m: m.joined_at)
    groups = {g.id: g for g in store.list_groups([m.group_id for m in memberships])}
    return [groups[m.group_id] for m in memberships if m.group_id in groups]
