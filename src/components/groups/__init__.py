"""
Groups component - group creation and membership management.
"""

from .component import (
    list_members,
    list_user_groups,
    run,
    run_create_group,
    run_leave,
    run_remove_member,
)
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

__all__ = [
    # Entry points
    "run",
    "run_create_group",
    "run_leave",
    "run_remove_member",
    # Reads
    "list_members",
    "list_user_groups",
    # Input models
    "CreateGroupInput",
    "LeaveGroupInput",
    "RemoveMemberInput",
    # Output models
    "GroupOutput",
    "MembershipOutput",
    "MembersOutput",
    "MemberView",
    # Ports
    "GroupStorePort",
    "TimePort",
]
