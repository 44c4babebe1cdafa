from __future__ import annotations

from uuid import UUID

from src.components import groups as membership
from src.components.groups import GroupStorePort, MemberView, TimePort
from src.domain.entities import Group
from src.domain.errors import raise_for_error
from src.rules.models import Rules


class GroupService:
    def __init__(self, store: GroupStorePort, clock: TimePort, rules: Rules):
        self.store = store
        self.clock = clock
        self.rules = rules

    def create_group(self, name: str, creator_id: UUID) -> Group:
        output = membership.run_create_group(
            membership.CreateGroupInput(name, creator_id), self.store, self.clock, self.rules
        )
        raise_for_error(output.error)
        assert output.group is not None
        return output.group

    def leave_group(self, group_id: UUID, user_id: UUID) -> None:
        output = membership.run_leave(membership.LeaveGroupInput(group_id, user_id), self.store)
        raise_for_error(output.error)

    def remove_member(self, group_id: UUID, target_id: UUID, actor_id: UUID) -> None:
        output = membership.run_remove_member(
            membership.RemoveMemberInput(group_id, target_id, actor_id), self.store
        )
        raise_for_error(output.error)

    def list_members(self, group_id: UUID, actor_id: UUID) -> list[MemberView]:
        output = membership.list_members(group_id, actor_id, self.store)
        raise_for_error(output.error)
        return output.members

    def list_user_groups(self, user_id: UUID) -> list[Group]:
        return membership.list_user_groups(user_id, self.store)
