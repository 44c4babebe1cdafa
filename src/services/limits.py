from __future__ import annotations

from uuid import UUID

from src.components import limits
from src.components.limits import LimitsWriterPort, UsageSummary
from src.domain.entities import UserLimits
from src.ports.clock import ClockPort
from src.rules.models import Rules


class LimitsService:
    def __init__(self, store: LimitsWriterPort, clock: ClockPort, rules: Rules):
        self.store = store
        self.clock = clock
        self.rules = rules

    def usage_summary(self, user_id: UUID) -> UsageSummary:
        return limits.usage_summary(user_id, self.store, self.rules.limits, self.clock.now_utc())

    def can_create_request(self, user_id: UUID) -> bool:
        return limits.can_create_request(user_id, self.store, self.rules.limits)

    def can_create_group(self, user_id: UUID) -> bool:
        return limits.can_create_group(user_id, self.store, self.rules.limits)

    def can_join_group(self, user_id: UUID) -> bool:
        return limits.can_join_group(user_id, self.store, self.rules.limits)

    def can_issue_invite(self, user_id: UUID) -> bool:
        return limits.can_issue_invite(user_id, self.store, self.rules.limits, self.clock.now_utc())

    def set_user_limits(
        self,
        user_id: UUID,
        *,
        max_open_requests: int | None = None,
        max_groups_created: int | None = None,
        max_groups_joined: int | None = None,
    ) -> UserLimits:
        return limits.update_user_limits(
            user_id,
            self.store,
            self.rules.limits,
            self.clock.now_utc(),
            max_open_requests=max_open_requests,
            max_groups_created=max_groups_created,
            max_groups_joined=max_groups_joined,
        )
