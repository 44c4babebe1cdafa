from __future__ import annotations

from uuid import UUID

from src.components import invite as lifecycle
from src.components.invite import InvitationEmailSenderPort, InviteStorePort, InviteView, TimePort
from src.components.limits import InvitationCount, invitation_count
from src.domain.entities import Group, Invite
from src.domain.errors import raise_for_error
from src.ports.tasks import TaskDispatcherPort
from src.rules.models import Rules


class InviteService:
    def __init__(
        self,
        store: InviteStorePort,
        clock: TimePort,
        rules: Rules,
        email_sender: InvitationEmailSenderPort,
        dispatcher: TaskDispatcherPort,
    ):
        self.store = store
        self.clock = clock
        self.rules = rules
        self.email_sender = email_sender
        self.dispatcher = dispatcher

    def issue_invite(self, group_id: UUID, email: str, inviter_id: UUID) -> Invite:
        output = lifecycle.run_issue(
            lifecycle.IssueInviteInput(group_id=group_id, email=email, inviter_id=inviter_id),
            self.store,
            self.clock,
            self.rules,
            self.email_sender,
            self.dispatcher,
        )
        raise_for_error(output.error)
        assert output.invite is not None
        return output.invite

    def validate_invite(self, token: str) -> tuple[Group, Invite]:
        output = lifecycle.run_validate(token, self.store, self.clock)
        raise_for_error(output.error)
        assert output.group is not None and output.invite is not None
        return output.group, output.invite

    def accept_invite(self, token: str, user_id: UUID) -> Group:
        output = lifecycle.run_accept(
            lifecycle.AcceptInviteInput(token, user_id), self.store, self.clock, self.rules
        )
        raise_for_error(output.error)
        assert output.group is not None
        return output.group

    def decline_invite(self, token: str, user_id: UUID) -> Invite:
        output = lifecycle.run_decline(
            lifecycle.DeclineInviteInput(token, user_id), self.store, self.clock
        )
        raise_for_error(output.error)
        assert output.invite is not None
        return output.invite

    def list_incoming(self, user_id: UUID) -> list[InviteView]:
        return lifecycle.list_incoming(user_id, self.store, self.clock)

    def list_outgoing(self, user_id: UUID) -> list[InviteView]:
        return lifecycle.list_outgoing(user_id, self.store, self.clock)

    def invitation_count(self, user_id: UUID) -> InvitationCount:
        return invitation_count(user_id, self.store, self.rules.limits, self.clock.now_utc())

    def purge_expired(self) -> int:
        return lifecycle.purge_expired(self.store, self.clock)
