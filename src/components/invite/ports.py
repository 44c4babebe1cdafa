from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.components.limits import LimitsStorePort
from src.domain.entities import Group, Invite, Membership, User
from src.ports.store import ConsumeResult


class InviteStorePort(LimitsStorePort, Protocol):
    """Store surface used by the invitation lifecycle."""

    def get_user(self, user_id: UUID) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def list_users(self, user_ids: list[UUID]) -> list[User]: ...

    def get_group(self, group_id: UUID) -> Group | None: ...
    def list_groups(self, group_ids: list[UUID]) -> list[Group]: ...
    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None: ...

    def get_invite_by_token(self, token: str) -> Invite | None: ...
    def list_invites_by_email(self, email: str) -> list[Invite]: ...
    def add_invite(self, invite: Invite) -> Invite: ...
    def add_invite_if_no_open(self, invite: Invite, now: datetime) -> bool: ...
    def consume_invite(
        self,
        invite_id: UUID,
        used_at: datetime,
        membership: Membership | None = None,
    ) -> ConsumeResult: ...
    def delete_expired_invites(self, now: datetime) -> int: ...


class InvitationEmailSenderPort(Protocol):
    """
    Delivers the invitation email.

    Returns a delivery id. May raise; callers run it through a task
    dispatcher that logs failures.
    """

    def send_invitation_email(
        self,
        recipient_email: str,
        inviter_name: str,
        group: Group,
        token: str,
    ) -> str: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
