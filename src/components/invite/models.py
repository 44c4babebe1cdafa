"""
Invitation lifecycle models.

Per-invite states:
- issued: used_at unset and now <= expires_at (an "open" invite)
- used: used_at set, by acceptance or decline (terminal)
- expired: derived from now > expires_at, never stored
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from src.domain.entities import Group, Invite, Membership
from src.domain.errors import LifecycleError
from src.ports.tasks import TaskResult

# --- Input Models ---


@dataclass(frozen=True)
class IssueInviteInput:
    group_id: UUID
    email: str
    inviter_id: UUID


@dataclass(frozen=True)
class AcceptInviteInput:
    token: str
    user_id: UUID


@dataclass(frozen=True)
class DeclineInviteInput:
    token: str
    user_id: UUID


# --- Output Models ---


@dataclass
class InviteOutput:
    """
    Result of issuing an invite.

    email_task is the dispatcher's view of the email send; its failure
    never turns success into False.
    """

    invite: Invite | None = None
    success: bool = False
    error: LifecycleError | None = None
    email_task: TaskResult | None = None


@dataclass
class ValidateOutput:
    group: Group | None = None
    invite: Invite | None = None
    success: bool = False
    error: LifecycleError | None = None


@dataclass
class AcceptOutput:
    group: Group | None = None
    membership: Membership | None = None
    success: bool = False
    error: LifecycleError | None = None


@dataclass
class DeclineOutput:
    invite: Invite | None = None
    success: bool = False
    error: LifecycleError | None = None


@dataclass(frozen=True)
class InviteView:
    """An open invite with the names a recipient or sender needs to see."""

    invite: Invite
    group_name: str
    inviter_name: str
