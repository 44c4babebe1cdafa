"""
Invitation lifecycle component.

Functional core for group invitations: issue, validate, accept, decline,
list and purge.

Key behaviors:
- Only the group owner issues invites
- At most one open invite per (group, email); at most max_open_invites
  open invites per inviter across all groups
- Tokens come from secrets.token_urlsafe and expire after validity_days
- Accept sets used_at and adds the membership in one store call, only if
  used_at was still unset, so a token is consumed at most once
- validate/accept report one NotFoundOrExpired for unknown, used and
  expired tokens alike
- The invitation email is dispatched after the invite is stored; a failed
  send is logged by the dispatcher and does not undo the invite
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import timedelta
from uuid import UUID, uuid4

from src.components.limits import (
    count_groups_joined,
    count_open_invites,
    group_has_room,
    has_open_invite,
    resolve_limits,
)
from src.domain.entities import Invite, Membership, User, normalize_email
from src.domain.errors import ErrorKind, LifecycleError
from src.ports.store import ConsumeResult
from src.ports.tasks import TaskDispatcherPort
from src.rules.models import Rules

from .models import (
    AcceptInviteInput,
    AcceptOutput,
    DeclineInviteInput,
    DeclineOutput,
    InviteOutput,
    InviteView,
    IssueInviteInput,
    ValidateOutput,
)
from .ports import InvitationEmailSenderPort, InviteStorePort, TimePort

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_INVITE_MESSAGE = "This invitation is invalid or has expired"


def validate_email(email: str) -> str | None:
    """Normalized email if it looks like an address, else None."""
    normalized = normalize_email(email or "")
    if not normalized or len(normalized) > 254:
        return None
    return normalized if EMAIL_REGEX.match(normalized) else None


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def _display_name(user: User | None) -> str:
    if user is None:
        return "A neighbor"
    return user.name or user.email


# --- Issue ---


def run_issue(
    inp: IssueInviteInput,
    store: InviteStorePort,
    time: TimePort,
    rules: Rules,
    email_sender: InvitationEmailSenderPort,
    dispatcher: TaskDispatcherPort,
) -> InviteOutput:
    group = store.get_group(inp.group_id)
    if group is None:
        return InviteOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "Group not found"))

    if group.created_by != inp.inviter_id:
        return InviteOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "Only the group owner can send invitations")
        )

    email = validate_email(inp.email)
    if email is None:
        return InviteOutput(
            error=LifecycleError(ErrorKind.VALIDATION_ERROR, "Invalid email address", "email")
        )

    existing_user = store.get_user_by_email(email)
    if existing_user and store.get_membership(group.id, existing_user.id):
        return InviteOutput(
            error=LifecycleError(
                ErrorKind.ALREADY_MEMBER, "This user is already a member of the group"
            )
        )

    now = time.now_utc()
    if has_open_invite(group.id, email, store, now):
        return InviteOutput(
            error=LifecycleError(
                ErrorKind.DUPLICATE_INVITE,
                "An invitation has already been sent to this email for this group",
            )
        )

    max_open = rules.limits.max_open_invites
    if count_open_invites(inp.inviter_id, store, now) >= max_open:
        return InviteOutput(
            error=LifecycleError(
                ErrorKind.LIMIT_EXCEEDED,
                f"You can have at most {max_open} pending invitations",
            )
        )

    token = generate_token(rules.invites.token_bytes)
    invite = Invite(
        id=uuid4(),
        group_id=group.id,
        email=email,
        token=token,
        invited_by=inp.inviter_id,
        expires_at=now + timedelta(days=rules.invites.validity_days),
        created_at=now,
    )
    if not store.add_invite_if_no_open(invite, now):
        logger.warning("Lost invite race for group %s, %s", group.id, email)
        return InviteOutput(
            error=LifecycleError(
                ErrorKind.DUPLICATE_INVITE,
                "An invitation has already been sent to this email for this group",
            )
        )
    logger.info("Invite %s issued for group %s by %s", invite.id, group.id, inp.inviter_id)

    inviter_name = _display_name(store.get_user(inp.inviter_id))
    email_task = dispatcher.dispatch(
        f"invite-email-{invite.id}",
        lambda: email_sender.send_invitation_email(email, inviter_name, group, token),
    )

    return InviteOutput(invite=invite, success=True, email_task=email_task)


# --- Validate / accept / decline ---


def run_validate(token: str, store: InviteStorePort, time: TimePort) -> ValidateOutput:
    """Read-only check that a token names an open invite to an existing group."""
    invalid = ValidateOutput(
        error=LifecycleError(ErrorKind.NOT_FOUND_OR_EXPIRED, INVALID_INVITE_MESSAGE)
    )
    if not token:
        return invalid

    invite = store.get_invite_by_token(token)
    if invite is None or not invite.is_open(time.now_utc()):
        return invalid

    group = store.get_group(invite.group_id)
    if group is None:
        return invalid

    return ValidateOutput(group=group, invite=invite, success=True)


def run_accept(
    inp: AcceptInviteInput,
    store: InviteStorePort,
    time: TimePort,
    rules: Rules,
) -> AcceptOutput:
    validated = run_validate(inp.token, store, time)
    if not validated.success or validated.group is None or validated.invite is None:
        return AcceptOutput(error=validated.error)
    group, invite = validated.group, validated.invite

    if store.get_user(inp.user_id) is None:
        return AcceptOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "User not found"))

    if store.get_membership(group.id, inp.user_id) is not None:
        return AcceptOutput(
            error=LifecycleError(ErrorKind.ALREADY_MEMBER, "You are already a member of this group")
        )

    limits = resolve_limits(inp.user_id, store, rules.limits)
    if count_groups_joined(inp.user_id, store) >= limits.max_groups_joined:
        return AcceptOutput(
            error=LifecycleError(
                ErrorKind.LIMIT_EXCEEDED,
                f"You can be a member of at most {limits.max_groups_joined} groups",
            )
        )

    if not group_has_room(group.id, store, rules.limits):
        return AcceptOutput(
            error=LifecycleError(
                ErrorKind.LIMIT_EXCEEDED,
                f"This group has reached its limit of {rules.limits.max_group_members} members",
            )
        )

    now = time.now_utc()
    membership = Membership(group_id=group.id, user_id=inp.user_id, joined_at=now)
    result = store.consume_invite(invite.id, now, membership)

    if result == ConsumeResult.ALREADY_MEMBER:
        logger.warning("Invite %s: membership appeared concurrently, rolled back", invite.id)
        return AcceptOutput(
            error=LifecycleError(ErrorKind.ALREADY_MEMBER, "You are already a member of this group")
        )
    if result != ConsumeResult.CONSUMED:
        logger.warning("Invite %s was consumed before accept could commit", invite.id)
        return AcceptOutput(
            error=LifecycleError(ErrorKind.NOT_FOUND_OR_EXPIRED, INVALID_INVITE_MESSAGE)
        )

    logger.info("Invite %s accepted: user %s joined group %s", invite.id, inp.user_id, group.id)
    return AcceptOutput(group=group, membership=membership, success=True)


def run_decline(
    inp: DeclineInviteInput,
    store: InviteStorePort,
    time: TimePort,
) -> DeclineOutput:
    validated = run_validate(inp.token, store, time)
    if not validated.success or validated.invite is None:
        return DeclineOutput(error=validated.error)
    invite = validated.invite

    user = store.get_user(inp.user_id)
    if user is None:
        return DeclineOutput(error=LifecycleError(ErrorKind.NOT_FOUND, "User not found"))

    if user.email != invite.email:
        return DeclineOutput(
            error=LifecycleError(ErrorKind.FORBIDDEN, "This invitation is not addressed to you")
        )

    now = time.now_utc()
    if store.consume_invite(invite.id, now) != ConsumeResult.CONSUMED:
        return DeclineOutput(
            error=LifecycleError(ErrorKind.NOT_FOUND_OR_EXPIRED, INVALID_INVITE_MESSAGE)
        )

    logger.info("Invite %s declined by %s", invite.id, inp.user_id)
    return DeclineOutput(invite=invite.model_copy(update={"used_at": now}), success=True)


def run(
    inp: IssueInviteInput | AcceptInviteInput | DeclineInviteInput,
    *,
    store: InviteStorePort,
    time: TimePort,
    rules: Rules,
    email_sender: InvitationEmailSenderPort | None = None,  # Only needed for issue
    dispatcher: TaskDispatcherPort | None = None,  # Only needed for issue
) -> InviteOutput | AcceptOutput | DeclineOutput:
    if isinstance(inp, IssueInviteInput):
        assert email_sender and dispatcher
        return run_issue(inp, store, time, rules, email_sender, dispatcher)

    elif isinstance(inp, AcceptInviteInput):
        return run_accept(inp, store, time, rules)

    elif isinstance(inp, DeclineInviteInput):
        return run_decline(inp, store, time)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")


# --- Listing & housekeeping ---


def _views(invites: list[Invite], store: InviteStorePort) -> list[InviteView]:
    groups = {g.id: g for g in store.list_groups(list({i.group_id for i in invites}))}
    users = {u.id: u for u in store.list_users(list({i.invited_by for i in invites}))}
    views = [
        InviteView(
            invite=i,
            group_name=groups[i.group_id].name,
            inviter_name=_display_name(users.get(i.invited_by)),
        )
        for i in invites
        if i.group_id in groups
    ]
    return sorted(views, key=lambda v: v.invite.created_at, reverse=True)


def list_incoming(user_id: UUID, store: InviteStorePort, time: TimePort) -> list[InviteView]:
    """Open invites addressed to the user's email, newest first."""
    user = store.get_user(user_id)
    if user is None:
        return []
    now = time.now_utc()
    return _views([i for i in store.list_invites_by_email(user.email) if i.is_open(now)], store)


def list_outgoing(user_id: UUID, store: InviteStorePort, time: TimePort) -> list[InviteView]:
    """Open invites issued by the user, newest first."""
    now = time.now_utc()
    return _views([i for i in store.list_invites_by_inviter(user_id) if i.is_open(now)], store)


def purge_expired(store: InviteStorePort, time: TimePort) -> int:
    """Delete unused invites past their expiry. Returns how many were removed."""
    removed = store.delete_expired_invites(time.now_utc())
    if removed:
        logger.info("Purged %d expired invites", removed)
    return removed
