"""
In-memory EntityStore adapter.

Process-local store used by tests and single-process development runs.
Every read hands out a copy, so a caller holding an entity never sees
later writes. Conditional writes are serialized under one re-entrant lock,
which makes compare-and-swap atomic within the process.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from uuid import UUID

from src.domain.entities import (
    Group,
    Invite,
    Membership,
    PickupRequest,
    RequestStatus,
    Session,
    User,
    UserLimits,
    normalize_email,
)
from src.ports.store import ConsumeResult

logger = logging.getLogger(__name__)


class InMemoryEntityStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[UUID, User] = {}
        self._users_by_email: dict[str, UUID] = {}
        self._sessions: dict[str, Session] = {}
        self._user_limits: dict[UUID, UserLimits] = {}
        self._groups: dict[UUID, Group] = {}
        self._memberships: dict[tuple[UUID, UUID], Membership] = {}
        self._requests: dict[UUID, PickupRequest] = {}
        self._invites: dict[UUID, Invite] = {}
        self._invites_by_token: dict[str, UUID] = {}

    # --- Users ---

    def get_user(self, user_id: UUID) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._users_by_email.get(normalize_email(email))
            return self.get_user(user_id) if user_id else None

    def list_users(self, user_ids: list[UUID]) -> list[User]:
        with self._lock:
            return [self._users[uid].model_copy() for uid in user_ids if uid in self._users]

    def save_user(self, user: User) -> User:
        with self._lock:
            owner = self._users_by_email.get(user.email)
            if owner is not None and owner != user.id:
                raise ValueError(f"Email already registered: {user.email}")
            previous = self._users.get(user.id)
            if previous and previous.email != user.email:
                del self._users_by_email[previous.email]
            self._users[user.id] = user.model_copy()
            self._users_by_email[user.email] = user.id
            return user

    def get_session(self, token: str) -> Session | None:
        with self._lock:
            session = self._sessions.get(token)
            return session.model_copy() if session else None

    def save_session(self, session: Session) -> Session:
        with self._lock:
            self._sessions[session.token] = session.model_copy()
            return session

    def get_user_limits(self, user_id: UUID) -> UserLimits | None:
        with self._lock:
            limits = self._user_limits.get(user_id)
            return limits.model_copy() if limits else None

    def save_user_limits(self, limits: UserLimits) -> UserLimits:
        with self._lock:
            self._user_limits[limits.user_id] = limits.model_copy()
            return limits

    # --- Groups & memberships ---

    def get_group(self, group_id: UUID) -> Group | None:
        with self._lock:
            group = self._groups.get(group_id)
            return group.model_copy() if group else None

    def list_groups(self, group_ids: list[UUID]) -> list[Group]:
        with self._lock:
            return [self._groups[gid].model_copy() for gid in group_ids if gid in self._groups]

    def list_groups_created_by(self, user_id: UUID) -> list[Group]:
        with self._lock:
            return [g.model_copy() for g in self._groups.values() if g.created_by == user_id]

    def add_group(self, group: Group, owner_membership: Membership) -> Group:
        with self._lock:
            if group.id in self._groups:
                raise ValueError(f"Group already exists: {group.id}")
            self._groups[group.id] = group.model_copy()
            key = (owner_membership.group_id, owner_membership.user_id)
            self._memberships[key] = owner_membership.model_copy()
            return group

    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None:
        with self._lock:
            membership = self._memberships.get((group_id, user_id))
            return membership.model_copy() if membership else None

    def list_memberships_by_group(self, group_id: UUID) -> list[Membership]:
        with self._lock:
            return [m.model_copy() for m in self._memberships.values() if m.group_id == group_id]

    def list_memberships_by_user(self, user_id: UUID) -> list[Membership]:
        with self._lock:
            return [m.model_copy() for m in self._memberships.values() if m.user_id == user_id]

    def delete_membership(self, group_id: UUID, user_id: UUID) -> bool:
        with self._lock:
            return self._memberships.pop((group_id, user_id), None) is not None

    # --- Requests ---

    def get_request(self, request_id: UUID) -> PickupRequest | None:
        with self._lock:
            request = self._requests.get(request_id)
            return request.model_copy() if request else None

    def list_requests_by_group(self, group_id: UUID) -> list[PickupRequest]:
        with self._lock:
            return [r.model_copy() for r in self._requests.values() if r.group_id == group_id]

    def list_requests_by_user(self, user_id: UUID) -> list[PickupRequest]:
        with self._lock:
            return [r.model_copy() for r in self._requests.values() if r.user_id == user_id]

    def add_request(self, request: PickupRequest) -> PickupRequest:
        with self._lock:
            if request.id in self._requests:
                raise ValueError(f"Request already exists: {request.id}")
            self._requests[request.id] = request.model_copy()
            return request

    def swap_request(self, expected: PickupRequest, updated: PickupRequest) -> bool:
        with self._lock:
            current = self._requests.get(expected.id)
            if current is None:
                return False
            if current.status != expected.status or current.claimed_by != expected.claimed_by:
                logger.debug(
                    "swap_request rejected for %s: stored %s/%s, expected %s/%s",
                    expected.id,
                    current.status,
                    current.claimed_by,
                    expected.status,
                    expected.claimed_by,
                )
                return False
            self._requests[expected.id] = updated.model_copy()
            return True

    def delete_request(self, request_id: UUID, expected_status: RequestStatus) -> bool:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or current.status != expected_status:
                return False
            del self._requests[request_id]
            return True

    # --- Invites ---

    def get_invite(self, invite_id: UUID) -> Invite | None:
        with self._lock:
            invite = self._invites.get(invite_id)
            return invite.model_copy() if invite else None

    def get_invite_by_token(self, token: str) -> Invite | None:
        with self._lock:
            invite_id = self._invites_by_token.get(token)
            return self.get_invite(invite_id) if invite_id else None

    def list_invites_for_group_email(self, group_id: UUID, email: str) -> list[Invite]:
        email = normalize_email(email)
        with self._lock:
            return [
                i.model_copy()
                for i in self._invites.values()
                if i.group_id == group_id and i.email == email
            ]

    def list_invites_by_inviter(self, user_id: UUID) -> list[Invite]:
        with self._lock:
            return [i.model_copy() for i in self._invites.values() if i.invited_by == user_id]

    def list_invites_by_email(self, email: str) -> list[Invite]:
        email = normalize_email(email)
        with self._lock:
            return [i.model_copy() for i in self._invites.values() if i.email == email]

    def add_invite(self, invite: Invite) -> Invite:
        with self._lock:
            if invite.token in self._invites_by_token:
                raise ValueError("Invite token collision")
            self._invites[invite.id] = invite.model_copy()
            self._invites_by_token[invite.token] = invite.id
            return invite

    def add_invite_if_no_open(self, invite: Invite, now: datetime) -> bool:
        with self._lock:
            for existing in self._invites.values():
                if (
                    existing.group_id == invite.group_id
                    and existing.email == invite.email
                    and existing.is_open(now)
                ):
                    return False
            self.add_invite(invite)
            return True

    def consume_invite(
        self,
        invite_id: UUID,
        used_at: datetime,
        membership: Membership | None = None,
    ) -> ConsumeResult:
        with self._lock:
            invite = self._invites.get(invite_id)
            if invite is None:
                return ConsumeResult.NOT_FOUND
            if invite.used_at is not None:
                return ConsumeResult.ALREADY_USED
            if membership is not None:
                key = (membership.group_id, membership.user_id)
                if key in self._memberships:
                    return ConsumeResult.ALREADY_MEMBER
                self._memberships[key] = membership.model_copy()
            self._invites[invite_id] = invite.model_copy(update={"used_at": used_at})
            return ConsumeResult.CONSUMED

    def delete_expired_invites(self, now: datetime) -> int:
        with self._lock:
            expired = [
                i for i in self._invites.values() if i.used_at is None and i.expires_at < now
            ]
            for invite in expired:
                del self._invites[invite.id]
                del self._invites_by_token[invite.token]
            return len(expired)
