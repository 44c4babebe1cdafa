"""
SQLite EntityStore adapter.

One connection per call; each conditional write runs in its own
transaction. Compare-and-swap is expressed as a guarded UPDATE/DELETE whose
rowcount tells whether the stored row still matched the caller's snapshot.

Timestamps are stored as UTC ISO-8601 strings with fixed microsecond
precision so they compare correctly as text.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
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


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def to_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def parse_uuid(s: str | None) -> UUID | None:
    """Parse UUID string."""
    return UUID(s) if s else None


def _id(value: UUID | None) -> str | None:
    return str(value) if value else None


def _placeholders(n: int) -> str:
    return ",".join("?" for _ in range(n))


class SQLiteEntityStore:
    def __init__(self, db_path: str, timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            row: dict[str, Any] | None = conn.execute(sql, params).fetchone()
            return row
        finally:
            conn.close()

    def _fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            return list(conn.execute(sql, params).fetchall())
        finally:
            conn.close()

    def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Row mappers
    # -------------------------------------------------------------------------

    def _map_user(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            phone=row["phone"],
            general_area=row["general_area"],
            is_admin=bool(row["is_admin"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _map_group(self, row: dict[str, Any]) -> Group:
        return Group(
            id=UUID(row["id"]),
            name=row["name"],
            created_by=UUID(row["created_by"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _map_membership(self, row: dict[str, Any]) -> Membership:
        return Membership(
            group_id=UUID(row["group_id"]),
            user_id=UUID(row["user_id"]),
            joined_at=datetime.fromisoformat(row["joined_at"]),
        )

    def _map_request(self, row: dict[str, Any]) -> PickupRequest:
        return PickupRequest(
            id=UUID(row["id"]),
            user_id=UUID(row["user_id"]),
            group_id=UUID(row["group_id"]),
            item_description=row["item_description"],
            store_preference=row["store_preference"],
            pickup_notes=row["pickup_notes"],
            needed_by=datetime.fromisoformat(row["needed_by"]),
            status=row["status"],
            claimed_by=parse_uuid(row["claimed_by"]),
            claimed_at=parse_dt(row["claimed_at"]),
            fulfilled_at=parse_dt(row["fulfilled_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _map_invite(self, row: dict[str, Any]) -> Invite:
        return Invite(
            id=UUID(row["id"]),
            group_id=UUID(row["group_id"]),
            email=row["email"],
            token=row["token"],
            invited_by=UUID(row["invited_by"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
            used_at=parse_dt(row["used_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # -------------------------------------------------------------------------
    # Users, sessions, limits
    # -------------------------------------------------------------------------

    def get_user(self, user_id: UUID) -> User | None:
        row = self._fetch_one("SELECT * FROM users WHERE id = ?", (str(user_id),))
        return self._map_user(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        row = self._fetch_one("SELECT * FROM users WHERE email = ?", (normalize_email(email),))
        return self._map_user(row) if row else None

    def list_users(self, user_ids: list[UUID]) -> list[User]:
        if not user_ids:
            return []
        rows = self._fetch_all(
            f"SELECT * FROM users WHERE id IN ({_placeholders(len(user_ids))})",
            tuple(str(u) for u in user_ids),
        )
        return [self._map_user(r) for r in rows]

    def save_user(self, user: User) -> User:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO users (id, email, name, phone, general_area, is_admin, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email = excluded.email,
                    name = excluded.name,
                    phone = excluded.phone,
                    general_area = excluded.general_area,
                    is_admin = excluded.is_admin
                """,
                (
                    str(user.id),
                    user.email,
                    user.name,
                    user.phone,
                    user.general_area,
                    int(user.is_admin),
                    to_iso(user.created_at),
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValueError(f"Email already registered: {user.email}") from e
        finally:
            conn.close()
        return user

    def get_session(self, token: str) -> Session | None:
        row = self._fetch_one("SELECT * FROM sessions WHERE token = ?", (token,))
        if not row:
            return None
        return Session(
            token=row["token"],
            user_id=UUID(row["user_id"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def save_session(self, session: Session) -> Session:
        self._execute(
            """
            INSERT OR REPLACE INTO sessions (token, user_id, expires_at, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                session.token,
                str(session.user_id),
                to_iso(session.expires_at),
                to_iso(session.created_at),
            ),
        )
        return session

    def get_user_limits(self, user_id: UUID) -> UserLimits | None:
        row = self._fetch_one("SELECT * FROM user_limits WHERE user_id = ?", (str(user_id),))
        if not row:
            return None
        return UserLimits(
            user_id=UUID(row["user_id"]),
            max_open_requests=row["max_open_requests"],
            max_groups_created=row["max_groups_created"],
            max_groups_joined=row["max_groups_joined"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def save_user_limits(self, limits: UserLimits) -> UserLimits:
        self._execute(
            """
            INSERT OR REPLACE INTO user_limits (
                user_id, max_open_requests, max_groups_created, max_groups_joined,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(limits.user_id),
                limits.max_open_requests,
                limits.max_groups_created,
                limits.max_groups_joined,
                to_iso(limits.created_at),
                to_iso(limits.updated_at),
            ),
        )
        return limits

    # -------------------------------------------------------------------------
    # Groups & memberships
    # -------------------------------------------------------------------------

    def get_group(self, group_id: UUID) -> Group | None:
        row = self._fetch_one("SELECT * FROM groups WHERE id = ?", (str(group_id),))
        return self._map_group(row) if row else None

    def list_groups(self, group_ids: list[UUID]) -> list[Group]:
        if not group_ids:
            return []
        rows = self._fetch_all(
            f"SELECT * FROM groups WHERE id IN ({_placeholders(len(group_ids))})",
            tuple(str(g) for g in group_ids),
        )
        return [self._map_group(r) for r in rows]

    def list_groups_created_by(self, user_id: UUID) -> list[Group]:
        rows = self._fetch_all("SELECT * FROM groups WHERE created_by = ?", (str(user_id),))
        return [self._map_group(r) for r in rows]

    def add_group(self, group: Group, owner_membership: Membership) -> Group:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO groups (id, name, created_by, created_at) VALUES (?, ?, ?, ?)",
                (str(group.id), group.name, str(group.created_by), to_iso(group.created_at)),
            )
            conn.execute(
                "INSERT INTO group_members (group_id, user_id, joined_at) VALUES (?, ?, ?)",
                (
                    str(owner_membership.group_id),
                    str(owner_membership.user_id),
                    to_iso(owner_membership.joined_at),
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValueError(f"Could not create group {group.id}: {e}") from e
        finally:
            conn.close()
        return group

    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None:
        row = self._fetch_one(
            "SELECT * FROM group_members WHERE group_id = ? AND user_id = ?",
            (str(group_id), str(user_id)),
        )
        return self._map_membership(row) if row else None

    def list_memberships_by_group(self, group_id: UUID) -> list[Membership]:
        rows = self._fetch_all(
            "SELECT * FROM group_members WHERE group_id = ? ORDER BY joined_at ASC",
            (str(group_id),),
        )
        return [self._map_membership(r) for r in rows]

    def list_memberships_by_user(self, user_id: UUID) -> list[Membership]:
        rows = self._fetch_all(
            "SELECT * FROM group_members WHERE user_id = ? ORDER BY joined_at ASC",
            (str(user_id),),
        )
        return [self._map_membership(r) for r in rows]

    def delete_membership(self, group_id: UUID, user_id: UUID) -> bool:
        count = self._execute(
            "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
            (str(group_id), str(user_id)),
        )
        return count > 0

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def get_request(self, request_id: UUID) -> PickupRequest | None:
        row = self._fetch_one("SELECT * FROM requests WHERE id = ?", (str(request_id),))
        return self._map_request(row) if row else None

    def list_requests_by_group(self, group_id: UUID) -> list[PickupRequest]:
        rows = self._fetch_all("SELECT * FROM requests WHERE group_id = ?", (str(group_id),))
        return [self._map_request(r) for r in rows]

    def list_requests_by_user(self, user_id: UUID) -> list[PickupRequest]:
        rows = self._fetch_all("SELECT * FROM requests WHERE user_id = ?", (str(user_id),))
        return [self._map_request(r) for r in rows]

    def add_request(self, request: PickupRequest) -> PickupRequest:
        self._execute(
            """
            INSERT INTO requests (
                id, user_id, group_id, item_description, store_preference,
                pickup_notes, needed_by, status, claimed_by, claimed_at,
                fulfilled_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(request.id),
                str(request.user_id),
                str(request.group_id),
                request.item_description,
                request.store_preference,
                request.pickup_notes,
                to_iso(request.needed_by),
                request.status,
                _id(request.claimed_by),
                to_iso(request.claimed_at),
                to_iso(request.fulfilled_at),
                to_iso(request.created_at),
                to_iso(request.updated_at),
            ),
        )
        return request

    def swap_request(self, expected: PickupRequest, updated: PickupRequest) -> bool:
        count = self._execute(
            """
            UPDATE requests
            SET item_description = ?, store_preference = ?, pickup_notes = ?,
                needed_by = ?, status = ?, claimed_by = ?, claimed_at = ?,
                fulfilled_at = ?, updated_at = ?
            WHERE id = ? AND status = ? AND claimed_by IS ?
            """,
            (
                updated.item_description,
                updated.store_preference,
                updated.pickup_notes,
                to_iso(updated.needed_by),
                updated.status,
                _id(updated.claimed_by),
                to_iso(updated.claimed_at),
                to_iso(updated.fulfilled_at),
                to_iso(updated.updated_at),
                str(expected.id),
                expected.status,
                _id(expected.claimed_by),
            ),
        )
        if count == 0:
            logger.debug("swap_request rejected for %s", expected.id)
        return count > 0

    def delete_request(self, request_id: UUID, expected_status: RequestStatus) -> bool:
        count = self._execute(
            "DELETE FROM requests WHERE id = ? AND status = ?",
            (str(request_id), expected_status),
        )
        return count > 0

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    def get_invite(self, invite_id: UUID) -> Invite | None:
        row = self._fetch_one("SELECT * FROM invites WHERE id = ?", (str(invite_id),))
        return self._map_invite(row) if row else None

    def get_invite_by_token(self, token: str) -> Invite | None:
        row = self._fetch_one("SELECT * FROM invites WHERE token = ?", (token,))
        return self._map_invite(row) if row else None

    def list_invites_for_group_email(self, group_id: UUID, email: str) -> list[Invite]:
        rows = self._fetch_all(
            "SELECT * FROM invites WHERE group_id = ? AND email = ?",
            (str(group_id), normalize_email(email)),
        )
        return [self._map_invite(r) for r in rows]

    def list_invites_by_inviter(self, user_id: UUID) -> list[Invite]:
        rows = self._fetch_all("SELECT * FROM invites WHERE invited_by = ?", (str(user_id),))
        return [self._map_invite(r) for r in rows]

    def list_invites_by_email(self, email: str) -> list[Invite]:
        rows = self._fetch_all("SELECT * FROM invites WHERE email = ?", (normalize_email(email),))
        return [self._map_invite(r) for r in rows]

    def add_invite(self, invite: Invite) -> Invite:
        try:
            self._execute(
                """
                INSERT INTO invites (
                    id, group_id, email, token, invited_by, expires_at, used_at, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(invite.id),
                    str(invite.group_id),
                    invite.email,
                    invite.token,
                    str(invite.invited_by),
                    to_iso(invite.expires_at),
                    to_iso(invite.used_at),
                    to_iso(invite.created_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Could not store invite: {e}") from e
        return invite

    def add_invite_if_no_open(self, invite: Invite, now: datetime) -> bool:
        try:
            count = self._execute(
                """
                INSERT INTO invites (
                    id, group_id, email, token, invited_by, expires_at, used_at, created_at
                )
                SELECT ?, ?, ?, ?, ?, ?, ?, ?
                WHERE NOT EXISTS (
                    SELECT 1 FROM invites
                    WHERE group_id = ? AND email = ? AND used_at IS NULL AND expires_at >= ?
                )
                """,
                (
                    str(invite.id),
                    str(invite.group_id),
                    invite.email,
                    invite.token,
                    str(invite.invited_by),
                    to_iso(invite.expires_at),
                    to_iso(invite.used_at),
                    to_iso(invite.created_at),
                    str(invite.group_id),
                    invite.email,
                    to_iso(now),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Could not store invite: {e}") from e
        if count == 0:
            logger.debug(
                "add_invite_if_no_open rejected for %s/%s", invite.group_id, invite.email
            )
        return count > 0

    def consume_invite(
        self,
        invite_id: UUID,
        used_at: datetime,
        membership: Membership | None = None,
    ) -> ConsumeResult:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE invites SET used_at = ? WHERE id = ? AND used_at IS NULL",
                (to_iso(used_at), str(invite_id)),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                exists = conn.execute(
                    "SELECT 1 FROM invites WHERE id = ?", (str(invite_id),)
                ).fetchone()
                return ConsumeResult.ALREADY_USED if exists else ConsumeResult.NOT_FOUND

            if membership is not None:
                try:
                    conn.execute(
                        "INSERT INTO group_members (group_id, user_id, joined_at) VALUES (?, ?, ?)",
                        (
                            str(membership.group_id),
                            str(membership.user_id),
                            to_iso(membership.joined_at),
                        ),
                    )
                except sqlite3.IntegrityError:
                    conn.rollback()
                    return ConsumeResult.ALREADY_MEMBER

            conn.commit()
            return ConsumeResult.CONSUMED
        finally:
            conn.close()

    def delete_expired_invites(self, now: datetime) -> int:
        return self._execute(
            "DELETE FROM invites WHERE used_at IS NULL AND expires_at < ?",
            (to_iso(now),),
        )
