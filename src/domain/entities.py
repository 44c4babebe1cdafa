from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# --- Enums / Literals ---
RequestStatus = Literal["open", "claimed", "fulfilled"]
DisplayStatus = Literal["open", "claimed", "fulfilled", "expired"]


def utc_now() -> datetime:
    return datetime.now(UTC)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# --- Users & Auth ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    name: str = ""
    phone: str = ""
    general_area: str = ""
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)


class Session(BaseModel):
    token: str
    user_id: UUID
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)

    def is_active(self, now: datetime) -> bool:
        return now <= self.expires_at


class UserLimits(BaseModel):
    """Per-user ceilings. A missing row means rules.yaml defaults apply."""

    user_id: UUID
    max_open_requests: int
    max_groups_created: int
    max_groups_joined: int
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# --- Groups ---

class Group(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    created_by: UUID
    created_at: datetime = Field(default_factory=utc_now)


class Membership(BaseModel):
    group_id: UUID
    user_id: UUID
    joined_at: datetime = Field(default_factory=utc_now)


# --- Requests ---

class PickupRequest(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    group_id: UUID
    item_description: str
    store_preference: str | None = None
    pickup_notes: str | None = None
    needed_by: datetime
    status: RequestStatus = "open"

    claimed_by: UUID | None = None
    claimed_at: datetime | None = None
    fulfilled_at: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def is_expired(self, now: datetime) -> bool:
        return self.needed_by < now


# --- Invitations ---

class Invite(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    group_id: UUID
    email: str
    token: str
    invited_by: UUID
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)

    def is_open(self, now: datetime) -> bool:
        return self.used_at is None and now <= self.expires_at
