"""
Request lifecycle models.

State machine (stored statuses only; "expired" is derived at read time):
- open -> claimed (claim)
- claimed -> open (unclaim)
- claimed -> fulfilled (fulfill)
- open/claimed -> removed (delete)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from src.domain.entities import PickupRequest, RequestStatus
from src.domain.errors import LifecycleError

VALID_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    "open": {"claimed"},
    "claimed": {"open", "fulfilled"},
    "fulfilled": set(),  # Terminal state
}

DELETABLE_STATUSES: frozenset[RequestStatus] = frozenset({"open", "claimed"})


def can_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Input Models ---


@dataclass(frozen=True)
class CreateRequestInput:
    user_id: UUID
    group_id: UUID
    item_description: str
    needed_by: datetime | date | str
    store_preference: str | None = None
    pickup_notes: str | None = None


@dataclass(frozen=True)
class RequestActionInput:
    """Acting user and target request for a transition."""

    request_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class ClaimInput(RequestActionInput):
    pass


@dataclass(frozen=True)
class UnclaimInput(RequestActionInput):
    pass


@dataclass(frozen=True)
class FulfillInput(RequestActionInput):
    pass


@dataclass(frozen=True)
class DeleteInput(RequestActionInput):
    pass


# --- Output Models ---


@dataclass
class RequestOutput:
    """
    Result of a lifecycle operation.

    For delete, request is the snapshot that was removed.
    """

    request: PickupRequest | None = None
    success: bool = False
    error: LifecycleError | None = None
