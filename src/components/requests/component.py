"""
Request lifecycle component.

Functional core for pickup requests: create, claim, unclaim, fulfill and
delete. Each transition reads the latest request, checks guards in a fixed
order (NotFound, Forbidden, InvalidState) and writes through the store's
compare-and-swap. A rejected swap means another caller changed the request
between our read and our write; that is reported as Conflict and never
retried here.

Key behaviors:
- Only group members create or claim; owners never claim their own request
- Membership is not re-checked on unclaim/fulfill
- An open request past needed_by is still claimable ("expired" is display-only)
- Fulfilled requests cannot be deleted
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

from src.components.limits import count_open_requests, resolve_limits
from src.domain.entities import DisplayStatus, PickupRequest, RequestStatus
from src.domain.errors import ErrorKind, LifecycleError
from src.domain.sanitize import sanitize_optional, sanitize_text
from src.rules.models import RangeRule, Rules

from .models import (
    DELETABLE_STATUSES,
    ClaimInput,
    CreateRequestInput,
    DeleteInput,
    FulfillInput,
    RequestActionInput,
    RequestOutput,
    UnclaimInput,
    can_transition,
)
from .ports import RequestStorePort, TimePort

logger = logging.getLogger(__name__)


def _fail(kind: ErrorKind, message: str, field: str | None = None) -> RequestOutput:
    return RequestOutput(success=False, error=LifecycleError(kind, message, field))


# --- Validation ---


def parse_needed_by(
    value: datetime | date | str, now: datetime
) -> tuple[datetime | None, LifecycleError | None]:
    """
    Parse a needed-by value and require it to be strictly after now.

    Strings are ISO-8601; naive values are taken as UTC. A bare date means
    midnight UTC, the same as an ISO date string.
    """
    invalid = LifecycleError(
        ErrorKind.VALIDATION_ERROR, "Needed-by date is not a valid date", "needed_by"
    )
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None, invalid
    elif isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        return None, invalid

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)

    if parsed <= now:
        return None, LifecycleError(
            ErrorKind.VALIDATION_ERROR, "Needed-by date must be in the future", "needed_by"
        )
    return parsed, None


def _check_length(value: str, rule: RangeRule, field: str, label: str) -> LifecycleError | None:
    if rule.contains(len(value)):
        return None
    return LifecycleError(
        ErrorKind.VALIDATION_ERROR,
        f"{label} must be between {rule.min} and {rule.max} characters",
        field,
    )


def validate_fields(
    inp: CreateRequestInput, rules: Rules
) -> tuple[dict[str, str | None], LifecycleError | None]:
    """Trim and sanitize the free-text fields, then check their lengths."""
    bounds = rules.requests
    description = sanitize_text(inp.item_description)
    store_preference = sanitize_optional(inp.store_preference)
    pickup_notes = sanitize_optional(inp.pickup_notes)

    error = _check_length(
        description, bounds.item_description, "item_description", "Item description"
    )
    if error is None and store_preference is not None:
        error = _check_length(
            store_preference, bounds.store_preference, "store_preference", "Store preference"
        )
    if error is None and pickup_notes is not None:
        error = _check_length(pickup_notes, bounds.pickup_notes, "pickup_notes", "Pickup notes")

    cleaned: dict[str, str | None] = {
        "item_description": description,
        "store_preference": store_preference,
        "pickup_notes": pickup_notes,
    }
    return cleaned, error


# --- Create ---


def run_create(
    inp: CreateRequestInput,
    store: RequestStorePort,
    time: TimePort,
    rules: Rules,
) -> RequestOutput:
    if store.get_group(inp.group_id) is None:
        return _fail(ErrorKind.NOT_FOUND, "Group not found")

    if store.get_membership(inp.group_id, inp.user_id) is None:
        return _fail(ErrorKind.FORBIDDEN, "You must be a member of this group to post requests")

    now = time.now_utc()
    needed_by, error = parse_needed_by(inp.needed_by, now)
    if error is not None or needed_by is None:
        return RequestOutput(success=False, error=error)

    cleaned, error = validate_fields(inp, rules)
    if error is not None:
        return RequestOutput(success=False, error=error)

    limits = resolve_limits(inp.user_id, store, rules.limits)
    if count_open_requests(inp.user_id, store) >= limits.max_open_requests:
        return _fail(
            ErrorKind.LIMIT_EXCEEDED,
            f"You can have at most {limits.max_open_requests} open requests",
        )

    request = PickupRequest(
        id=uuid4(),
        user_id=inp.user_id,
        group_id=inp.group_id,
        item_description=cleaned["item_description"] or "",
        store_preference=cleaned["store_preference"],
        pickup_notes=cleaned["pickup_notes"],
        needed_by=needed_by,
        status="open",
        created_at=now,
        updated_at=now,
    )
    store.add_request(request)
    logger.info("Request %s created by %s in group %s", request.id, inp.user_id, inp.group_id)
    return RequestOutput(request=request, success=True)


# --- Transitions ---


def _swap(
    store: RequestStorePort,
    current: PickupRequest,
    updated: PickupRequest,
    action: str,
) -> RequestOutput:
    if not can_transition(current.status, updated.status):
        return _fail(
            ErrorKind.INVALID_STATE,
            f"Cannot {action} a request that is {current.status}",
        )

    if not store.swap_request(current, updated):
        return _lost_race(store, current.id, action)

    logger.info(
        "Request %s %s: %s -> %s", current.id, action, current.status, updated.status
    )
    return RequestOutput(request=updated, success=True)


def _lost_race(store: RequestStorePort, request_id: UUID, action: str) -> RequestOutput:
    if store.get_request(request_id) is None:
        return _fail(ErrorKind.NOT_FOUND, "Request not found")
    logger.warning("Request %s changed before %s could be written", request_id, action)
    return _fail(
        ErrorKind.CONFLICT,
        "This request was updated by someone else. Please refresh and try again.",
    )


def run_claim(inp: ClaimInput, store: RequestStorePort, time: TimePort) -> RequestOutput:
    current = store.get_request(inp.request_id)
    if current is None:
        return _fail(ErrorKind.NOT_FOUND, "Request not found")

    if current.user_id == inp.user_id:
        return _fail(ErrorKind.FORBIDDEN, "You cannot claim your own request")

    if store.get_membership(current.group_id, inp.user_id) is None:
        return _fail(ErrorKind.FORBIDDEN, "You must be a member of this group to claim requests")

    if current.status != "open":
        return _fail(ErrorKind.INVALID_STATE, "This request has already been claimed")

    now = time.now_utc()
    updated = current.model_copy(
        update={
            "status": "claimed",
            "claimed_by": inp.user_id,
            "claimed_at": now,
            "updated_at": now,
        }
    )
    return _swap(store, current, updated, "claim")


def run_unclaim(inp: UnclaimInput, store: RequestStorePort, time: TimePort) -> RequestOutput:
    current = store.get_request(inp.request_id)
    if current is None:
        return _fail(ErrorKind.NOT_FOUND, "Request not found")

    if current.claimed_by != inp.user_id:
        return _fail(ErrorKind.FORBIDDEN, "Only the claimant can unclaim this request")

    if current.status != "claimed":
        return _fail(ErrorKind.INVALID_STATE, f"Cannot unclaim a request that is {current.status}")

    updated = current.model_copy(
        update={
            "status": "open",
            "claimed_by": None,
            "claimed_at": None,
            "updated_at": time.now_utc(),
        }
    )
    return _swap(store, current, updated, "unclaim")


def run_fulfill(inp: FulfillInput, store: RequestStorePort, time: TimePort) -> RequestOutput:
    current = store.get_request(inp.request_id)
    if current is None:
        return _fail(ErrorKind.NOT_FOUND, "Request not found")

    if current.claimed_by != inp.user_id:
        return _fail(ErrorKind.FORBIDDEN, "Only the claimant can fulfill this request")

    if current.status != "claimed":
        return _fail(ErrorKind.INVALID_STATE, f"Cannot fulfill a request that is {current.status}")

    now = time.now_utc()
    updated = current.model_copy(
        update={"status": "fulfilled", "fulfilled_at": now, "updated_at": now}
    )
    return _swap(store, current, updated, "fulfill")


def run_delete(inp: DeleteInput, store: RequestStorePort) -> RequestOutput:
    current = store.get_request(inp.request_id)
    if current is None:
        return _fail(ErrorKind.NOT_FOUND, "Request not found")

    if current.user_id != inp.user_id:
        return _fail(ErrorKind.FORBIDDEN, "Only the owner can delete this request")

    if current.status not in DELETABLE_STATUSES:
        return _fail(ErrorKind.INVALID_STATE, "Fulfilled requests cannot be deleted")

    if not store.delete_request(current.id, current.status):
        return _lost_race(store, current.id, "delete")

    logger.info("Request %s deleted by owner %s", current.id, inp.user_id)
    return RequestOutput(request=current, success=True)


def run(
    inp: CreateRequestInput | RequestActionInput,
    *,
    store: RequestStorePort,
    time: TimePort,
    rules: Rules | None = None,  # Only needed for create
) -> RequestOutput:
    if isinstance(inp, CreateRequestInput):
        assert rules
        return run_create(inp, store, time, rules)
    elif isinstance(inp, ClaimInput):
        return run_claim(inp, store, time)
    elif isinstance(inp, UnclaimInput):
        return run_unclaim(inp, store, time)
    elif isinstance(inp, FulfillInput):
        return run_fulfill(inp, store, time)
    elif isinstance(inp, DeleteInput):
        return run_delete(inp, store)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")


# --- Reads ---


def display_status(request: PickupRequest, now: datetime) -> DisplayStatus:
    """Stored status, except open requests past needed_by read as expired."""
    if request.status == "open" and request.is_expired(now):
        return "expired"
    status: RequestStatus = request.status
    return status


def list_group_requests(
    group_id: UUID, user_id: UUID, store: RequestStorePort
) -> tuple[list[PickupRequest], LifecycleError | None]:
    """Requests in a group, newest first. Members only."""
    if store.get_group(group_id) is None:
        return [], LifecycleError(ErrorKind.NOT_FOUND, "Group not found")
    if store.get_membership(group_id, user_id) is None:
        return [], LifecycleError(ErrorKind.FORBIDDEN, "You are not a member of this group")

    requests = store.list_requests_by_group(group_id)
    return sorted(requests, key=lambda r: r.created_at, reverse=True), None


def list_user_requests(user_id: UUID, store: RequestStorePort) -> list[PickupRequest]:
    """Requests owned by the user, newest first."""
    return sorted(store.list_requests_by_user(user_id), key=lambda r: r.created_at, reverse=True)
