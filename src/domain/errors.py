"""
Error taxonomy shared by the request, invitation and group components.

Components report failures as a LifecycleError on their output object.
Services turn that into a DomainError subclass via raise_for_error so
callers can catch by kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Failure categories a lifecycle operation can report."""

    VALIDATION_ERROR = "validation_error"  # Caller input is malformed
    FORBIDDEN = "forbidden"  # Actor lacks rights, never retried
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"  # Refresh the view
    CONFLICT = "conflict"  # Lost a race, refresh and retry
    DUPLICATE_INVITE = "duplicate_invite"
    LIMIT_EXCEEDED = "limit_exceeded"
    ALREADY_MEMBER = "already_member"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"


@dataclass(frozen=True)
class LifecycleError:
    """Error detail returned on a failed component output."""

    kind: ErrorKind
    message: str
    field: str | None = None


# --- Exceptions ---


class DomainError(Exception):
    """Base for errors raised by the service layer."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION_ERROR


class ForbiddenError(DomainError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(DomainError):
    kind = ErrorKind.INVALID_STATE


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT


class DuplicateInviteError(DomainError):
    kind = ErrorKind.DUPLICATE_INVITE


class LimitExceededError(DomainError):
    kind = ErrorKind.LIMIT_EXCEEDED


class AlreadyMemberError(DomainError):
    kind = ErrorKind.ALREADY_MEMBER


class NotFoundOrExpiredError(DomainError):
    kind = ErrorKind.NOT_FOUND_OR_EXPIRED


_EXCEPTIONS: dict[ErrorKind, type[DomainError]] = {
    cls.kind: cls
    for cls in (
        ValidationError,
        ForbiddenError,
        NotFoundError,
        InvalidStateError,
        ConflictError,
        DuplicateInviteError,
        LimitExceededError,
        AlreadyMemberError,
        NotFoundOrExpiredError,
    )
}


def to_exception(error: LifecycleError) -> DomainError:
    return _EXCEPTIONS[error.kind](error.message, error.field)


def raise_for_error(error: LifecycleError | None) -> None:
    """Raise the matching DomainError if a component reported a failure."""
    if error is not None:
        raise to_exception(error)
