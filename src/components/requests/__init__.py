"""
Requests component - pickup request lifecycle (open -> claimed -> fulfilled).
"""

from .component import (
    display_status,
    list_group_requests,
    list_user_requests,
    parse_needed_by,
    run,
    run_claim,
    run_create,
    run_delete,
    run_fulfill,
    run_unclaim,
    validate_fields,
)
from .models import (
    DELETABLE_STATUSES,
    VALID_TRANSITIONS,
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

__all__ = [
    # Entry points
    "run",
    "run_create",
    "run_claim",
    "run_unclaim",
    "run_fulfill",
    "run_delete",
    # Reads
    "display_status",
    "list_group_requests",
    "list_user_requests",
    # Validation
    "parse_needed_by",
    "validate_fields",
    # State machine
    "VALID_TRANSITIONS",
    "DELETABLE_STATUSES",
    "can_transition",
    # Input models
    "CreateRequestInput",
    "RequestActionInput",
    "ClaimInput",
    "UnclaimInput",
    "FulfillInput",
    "DeleteInput",
    # Output models
    "RequestOutput",
    # Ports
    "RequestStorePort",
    "TimePort",
]
