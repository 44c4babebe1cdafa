"""
Invite component - group invitation issue, validation, acceptance and decline.
"""

from .component import (
    EMAIL_REGEX,
    generate_token,
    list_incoming,
    list_outgoing,
    purge_expired,
    run,
    run_accept,
    run_decline,
    run_issue,
    run_validate,
    validate_email,
)
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
from .ports import (
    InvitationEmailSenderPort,
    InviteStorePort,
    TimePort,
)

__all__ = [
    # Entry points
    "run",
    "run_issue",
    "run_validate",
    "run_accept",
    "run_decline",
    # Reads & housekeeping
    "list_incoming",
    "list_outgoing",
    "purge_expired",
    # Helpers
    "EMAIL_REGEX",
    "generate_token",
    "validate_email",
    # Input models
    "IssueInviteInput",
    "AcceptInviteInput",
    "DeclineInviteInput",
    # Output models
    "InviteOutput",
    "ValidateOutput",
    "AcceptOutput",
    "DeclineOutput",
    "InviteView",
    # Ports
    "InvitationEmailSenderPort",
    "InviteStorePort",
    "TimePort",
]
