"""
Dev Email Adapter.

Logs invitation emails instead of sending them. Used for local development
and testing; real delivery belongs to an external mail provider.

Key behaviors:
- Logs recipient, subject and the invite link
- Returns a "dev-" delivery id
- Stores emails in memory for test assertions
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.domain.entities import Group
from src.rules.models import EmailRules

logger = logging.getLogger(__name__)


def build_invite_link(rules: EmailRules, token: str) -> str:
    return f"{rules.base_url.rstrip('/')}{rules.invite_path}?token={token}"


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_text: str
    invite_link: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Invitation email sender that logs instead of sending.

    Safe to call from dispatcher threads; the record list is lock-guarded.
    """

    rules: EmailRules = field(default_factory=EmailRules)
    sent_emails: list[SentEmail] = field(default_factory=list)

    log_level: int = logging.INFO
    log_body: bool = False

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def send_invitation_email(
        self,
        recipient_email: str,
        inviter_name: str,
        group: Group,
        token: str,
    ) -> str:
        message_id = f"dev-{uuid4().hex[:12]}"
        link = build_invite_link(self.rules, token)
        subject = f"{inviter_name} invited you to join {group.name} on {self.rules.app_name}"
        body_text = (
            f"Hi,\n\n{inviter_name} has invited you to join the group "
            f'"{group.name}" on {self.rules.app_name}.\n\n'
            f"Accept the invitation here: {link}\n\n"
            "This invitation expires in 7 days.\n"
        )

        with self._lock:
            self.sent_emails.append(
                SentEmail(
                    id=message_id,
                    recipient=recipient_email,
                    subject=subject,
                    body_text=body_text,
                    invite_link=link,
                    logged_at=datetime.now(UTC),
                )
            )

        parts = [f"EMAIL (dev): To={recipient_email}", f"Subject={subject}", f"Link={link}"]
        if self.log_body:
            parts.append(f"Body={body_text!r}")
        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

        return message_id

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        with self._lock:
            return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        with self._lock:
            return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        with self._lock:
            self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
