"""
Outgoing email port.

The only mail this service sends is the stats digest to the site admins, so
the port is a single call: one recipient, a subject, an HTML body and its
plain-text alternative.

Delivery problems are reported in the returned EmailResult; adapters do not
raise for them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # logged only, nothing left the process


@dataclass(frozen=True)
class EmailAddress:
    """Address with an optional display name, e.g. the digest sender."""

    email: str
    name: str | None = None

    def __str__(self) -> str:
        if not self.name:
            return self.email
        quoted = self.name.replace('"', '\\"')
        return f'"{quoted}" <{self.email}>'


@dataclass
class EmailResult:
    status: EmailStatus
    recipient: str = ""
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None

    @property
    def ok(self) -> bool:
        """False only when delivery was attempted and failed."""
        return self.status is not EmailStatus.FAILED

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(EmailStatus.SENT, recipient, message_id, sent_at=datetime.now(UTC))

    @classmethod
    def skipped(
        cls, recipient: str, reason: str = "not sent", message_id: str | None = None
    ) -> EmailResult:
        return cls(EmailStatus.SKIPPED, recipient, message_id, error=reason)

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(EmailStatus.FAILED, recipient, error=error)


class EmailPort(Protocol):
    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """Send one message. Never raises for delivery problems."""
        ...
