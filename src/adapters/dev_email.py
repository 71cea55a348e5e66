"""
Log-only email adapter.

Stands in for SMTP when no SMTP_HOST is configured (local runs, tests).
Nothing is sent: each message is logged with a short preview of its text
body, kept in memory, and, with an outbox directory, written to
`<outbox>/<message id>.html` so the digest can be opened in a browser.
Results are SKIPPED, which callers treat as ok.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from src.core.ports.email import EmailResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentEmail:
    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


def _preview(text: str, length: int) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= length else flat[:length] + "..."


@dataclass
class DevEmailAdapter:
    outbox_dir: Path | None = None
    body_preview_length: int = 100
    sent_emails: list[SentEmail] = field(default_factory=list)

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        message_id = f"dev-{uuid4().hex[:12]}"
        email = SentEmail(
            id=message_id,
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text or "",
            logged_at=datetime.now(UTC),
        )
        self.sent_emails.append(email)

        logger.info(
            "EMAIL (dev) %s to %s: %s | %s",
            message_id,
            recipient,
            subject,
            _preview(body_text or body_html, self.body_preview_length),
        )

        if self.outbox_dir is not None:
            self.outbox_dir.mkdir(parents=True, exist_ok=True)
            path = self.outbox_dir / f"{message_id}.html"
            path.write_text(body_html, encoding="utf-8")
            logger.info("Digest written to %s", path)

        return EmailResult.skipped(
            recipient, reason="SMTP not configured; email logged", message_id=message_id
        )

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def clear(self) -> None:
        self.sent_emails.clear()
