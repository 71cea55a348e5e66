"""
SMTP Email Adapter.

Sends multipart (text + HTML) emails through an SMTP relay with STARTTLS.
Delivery problems are returned as a failed EmailResult, never raised.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid

from src.core.ports.email import EmailAddress, EmailResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SMTPSettings:
    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    sender: EmailAddress | None = None
    use_tls: bool = True
    timeout_seconds: float = 30.0


class SMTPEmailAdapter:
    def __init__(self, settings: SMTPSettings) -> None:
        self._settings = settings

    def _build(self, recipient: str, subject: str, body_html: str, body_text: str) -> EmailMessage:
        msg = EmailMessage()
        sender = self._settings.sender or EmailAddress(self._settings.username or "")
        msg["From"] = str(sender)
        msg["To"] = recipient
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(body_text)
        msg.add_alternative(body_html, subtype="html")
        return msg

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        msg = self._build(recipient, subject, body_html, body_text or "Voir la version HTML")
        s = self._settings

        try:
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout_seconds) as smtp:
                if s.use_tls:
                    smtp.starttls()
                if s.username and s.password:
                    smtp.login(s.username, s.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP send to %s failed: %s", recipient, e)
            return EmailResult.failed(recipient, str(e))

        return EmailResult.success(recipient, message_id=msg["Message-ID"])
