"""
Report component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import ContactMessage, PageViewEvent


class DigestSourcePort(Protocol):
    """Read side of the analytics store used by the digest."""

    def list_page_views(self, start: datetime, end: datetime) -> list[PageViewEvent]:
        """Events with start <= created_at < end, oldest first."""
        ...

    def list_unread_messages(self, limit: int | None = None) -> list[ContactMessage]:
        """Unread messages, newest first."""
        ...

    def count_unread_messages(self) -> int:
        """Number of unread messages."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
