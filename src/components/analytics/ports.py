"""
Analytics component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.components.geolocation import Location
from src.core.entities import ContactMessage, PageViewEvent, SessionRecord


class AnalyticsStorePort(Protocol):
    """
    Durable event store.

    Tables: sessions (keyed by id), stats (append-only page views),
    contact_messages (mutable read flag).
    """

    def upsert_session(self, session: SessionRecord) -> None:
        """Insert a session; no-op if the id exists (first_seen is write-once)."""
        ...

    def insert_page_view(self, event: PageViewEvent) -> None:
        """Append a page-view event."""
        ...

    def list_page_views(self, start: datetime, end: datetime) -> list[PageViewEvent]:
        """Events with start <= created_at < end, oldest first."""
        ...

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Get a session by id."""
        ...

    def insert_contact_message(self, message: ContactMessage) -> None:
        """Store a contact message."""
        ...

    def list_unread_messages(self, limit: int | None = None) -> list[ContactMessage]:
        """Unread messages, newest first."""
        ...

    def count_unread_messages(self) -> int:
        """Number of unread messages."""
        ...

    def mark_message_read(self, message_id: UUID, read: bool = True) -> None:
        """Set a message's read flag."""
        ...


class GeolocationPort(Protocol):
    """Best-effort visitor location lookup."""

    async def resolve(self, ip: str | None = None) -> Location | None:
        """Resolve a location or None. Must not raise."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
