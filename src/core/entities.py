"""
Domain entities for festival analytics.

- SessionRecord: first sighting of a browsing session
- PageViewEvent: immutable page-view fact
- ContactMessage: visitor message, read by the digest

Invariants:
- PageViewEvent is never mutated or deleted once stored
- SessionRecord.first_seen is write-once (insert-or-ignore)
- Bot traffic never produces either record
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionRecord(BaseModel):
    """A browsing session, keyed by its opaque id."""

    model_config = ConfigDict(frozen=True)

    id: str
    visitor_id: str
    first_seen: datetime


class PageViewEvent(BaseModel):
    """
    One page view (row of the `stats` table).

    view_count is always 1 at creation; the column exists so stored rows
    can be summed without caring how they were produced.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    page: str
    view_count: int = 1
    session_id: str | None = None
    visitor_id: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    session_duration: int = 0  # seconds since the session's first view

    # Location (all optional; absent when geolocation failed)
    country: str | None = None
    region: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    created_at: datetime = Field(default_factory=_utcnow)


class ContactMessage(BaseModel):
    """Message left through the public contact form."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    email: str
    message: str
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
