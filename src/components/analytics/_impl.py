"""
PageViewRecorder - fire-and-forget page-view tracking.

Handles bot exclusion, identity resolution, geolocation and storage of one
page view per qualifying navigation.

Key behaviors:
- Bot signatures short-circuit before any identity or store write
- Identity is resolved synchronously (prepare), storage happens later (record)
- Location is optional; its absence never blocks the write
- Session rows are insert-or-ignore; page views are append-only
- Every failure is logged and swallowed; a failed write is lost, not retried
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from uuid import UUID

from src.components.identity import IdentityResolver, IdentityStorePort
from src.core.entities import ContactMessage, PageViewEvent, SessionRecord

from ._bot_filter import is_bot
from .models import (
    DEFAULT_RECORDER_CONFIG,
    PendingPageView,
    RecorderConfig,
    SkipReason,
    TrackOutput,
    TrackPageViewInput,
)
from .ports import AnalyticsStorePort, GeolocationPort, TimePort

logger = logging.getLogger(__name__)


# --- In-Memory Store ---


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


class InMemoryAnalyticsStore:
    """In-memory analytics store for testing/dev."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}
        self._events: list[PageViewEvent] = []
        self._messages: dict[UUID, ContactMessage] = {}

    def upsert_session(self, session: SessionRecord) -> None:
        self._sessions.setdefault(session.id, session)

    def insert_page_view(self, event: PageViewEvent) -> None:
        self._events.append(event)

    def list_page_views(self, start: datetime, end: datetime) -> list[PageViewEvent]:
        start, end = _as_utc(start), _as_utc(end)
        selected = [e for e in self._events if start <= _as_utc(e.created_at) < end]
        return sorted(selected, key=lambda e: _as_utc(e.created_at))

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def insert_contact_message(self, message: ContactMessage) -> None:
        self._messages[message.id] = message

    def list_unread_messages(self, limit: int | None = None) -> list[ContactMessage]:
        unread = sorted(
            (m for m in self._messages.values() if not m.read),
            key=lambda m: _as_utc(m.created_at),
            reverse=True,
        )
        return unread if limit is None else unread[:limit]

    def count_unread_messages(self) -> int:
        return sum(1 for m in self._messages.values() if not m.read)

    def mark_message_read(self, message_id: UUID, read: bool = True) -> None:
        if message_id not in self._messages:
            msg = f"Message not found: {message_id}"
            raise ValueError(msg)
        self._messages[message_id] = self._messages[message_id].model_copy(update={"read": read})

    # --- Test helpers ---

    def all_sessions(self) -> list[SessionRecord]:
        return list(self._sessions.values())

    def all_page_views(self) -> list[PageViewEvent]:
        return list(self._events)


# --- Recorder ---


class PageViewRecorder:
    """Records page views for the analytics dashboard."""

    def __init__(
        self,
        store: AnalyticsStorePort,
        identity: IdentityResolver,
        time_port: TimePort,
        geolocation: GeolocationPort | None = None,
        config: RecorderConfig | None = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self._time = time_port
        self._geolocation = geolocation
        self._config = config or DEFAULT_RECORDER_CONFIG

    def skip_reason(self, inp: TrackPageViewInput) -> SkipReason | None:
        """Why this navigation must not be recorded, or None."""
        if not self._config.enabled:
            return "disabled"
        if is_bot(inp.client_signature, self._config.bot_filter):
            logger.debug("Skipping bot traffic: %s", inp.client_signature)
            return "bot"
        return None

    def prepare(
        self,
        inp: TrackPageViewInput,
        identity_store: IdentityStorePort,
    ) -> PendingPageView:
        """
        Resolve visitor and session for a navigation.

        Callers check skip_reason first; this writes identity slots.
        """
        resolved = self._identity.resolve(identity_store)
        now = self._time.now_utc()

        return PendingPageView(
            page=inp.page,
            user_agent=inp.client_signature,
            referrer=inp.referrer or None,
            client_ip=inp.client_ip,
            visitor_id=resolved.visitor_id,
            session_id=resolved.session.session_id,
            session_started_at=resolved.session.started_at,
            session_duration=resolved.session.duration_seconds(now),
            created_at=now,
        )

    def _persist(self, session: SessionRecord, event: PageViewEvent) -> None:
        self._store.upsert_session(session)
        self._store.insert_page_view(event)

    async def record(self, pending: PendingPageView) -> TrackOutput:
        """Look up location and store the session and page view."""
        location = None
        if self._geolocation is not None:
            try:
                location = await self._geolocation.resolve(pending.client_ip)
            except Exception as e:
                logger.warning("Geolocation failed, recording without location: %s", e)

        try:
            event = PageViewEvent(
                page=pending.page,
                view_count=1,
                session_id=pending.session_id,
                visitor_id=pending.visitor_id,
                user_agent=pending.user_agent,
                referrer=pending.referrer,
                session_duration=pending.session_duration,
                created_at=pending.created_at,
                **(
                    {
                        "country": location.country,
                        "region": location.region,
                        "city": location.city,
                        "latitude": location.latitude,
                        "longitude": location.longitude,
                    }
                    if location is not None
                    else {}
                ),
            )

            session = SessionRecord(
                id=pending.session_id,
                visitor_id=pending.visitor_id,
                first_seen=pending.session_started_at,
            )
            # Blocking store writes run in a worker thread
            await asyncio.to_thread(self._persist, session, event)
        except Exception:
            logger.exception("Error tracking page view: %s", pending.page)
            return TrackOutput(recorded=False, reason="error")

        return TrackOutput(recorded=True, event=event)

    async def track_page_view(
        self,
        inp: TrackPageViewInput,
        identity_store: IdentityStorePort,
    ) -> TrackOutput:
        """Prepare and record in one call."""
        reason = self.skip_reason(inp)
        if reason is not None:
            return TrackOutput(recorded=False, reason=reason)

        try:
            pending = self.prepare(inp, identity_store)
        except Exception:
            logger.exception("Error resolving identity for page view: %s", inp.page)
            return TrackOutput(recorded=False, reason="error")

        return await self.record(pending)


def create_page_view_recorder(
    store: AnalyticsStorePort,
    identity: IdentityResolver,
    time_port: TimePort,
    geolocation: GeolocationPort | None = None,
    config: RecorderConfig | None = None,
) -> PageViewRecorder:
    """Create a PageViewRecorder."""
    return PageViewRecorder(
        store=store,
        identity=identity,
        time_port=time_port,
        geolocation=geolocation,
        config=config,
    )
