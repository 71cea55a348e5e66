"""
SQLite Analytics Store.

Implements AnalyticsStorePort over the `sessions`, `stats` and
`contact_messages` tables created by migrations/001_analytics.sql.

Timestamps are stored as ISO-8601 UTC strings with a fixed layout, so
string comparison in WHERE clauses matches chronological order.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from src.core.entities import ContactMessage, PageViewEvent, SessionRecord

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime) -> str:
    """Serialize as UTC; naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _execute_write(self, sql: str, params: tuple[Any, ...]) -> None:
        conn = self._get_conn()
        try:
            conn.execute(sql, params)
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def _fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Analytics Store
# -----------------------------------------------------------------------------


class SQLiteAnalyticsStore(SQLiteRepoBase):
    """SQLite implementation of AnalyticsStorePort."""

    # --- sessions ---

    def upsert_session(self, session: SessionRecord) -> None:
        self._execute_write(
            "INSERT OR IGNORE INTO sessions (id, visitor_id, first_seen) VALUES (?, ?, ?)",
            (session.id, session.visitor_id, format_dt(session.first_seen)),
        )

    def get_session(self, session_id: str) -> SessionRecord | None:
        rows = self._fetch_all("SELECT * FROM sessions WHERE id = ?", (session_id,))
        if not rows:
            return None
        row = rows[0]
        return SessionRecord(
            id=row["id"],
            visitor_id=row["visitor_id"],
            first_seen=datetime.fromisoformat(row["first_seen"]),
        )

    # --- stats ---

    def insert_page_view(self, event: PageViewEvent) -> None:
        self._execute_write(
            """
            INSERT INTO stats (
                id, page_view, view_count, session_id, visitor_id,
                user_agent, referrer, session_duration,
                country, region, city, latitude, longitude, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(event.id),
                event.page,
                event.view_count,
                event.session_id,
                event.visitor_id,
                event.user_agent,
                event.referrer,
                event.session_duration,
                event.country,
                event.region,
                event.city,
                event.latitude,
                event.longitude,
                format_dt(event.created_at),
            ),
        )

    def list_page_views(self, start: datetime, end: datetime) -> list[PageViewEvent]:
        rows = self._fetch_all(
            """
            SELECT * FROM stats
            WHERE created_at >= ? AND created_at < ?
            ORDER BY created_at ASC
            """,
            (format_dt(start), format_dt(end)),
        )
        return [self._map_page_view(r) for r in rows]

    def _map_page_view(self, row: dict[str, Any]) -> PageViewEvent:
        return PageViewEvent(
            id=UUID(row["id"]),
            page=row["page_view"],
            view_count=row["view_count"],
            session_id=row["session_id"],
            visitor_id=row["visitor_id"],
            user_agent=row["user_agent"],
            referrer=row["referrer"],
            session_duration=row["session_duration"],
            country=row["country"],
            region=row["region"],
            city=row["city"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # --- contact_messages ---

    def insert_contact_message(self, message: ContactMessage) -> None:
        self._execute_write(
            """
            INSERT INTO contact_messages (id, name, email, message, read, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(message.id),
                message.name,
                message.email,
                message.message,
                1 if message.read else 0,
                format_dt(message.created_at),
            ),
        )

    def list_unread_messages(self, limit: int | None = None) -> list[ContactMessage]:
        sql = "SELECT * FROM contact_messages WHERE read = 0 ORDER BY created_at DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return [self._map_message(r) for r in self._fetch_all(sql, params)]

    def count_unread_messages(self) -> int:
        rows = self._fetch_all("SELECT COUNT(*) AS n FROM contact_messages WHERE read = 0")
        return int(rows[0]["n"])

    def mark_message_read(self, message_id: UUID, read: bool = True) -> None:
        self._execute_write(
            "UPDATE contact_messages SET read = ? WHERE id = ?",
            (1 if read else 0, str(message_id)),
        )

    def _map_message(self, row: dict[str, Any]) -> ContactMessage:
        return ContactMessage(
            id=UUID(row["id"]),
            name=row["name"],
            email=row["email"],
            message=row["message"],
            read=bool(row["read"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
