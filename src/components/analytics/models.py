"""
Analytics component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

from src.core.entities import PageViewEvent

from ._bot_filter import DEFAULT_CONFIG as DEFAULT_BOT_CONFIG
from ._bot_filter import BotFilterConfig

SkipReason = Literal["bot", "disabled", "error"]


# --- Configuration ---


@dataclass(frozen=True)
class RecorderConfig:
    """Page-view recording configuration."""

    enabled: bool = True
    bot_filter: BotFilterConfig = field(default_factory=lambda: DEFAULT_BOT_CONFIG)


@dataclass(frozen=True)
class AggregateConfig:
    """Aggregation configuration."""

    # Calendar days and hours of day are taken in this zone
    display_timezone: str = "UTC"
    peak_hours_limit: int = 5
    default_window_days: int = 30


DEFAULT_RECORDER_CONFIG = RecorderConfig()
DEFAULT_AGGREGATE_CONFIG = AggregateConfig()


# --- Input Models ---


@dataclass(frozen=True)
class TrackPageViewInput:
    """One client-side navigation to record."""

    page: str
    client_signature: str | None = None
    referrer: str | None = None
    client_ip: str | None = None


@dataclass(frozen=True)
class PendingPageView:
    """
    A navigation whose identity has been resolved but which is not yet stored.

    Produced synchronously (identity must be written back to the client
    before the response leaves); stored later without blocking the visitor.
    """

    page: str
    user_agent: str | None
    referrer: str | None
    client_ip: str | None
    visitor_id: str
    session_id: str
    session_started_at: datetime
    session_duration: int
    created_at: datetime


@dataclass(frozen=True)
class AggregateInput:
    """Window to aggregate; None means the configured default window."""

    start_time: datetime | None = None
    end_time: datetime | None = None


# --- Output Models ---


@dataclass(frozen=True)
class TrackOutput:
    """Outcome of a tracking call. Never carries an exception."""

    recorded: bool
    reason: SkipReason | None = None
    event: PageViewEvent | None = None


@dataclass(frozen=True)
class DailyCount:
    """Views for one calendar day."""

    date: date
    label: str  # dd/mm
    count: int


@dataclass(frozen=True)
class LocationCount:
    """Views sharing one coordinate pair."""

    latitude: float
    longitude: float
    count: int
    city: str | None = None
    region: str | None = None
    country: str | None = None

    @property
    def label(self) -> str:
        parts = [p for p in (self.city, self.region, self.country) if p]
        return ", ".join(parts) if parts else f"{self.latitude:.2f}, {self.longitude:.2f}"


@dataclass(frozen=True)
class HourCount:
    """Views for one hour of the day (0-23)."""

    hour: int
    count: int


@dataclass(frozen=True)
class Report:
    """Aggregated view of a window of page-view events."""

    window_start: datetime
    window_end: datetime
    total_visits: int = 0
    page_views: dict[str, int] = field(default_factory=dict)
    device_stats: dict[str, int] = field(default_factory=dict)
    country_stats: dict[str, int] = field(default_factory=dict)
    daily_stats: tuple[DailyCount, ...] = ()
    locations: tuple[LocationCount, ...] = ()
    average_session_duration: float = 0.0
    peak_hours: tuple[HourCount, ...] = ()
    event_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.event_count == 0
