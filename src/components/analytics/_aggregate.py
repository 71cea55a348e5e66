"""
Aggregation engine - reduces a window of page views into a Report.

Pure reduction over already-fetched events; no I/O, never raises.

Key behaviors:
- Window is half-open: window_start <= created_at < window_end
- Page names: leading "/" stripped, first letter upper-cased, empty -> "Home"
- Device class: "Mobile" in the client signature, else Desktop
- Daily series sorted by actual date, labelled dd/mm
- Locations grouped by exact (latitude, longitude); first-seen label kept
- Average session duration is averaged per event (0 for an empty window)
- Peak hours: top N by descending count, ties keep first-encountered order
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from src.core.entities import PageViewEvent

from ._bot_filter import classify_device
from .models import (
    DEFAULT_AGGREGATE_CONFIG,
    AggregateConfig,
    DailyCount,
    HourCount,
    LocationCount,
    Report,
)

HOME_PAGE = "Home"


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def normalize_page(page: str | None) -> str:
    """Display name for a page identifier."""
    name = (page or "").strip()
    if name.startswith("/"):
        name = name[1:]
    if not name:
        return HOME_PAGE
    return name[0].upper() + name[1:]


def _bump(counts: dict, key: object, amount: int) -> None:
    counts[key] = counts.get(key, 0) + amount


@dataclass
class _LocationAcc:
    count: int
    city: str | None
    region: str | None
    country: str | None


def aggregate(
    events: Iterable[PageViewEvent],
    window_start: datetime,
    window_end: datetime,
    config: AggregateConfig = DEFAULT_AGGREGATE_CONFIG,
) -> Report:
    """
    Reduce the events inside [window_start, window_end) into a Report.

    An empty selection yields a zeroed Report.
    """
    start = _as_utc(window_start)
    end = _as_utc(window_end)
    tz = ZoneInfo(config.display_timezone)

    total = 0
    event_count = 0
    duration_sum = 0
    page_views: dict[str, int] = {}
    device_stats: dict[str, int] = {}
    country_stats: dict[str, int] = {}
    by_day: dict[date, int] = {}
    by_hour: dict[int, int] = {}
    by_location: dict[tuple[float, float], _LocationAcc] = {}

    for event in events:
        created = _as_utc(event.created_at)
        if created < start or created >= end:
            continue

        count = event.view_count
        event_count += 1
        total += count
        duration_sum += event.session_duration

        _bump(page_views, normalize_page(event.page), count)
        _bump(device_stats, classify_device(event.user_agent), count)
        if event.country:
            _bump(country_stats, event.country, count)

        local = created.astimezone(tz)
        _bump(by_day, local.date(), count)
        _bump(by_hour, local.hour, count)

        if event.latitude is not None and event.longitude is not None:
            key = (event.latitude, event.longitude)
            acc = by_location.get(key)
            if acc is None:
                by_location[key] = _LocationAcc(count, event.city, event.region, event.country)
            else:
                acc.count += count

    # dicts keep first-encountered order, and sorted() is stable
    ranked_hours = sorted(by_hour.items(), key=lambda item: item[1], reverse=True)

    return Report(
        window_start=start,
        window_end=end,
        total_visits=total,
        page_views=page_views,
        device_stats=device_stats,
        country_stats=country_stats,
        daily_stats=tuple(
            DailyCount(date=day, label=day.strftime("%d/%m"), count=c)
            for day, c in sorted(by_day.items())
        ),
        locations=tuple(
            LocationCount(
                latitude=lat,
                longitude=lon,
                count=acc.count,
                city=acc.city,
                region=acc.region,
                country=acc.country,
            )
            for (lat, lon), acc in by_location.items()
        ),
        average_session_duration=duration_sum / event_count if event_count else 0.0,
        peak_hours=tuple(
            HourCount(hour=h, count=c) for h, c in ranked_hours[: config.peak_hours_limit]
        ),
        event_count=event_count,
    )

