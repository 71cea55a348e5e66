"""
Report component - dashboard presentation of an aggregation Report.

Maps a Report to chart specs and map markers:
- daily_stats  -> line chart
- page_views   -> bar chart
- device_stats -> pie chart
- locations    -> map markers sized by count

Pure formatting; never touches the event store.
"""

from __future__ import annotations

from src.components.analytics import LocationCount, Report
from src.ports.renderer import ChartSpec

from .models import (
    DEFAULT_DASHBOARD_CONFIG,
    Dashboard,
    DashboardConfig,
    MapMarker,
)

CHART_DAILY = "daily"
CHART_PAGES = "pages"
CHART_DEVICES = "devices"

CHART_NAMES = (CHART_DAILY, CHART_PAGES, CHART_DEVICES)


def daily_chart(report: Report) -> ChartSpec:
    """Line chart of visits per day, in date order."""
    return {
        "type": "line",
        "title": "Visites par jour",
        "data": {
            "x": [d.label for d in report.daily_stats],
            "y": [d.count for d in report.daily_stats],
        },
        "xlabel": "Jour",
        "ylabel": "Visites",
    }


def pages_chart(report: Report) -> ChartSpec:
    """Bar chart of views per page."""
    return {
        "type": "bar",
        "title": "Visites par page",
        "data": {
            "x": list(report.page_views.keys()),
            "y": list(report.page_views.values()),
        },
        "xlabel": "Page",
        "ylabel": "Visites",
    }


def devices_chart(report: Report) -> ChartSpec:
    """Pie chart of views per device class."""
    return {
        "type": "pie",
        "title": "Appareils",
        "data": {
            "x": list(report.device_stats.keys()),
            "y": list(report.device_stats.values()),
        },
    }


def build_markers(
    locations: tuple[LocationCount, ...],
    config: DashboardConfig = DEFAULT_DASHBOARD_CONFIG,
) -> tuple[MapMarker, ...]:
    """Markers whose radius grows linearly with count up to the busiest location."""
    if not locations:
        return ()

    peak = max(loc.count for loc in locations)
    span = config.marker_max_radius - config.marker_min_radius

    return tuple(
        MapMarker(
            latitude=loc.latitude,
            longitude=loc.longitude,
            count=loc.count,
            radius=config.marker_min_radius + span * (loc.count / peak if peak else 0),
            label=loc.label,
        )
        for loc in locations
    )


def build_dashboard(
    report: Report,
    config: DashboardConfig | None = None,
) -> Dashboard:
    """Build all dashboard charts and markers for a report."""
    config = config or DEFAULT_DASHBOARD_CONFIG
    return Dashboard(
        charts={
            CHART_DAILY: daily_chart(report),
            CHART_PAGES: pages_chart(report),
            CHART_DEVICES: devices_chart(report),
        },
        markers=build_markers(report.locations, config),
        total_visits=report.total_visits,
        average_session_duration=report.average_session_duration,
    )
