"""
Report component - dashboard charts, map markers and the email digest.
"""

from ._digest import (
    build_digest,
    excerpt,
    render_digest_html,
    render_digest_text,
    send_daily_digest,
)
from .component import (
    CHART_DAILY,
    CHART_DEVICES,
    CHART_NAMES,
    CHART_PAGES,
    build_dashboard,
    build_markers,
    daily_chart,
    devices_chart,
    pages_chart,
)
from .models import (
    Dashboard,
    DashboardConfig,
    DigestConfig,
    DigestContent,
    MapMarker,
)
from .ports import DigestSourcePort, TimePort

__all__ = [
    # Dashboard
    "CHART_DAILY",
    "CHART_DEVICES",
    "CHART_NAMES",
    "CHART_PAGES",
    "build_dashboard",
    "build_markers",
    "daily_chart",
    "devices_chart",
    "pages_chart",
    # Digest
    "build_digest",
    "excerpt",
    "render_digest_html",
    "render_digest_text",
    "send_daily_digest",
    # Models
    "Dashboard",
    "DashboardConfig",
    "DigestConfig",
    "DigestContent",
    "MapMarker",
    # Ports
    "DigestSourcePort",
    "TimePort",
]
