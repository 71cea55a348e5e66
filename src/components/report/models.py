"""
Report component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.ports.renderer import ChartSpec

# --- Configuration ---


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard rendering configuration."""

    marker_min_radius: float = 4.0
    marker_max_radius: float = 24.0


@dataclass(frozen=True)
class DigestConfig:
    """Email digest configuration."""

    window_hours: int = 24
    max_messages: int = 10
    excerpt_length: int = 100
    subject: str = "Rapport statistiques - Fête du Bout du Haut"
    display_timezone: str = "UTC"


DEFAULT_DASHBOARD_CONFIG = DashboardConfig()
DEFAULT_DIGEST_CONFIG = DigestConfig()


# --- Output Models ---


@dataclass(frozen=True)
class MapMarker:
    """One map marker, sized by its visit count."""

    latitude: float
    longitude: float
    count: int
    radius: float
    label: str


@dataclass(frozen=True)
class Dashboard:
    """
    Chart specs and map markers for the admin dashboard.

    Charts are keyed by name (see CHART_NAMES).
    """

    charts: dict[str, ChartSpec] = field(default_factory=dict)
    markers: tuple[MapMarker, ...] = ()
    total_visits: int = 0
    average_session_duration: float = 0.0


@dataclass(frozen=True)
class DigestContent:
    """Rendered digest, ready to send or preview."""

    subject: str
    body_html: str
    body_text: str
    total_visits: int = 0
    unread_total: int = 0
