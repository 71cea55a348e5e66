"""
Analytics component - page-view recording and aggregation.
"""

from ._aggregate import (
    HOME_PAGE,
    aggregate,
    normalize_page,
)
from ._bot_filter import (
    DESKTOP,
    MOBILE,
    BotFilterConfig,
    DeviceClass,
    classify_device,
    config_from_patterns,
    is_bot,
)
from ._impl import (
    InMemoryAnalyticsStore,
    PageViewRecorder,
    create_page_view_recorder,
)
from .component import (
    run_aggregate,
    run_track,
)
from .models import (
    AggregateConfig,
    AggregateInput,
    DailyCount,
    HourCount,
    LocationCount,
    PendingPageView,
    RecorderConfig,
    Report,
    TrackOutput,
    TrackPageViewInput,
)
from .ports import (
    AnalyticsStorePort,
    GeolocationPort,
    TimePort,
)

__all__ = [
    # Entry points
    "run_aggregate",
    "run_track",
    # Recording
    "InMemoryAnalyticsStore",
    "PageViewRecorder",
    "create_page_view_recorder",
    # Bot filter
    "BotFilterConfig",
    "DESKTOP",
    "DeviceClass",
    "MOBILE",
    "classify_device",
    "config_from_patterns",
    "is_bot",
    # Aggregation
    "HOME_PAGE",
    "aggregate",
    "normalize_page",
    # Input models
    "AggregateInput",
    "PendingPageView",
    "TrackPageViewInput",
    # Output models
    "DailyCount",
    "HourCount",
    "LocationCount",
    "Report",
    "TrackOutput",
    # Config
    "AggregateConfig",
    "RecorderConfig",
    # Ports
    "AnalyticsStorePort",
    "GeolocationPort",
    "TimePort",
]
