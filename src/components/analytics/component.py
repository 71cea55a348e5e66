"""
Analytics component - page-view recording and aggregation.

Records one page view per qualifying navigation and reduces a time window of
page views into a dashboard Report.

Invariants:
- I1: Bot traffic leaves no trace (no session, no page view)
- I2: Location failure never blocks recording
- I3: Recording failures are logged and swallowed
- I4: Aggregation is pure and never raises
- I5: Daily series are chronologically sorted
"""

from __future__ import annotations

from datetime import timedelta

from src.components.identity import IdentityStorePort

from ._aggregate import aggregate
from ._impl import PageViewRecorder
from .models import (
    DEFAULT_AGGREGATE_CONFIG,
    AggregateConfig,
    AggregateInput,
    Report,
    TrackOutput,
    TrackPageViewInput,
)
from .ports import AnalyticsStorePort, TimePort

# --- Component Entry Points ---


async def run_track(
    inp: TrackPageViewInput,
    *,
    recorder: PageViewRecorder,
    identity_store: IdentityStorePort,
) -> TrackOutput:
    """
    Track one page view.

    Args:
        inp: Navigation to record.
        recorder: Configured page-view recorder.
        identity_store: Client-side identity slots for this visitor.

    Returns:
        TrackOutput; never raises.
    """
    return await recorder.track_page_view(inp, identity_store)


def run_aggregate(
    inp: AggregateInput,
    *,
    store: AnalyticsStorePort,
    time_port: TimePort,
    config: AggregateConfig | None = None,
) -> Report:
    """
    Aggregate stored page views over a window.

    Missing bounds default to the last `default_window_days` ending now.

    Args:
        inp: Window bounds.
        store: Analytics store port.
        time_port: Time port for the default window.
        config: Aggregation configuration.

    Returns:
        Report for the window.
    """
    config = config or DEFAULT_AGGREGATE_CONFIG

    end = inp.end_time or time_port.now_utc()
    start = inp.start_time or end - timedelta(days=config.default_window_days)

    if start >= end:
        return aggregate([], start, end, config)

    events = store.list_page_views(start, end)
    return aggregate(events, start, end, config)
