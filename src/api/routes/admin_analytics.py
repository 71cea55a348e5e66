"""
Admin Analytics API.

Dashboard endpoints for the site administrators: the aggregated report as
JSON, chart PNGs, map markers and the email digest.

All routes require the admin bearer token (see deps.require_admin_token).
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from src.adapters.clock import SystemClock
from src.api.deps import (
    Settings,
    get_aggregate_config,
    get_clock,
    get_dashboard_config,
    get_digest_config,
    get_email_adapter,
    get_renderer,
    get_settings,
    get_store,
    require_admin_token,
)
from src.components.analytics import (
    AggregateConfig,
    AggregateInput,
    AnalyticsStorePort,
    Report,
    run_aggregate,
)
from src.components.report import (
    CHART_NAMES,
    DashboardConfig,
    DigestConfig,
    build_dashboard,
    build_digest,
    send_daily_digest,
)
from src.core.ports.email import EmailPort
from src.ports.renderer import ChartRendererPort

router = APIRouter(dependencies=[Depends(require_admin_token)])


# --- Response Models ---


class DailyCountResponse(BaseModel):
    date: str
    label: str
    count: int


class LocationResponse(BaseModel):
    latitude: float
    longitude: float
    count: int
    label: str


class HourCountResponse(BaseModel):
    hour: int
    count: int


class ReportResponse(BaseModel):
    """Aggregated report for a window."""

    start: str
    end: str
    total_visits: int
    page_views: dict[str, int]
    device_stats: dict[str, int]
    country_stats: dict[str, int]
    daily_stats: list[DailyCountResponse]
    locations: list[LocationResponse]
    average_session_duration: float
    peak_hours: list[HourCountResponse]


class MarkerResponse(BaseModel):
    latitude: float
    longitude: float
    count: int
    radius: float
    label: str


class DashboardResponse(BaseModel):
    """Chart specs plus map markers."""

    start: str
    end: str
    total_visits: int
    average_session_duration: float
    charts: dict[str, dict[str, Any]]
    markers: list[MarkerResponse]


class DigestSendResponse(BaseModel):
    status: str
    recipient: str
    message_id: str | None = None
    error: str | None = None


# --- Helper Functions ---


def parse_datetime(dt_str: str) -> datetime:
    """Parse an ISO datetime; naive values are taken as UTC."""
    try:
        if dt_str.endswith("Z"):
            dt_str = dt_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(dt_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid datetime format: {dt_str}",
        ) from e


def load_report(
    start: str | None = Query(None, description="Window start (ISO format)"),
    end: str | None = Query(None, description="Window end (ISO format), exclusive"),
    store: AnalyticsStorePort = Depends(get_store),
    clock: SystemClock = Depends(get_clock),
    config: AggregateConfig = Depends(get_aggregate_config),
) -> Report:
    """Report for the requested window, defaulting to the configured last N days."""
    inp = AggregateInput(
        start_time=parse_datetime(start) if start else None,
        end_time=parse_datetime(end) if end else None,
    )
    if inp.start_time and inp.end_time and inp.start_time > inp.end_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    return run_aggregate(inp, store=store, time_port=clock, config=config)


def to_report_response(report: Report) -> ReportResponse:
    return ReportResponse(
        start=report.window_start.isoformat(),
        end=report.window_end.isoformat(),
        total_visits=report.total_visits,
        page_views=report.page_views,
        device_stats=report.device_stats,
        country_stats=report.country_stats,
        daily_stats=[
            DailyCountResponse(date=d.date.isoformat(), label=d.label, count=d.count)
            for d in report.daily_stats
        ],
        locations=[
            LocationResponse(
                latitude=loc.latitude,
                longitude=loc.longitude,
                count=loc.count,
                label=loc.label,
            )
            for loc in report.locations
        ],
        average_session_duration=report.average_session_duration,
        peak_hours=[HourCountResponse(hour=h.hour, count=h.count) for h in report.peak_hours],
    )


# --- Routes ---


@router.get("/report", response_model=ReportResponse)
def get_report(report: Report = Depends(load_report)) -> ReportResponse:
    """Aggregated page-view report."""
    return to_report_response(report)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    report: Report = Depends(load_report),
    config: DashboardConfig = Depends(get_dashboard_config),
) -> DashboardResponse:
    """Chart specs and sized map markers for the dashboard page."""
    dashboard = build_dashboard(report, config)
    return DashboardResponse(
        start=report.window_start.isoformat(),
        end=report.window_end.isoformat(),
        total_visits=dashboard.total_visits,
        average_session_duration=dashboard.average_session_duration,
        charts=dashboard.charts,
        markers=[
            MarkerResponse(
                latitude=m.latitude,
                longitude=m.longitude,
                count=m.count,
                radius=m.radius,
                label=m.label,
            )
            for m in dashboard.markers
        ],
    )


@router.get(
    "/charts/{name}.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, 404: {"description": "Unknown chart"}},
)
def get_chart(
    name: str,
    width: int = Query(800, ge=200, le=2000),
    height: int = Query(600, ge=200, le=2000),
    report: Report = Depends(load_report),
    renderer: ChartRendererPort = Depends(get_renderer),
) -> Response:
    """One dashboard chart rendered as PNG."""
    if name not in CHART_NAMES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown chart")

    spec = build_dashboard(report).charts[name]
    png = renderer.render_chart(spec, width=width, height=height, dpi=100)
    return Response(content=png, media_type="image/png")


@router.get("/digest/preview", response_class=HTMLResponse)
def preview_digest(
    store: AnalyticsStorePort = Depends(get_store),
    clock: SystemClock = Depends(get_clock),
    config: DigestConfig = Depends(get_digest_config),
    aggregate_config: AggregateConfig = Depends(get_aggregate_config),
) -> HTMLResponse:
    """The digest as it would be sent now."""
    digest = build_digest(
        source=store,
        time_port=clock,
        config=config,
        aggregate_config=aggregate_config,
    )
    return HTMLResponse(content=digest.body_html)


@router.post("/digest/send", response_model=DigestSendResponse)
def send_digest(
    store: AnalyticsStorePort = Depends(get_store),
    clock: SystemClock = Depends(get_clock),
    email: EmailPort = Depends(get_email_adapter),
    settings: Settings = Depends(get_settings),
    config: DigestConfig = Depends(get_digest_config),
    aggregate_config: AggregateConfig = Depends(get_aggregate_config),
) -> DigestSendResponse:
    """Send the digest to FESTIVAL_ADMIN_EMAIL now."""
    if not settings.admin_email:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="FESTIVAL_ADMIN_EMAIL is not configured",
        )

    result = send_daily_digest(
        source=store,
        email=email,
        time_port=clock,
        recipient=settings.admin_email,
        config=config,
        aggregate_config=aggregate_config,
    )
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Digest delivery failed: {result.error}",
        )

    return DigestSendResponse(
        status=result.status.value,
        recipient=result.recipient,
        message_id=result.message_id,
        error=result.error,
    )
