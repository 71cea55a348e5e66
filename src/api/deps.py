import logging
import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.fs.chart_cache import FileChartCache
from src.adapters.render.mpl_renderer import MatplotlibRenderer
from src.adapters.smtp_email import SMTPEmailAdapter, SMTPSettings
from src.adapters.sqlite_db import SQLiteAnalyticsStore
from src.app_shell import config as app_config
from src.components.analytics import (
    AggregateConfig,
    AnalyticsStorePort,
    PageViewRecorder,
    create_page_view_recorder,
)
from src.components.geolocation import (
    GeolocationResolver,
    build_provider,
    create_geolocation_resolver,
)
from src.components.identity import IdentityResolver, create_identity_resolver
from src.components.report import DashboardConfig, DigestConfig
from src.core.ports.email import EmailAddress, EmailPort
from src.ports.renderer import ChartRendererPort
from src.rules.loader import load_rules
from src.rules.models import Rules

logger = logging.getLogger(__name__)

Settings = app_config.Settings


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_aggregate_config(rules: Rules = Depends(get_rules)) -> AggregateConfig:
    return app_config.aggregate_config(rules)


def get_dashboard_config(rules: Rules = Depends(get_rules)) -> DashboardConfig:
    return app_config.dashboard_config(rules)


def get_digest_config(rules: Rules = Depends(get_rules)) -> DigestConfig:
    return app_config.digest_config(rules)


# --- Adapters ---
@lru_cache
def get_clock() -> SystemClock:
    return SystemClock(get_rules().reporting.display_timezone)


def get_store(settings: Settings = Depends(get_settings)) -> AnalyticsStorePort:
    return SQLiteAnalyticsStore(settings.db_path)


@lru_cache
def get_renderer() -> ChartRendererPort:
    return MatplotlibRenderer(FileChartCache(get_settings().chart_cache_dir))


@lru_cache
def get_email_adapter() -> EmailPort:
    """SMTP when a host is configured, otherwise log-only."""
    settings = get_settings()
    if not settings.smtp_host:
        logger.info("SMTP_HOST not set; digests will be logged, not sent")
        return DevEmailAdapter(outbox_dir=settings.data_dir / "outbox")

    return SMTPEmailAdapter(
        SMTPSettings(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=EmailAddress(settings.smtp_from, "Fête du Bout du Haut")
            if settings.smtp_from
            else None,
        )
    )


# --- Components ---
# Resolver and recorder are process-wide: the geolocation breaker counts
# failures across requests.
@lru_cache
def get_identity_resolver() -> IdentityResolver:
    return create_identity_resolver(
        time_port=get_clock(),
        config=app_config.identity_config(get_rules()),
    )


@lru_cache
def get_geolocation_resolver() -> GeolocationResolver:
    rules = get_rules()
    providers = [build_provider(p.name, p.url_template) for p in rules.geolocation.providers]
    return create_geolocation_resolver(
        providers=providers,
        config=app_config.geolocation_config(rules),
    )


@lru_cache
def get_recorder() -> PageViewRecorder:
    return create_page_view_recorder(
        store=SQLiteAnalyticsStore(get_settings().db_path),
        identity=get_identity_resolver(),
        time_port=get_clock(),
        geolocation=get_geolocation_resolver(),
        config=app_config.recorder_config(get_rules()),
    )


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def require_admin_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Settings = Depends(get_settings),
) -> None:
    """Admin routes need `Authorization: Bearer $FESTIVAL_ADMIN_TOKEN`."""
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured",
        )

    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), settings.admin_token.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
