"""
Runtime settings and rules-to-component config mapping.

Settings come from the environment; behavioral knobs come from rules.yaml.
Both the API and the CLI build their components through these helpers.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.components.analytics import AggregateConfig, RecorderConfig, config_from_patterns
from src.components.geolocation import GeolocationConfig
from src.components.identity import IdentityConfig
from src.components.report import DashboardConfig, DigestConfig
from src.rules.models import Rules


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class Settings:
    base_dir: Path = field(default_factory=Path.cwd)
    data_dir: Path = Path("./data")
    rules_path: Path = Path("rules.yaml")
    migrations_dir: Path = Path("migrations")
    admin_token: str | None = None
    admin_email: str | None = None
    cookie_secure: bool = True
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None

    @property
    def db_path(self) -> str:
        return str(self.data_dir / "festival.db")

    @property
    def chart_cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @classmethod
    def from_env(cls) -> "Settings":
        base_dir = Path.cwd()
        return cls(
            base_dir=base_dir,
            data_dir=Path(os.environ.get("FESTIVAL_DATA_DIR", "./data")),
            rules_path=Path(os.environ.get("FESTIVAL_RULES_PATH", base_dir / "rules.yaml")),
            migrations_dir=Path(
                os.environ.get("FESTIVAL_MIGRATIONS_DIR", base_dir / "migrations")
            ),
            admin_token=os.environ.get("FESTIVAL_ADMIN_TOKEN") or None,
            admin_email=os.environ.get("FESTIVAL_ADMIN_EMAIL") or None,
            cookie_secure=os.environ.get("FESTIVAL_COOKIE_SECURE", "1") != "0",
            smtp_host=os.environ.get("SMTP_HOST") or None,
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_user=os.environ.get("SMTP_USER") or None,
            smtp_password=os.environ.get("SMTP_PASSWORD") or None,
            smtp_from=os.environ.get("SMTP_FROM") or None,
        )


def validate_rules(rules: Rules) -> None:
    """
    Cross-field checks the schema cannot express.

    Raises:
        ValueError: On the first invalid setting.
    """
    try:
        ZoneInfo(rules.reporting.display_timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(
            f"Unknown reporting.display_timezone: {rules.reporting.display_timezone}"
        ) from e

    if rules.reporting.marker_min_radius > rules.reporting.marker_max_radius:
        raise ValueError("reporting.marker_min_radius must not exceed marker_max_radius")

    if rules.geolocation.enabled and not rules.geolocation.providers:
        raise ValueError("geolocation.providers must not be empty when geolocation is enabled")

    for provider in rules.geolocation.providers:
        if "{ip}" not in provider.url_template:
            raise ValueError(f"Provider {provider.name} url_template has no {{ip}} placeholder")


# --- Component configs ---


def identity_config(rules: Rules) -> IdentityConfig:
    return IdentityConfig(session_inactivity_minutes=rules.analytics.session_inactivity_minutes)


def recorder_config(rules: Rules) -> RecorderConfig:
    return RecorderConfig(
        enabled=rules.analytics.enabled,
        bot_filter=config_from_patterns(rules.analytics.bot_patterns),
    )


def geolocation_config(rules: Rules) -> GeolocationConfig:
    geo = rules.geolocation
    return GeolocationConfig(
        enabled=geo.enabled,
        ip_echo_url=geo.ip_echo_url,
        ip_echo_timeout_seconds=geo.ip_echo_timeout_seconds,
        lookup_timeout_seconds=geo.lookup_timeout_seconds,
        max_consecutive_failures=geo.max_consecutive_failures,
    )


def aggregate_config(rules: Rules) -> AggregateConfig:
    return AggregateConfig(
        display_timezone=rules.reporting.display_timezone,
        peak_hours_limit=rules.reporting.peak_hours_limit,
        default_window_days=rules.reporting.default_window_days,
    )


def dashboard_config(rules: Rules) -> DashboardConfig:
    return DashboardConfig(
        marker_min_radius=rules.reporting.marker_min_radius,
        marker_max_radius=rules.reporting.marker_max_radius,
    )


def digest_config(rules: Rules) -> DigestConfig:
    return DigestConfig(
        window_hours=rules.digest.window_hours,
        max_messages=rules.digest.max_messages,
        excerpt_length=rules.digest.excerpt_length,
        subject=rules.digest.subject,
        display_timezone=rules.reporting.display_timezone,
    )
