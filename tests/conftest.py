from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from src.adapters.clock import FixedClock
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.components.analytics import (
    InMemoryAnalyticsStore,
    PageViewRecorder,
    create_page_view_recorder,
)
from src.components.identity import (
    IdentityResolver,
    InMemoryIdentityStore,
    create_identity_resolver,
)
from src.core.entities import PageViewEvent
from src.rules.loader import load_rules
from src.rules.models import Rules

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
MOBILE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
BOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 7, 13, 10, 0, tzinfo=UTC)


@pytest.fixture
def clock(now: datetime) -> FixedClock:
    return FixedClock(now, tz_name="UTC")


@pytest.fixture
def store() -> InMemoryAnalyticsStore:
    return InMemoryAnalyticsStore()


@pytest.fixture
def identity_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


@pytest.fixture
def resolver(clock: FixedClock) -> IdentityResolver:
    return create_identity_resolver(time_port=clock)


@pytest.fixture
def recorder(
    store: InMemoryAnalyticsStore,
    resolver: IdentityResolver,
    clock: FixedClock,
) -> PageViewRecorder:
    """Recorder without geolocation."""
    return create_page_view_recorder(store=store, identity=resolver, time_port=clock)


@pytest.fixture
def make_event() -> Callable[..., PageViewEvent]:
    """Factory for stored page views; keyword overrides any field."""

    def _make(page: str, created_at: datetime, **overrides: Any) -> PageViewEvent:
        fields: dict[str, Any] = {
            "page": page,
            "created_at": created_at,
            "session_id": "a" * 32,
            "visitor_id": "b" * 32,
            "user_agent": DESKTOP_UA,
        }
        fields.update(overrides)
        return PageViewEvent(**fields)

    return _make


@pytest.fixture
def rules() -> Rules:
    """The project's real rules file."""
    return load_rules(Path("rules.yaml").resolve())


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """SQLite database with all migrations applied."""
    path = str(tmp_path / "festival.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return path
