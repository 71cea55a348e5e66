"""
Tests for the daily stats digest.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from src.adapters.clock import FixedClock
from src.adapters.dev_email import DevEmailAdapter
from src.components.analytics import InMemoryAnalyticsStore, Report
from src.components.report import (
    DigestConfig,
    build_digest,
    excerpt,
    render_digest_html,
    render_digest_text,
    send_daily_digest,
)
from src.core.entities import ContactMessage, PageViewEvent
from src.core.ports.email import EmailResult, EmailStatus

EventFactory = Callable[..., PageViewEvent]


def make_message(name: str, text: str, created_at: datetime, **kw) -> ContactMessage:  # type: ignore[no-untyped-def]
    return ContactMessage(
        name=name,
        email=f"{name.lower()}@example.com",
        message=text,
        created_at=created_at,
        **kw,
    )


class RecordingEmail:
    def __init__(self, result: EmailResult | None = None) -> None:
        self.sent: list[dict[str, str | None]] = []
        self.result = result

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        self.sent.append(
            {"recipient": recipient, "subject": subject, "html": body_html, "text": body_text}
        )
        return self.result or EmailResult.success(recipient, message_id="m-1")


class BrokenSource(InMemoryAnalyticsStore):
    def list_page_views(self, start, end):  # type: ignore[no-untyped-def]
        raise RuntimeError("database unavailable")


class TestExcerpt:
    def test_short_text_unchanged(self) -> None:
        assert excerpt("Bonjour", 100) == "Bonjour"

    def test_long_text_cut_with_ellipsis(self) -> None:
        text = "a" * 150
        assert excerpt(text, 100) == "a" * 100 + "..."

    def test_exact_length_unchanged(self) -> None:
        assert excerpt("a" * 100, 100) == "a" * 100


class TestRender:
    def _report(self) -> Report:
        return Report(
            window_start=datetime(2024, 7, 13, 8, tzinfo=UTC),
            window_end=datetime(2024, 7, 14, 8, tzinfo=UTC),
            total_visits=7,
            page_views={"Programme": 5, "Accueil": 2},
            country_stats={"France": 6, "Suisse": 1},
        )

    def test_html_sections(self) -> None:
        html = render_digest_html(self._report(), [])

        assert "Rapport des dernières 24 heures" in html
        assert "Visites totales: 7" in html
        assert "Messages non lus: 0" in html
        assert "Programme: 5 visites" in html
        assert "France: 6 visites" in html
        assert "13/07/2024 - 14/07/2024" in html
        assert "Derniers messages non lus" not in html

    def test_messages_are_escaped_and_excerpted(self) -> None:
        now = datetime(2024, 7, 14, tzinfo=UTC)
        messages = [make_message("Eve", "<script>x</script>" + "b" * 200, now)]

        html = render_digest_html(self._report(), messages)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "..." in html

    def test_message_cap(self) -> None:
        now = datetime(2024, 7, 14, tzinfo=UTC)
        messages = [make_message(f"Name{i}", "Salut", now) for i in range(5)]
        config = DigestConfig(max_messages=2)

        html = render_digest_html(self._report(), messages, unread_total=5, config=config)

        assert html.count("<strong>") == 2
        assert "Messages non lus: 5" in html

    def test_text_alternative(self) -> None:
        text = render_digest_text(self._report(), [])

        assert "Visites totales: 7" in text
        assert "- Programme: 5" in text
        assert "<" not in text


class TestSendDailyDigest:
    def test_covers_last_window(
        self,
        store: InMemoryAnalyticsStore,
        clock: FixedClock,
        now: datetime,
        make_event: EventFactory,
    ) -> None:
        store.insert_page_view(make_event("/programme", now - timedelta(hours=2)))
        store.insert_page_view(make_event("/programme", now - timedelta(hours=30)))
        store.insert_contact_message(make_message("Alice", "Horaires ?", now))
        store.insert_contact_message(make_message("Bob", "Merci", now, read=True))
        email = RecordingEmail()

        result = send_daily_digest(
            source=store,
            email=email,
            time_port=clock,
            recipient="admin@example.com",
        )

        assert result.status == EmailStatus.SENT
        [sent] = email.sent
        assert sent["recipient"] == "admin@example.com"
        assert sent["subject"] == DigestConfig().subject
        assert "Visites totales: 1" in sent["html"]  # type: ignore[operator]
        assert "Messages non lus: 1" in sent["html"]  # type: ignore[operator]
        assert "Alice" in sent["html"]  # type: ignore[operator]
        assert "Bob" not in sent["html"]  # type: ignore[operator]

    def test_dev_adapter_logs_instead_of_sending(
        self, store: InMemoryAnalyticsStore, clock: FixedClock
    ) -> None:
        email = DevEmailAdapter()

        result = send_daily_digest(
            source=store, email=email, time_port=clock, recipient="admin@example.com"
        )

        assert result.status == EmailStatus.SKIPPED
        assert email.get_last_email() is not None

    def test_build_failure_returns_failed_result(self, clock: FixedClock) -> None:
        email = RecordingEmail()

        result = send_daily_digest(
            source=BrokenSource(), email=email, time_port=clock, recipient="admin@example.com"
        )

        assert result.status == EmailStatus.FAILED
        assert "database unavailable" in (result.error or "")
        assert email.sent == []

    def test_send_failure_is_returned(
        self, store: InMemoryAnalyticsStore, clock: FixedClock
    ) -> None:
        email = RecordingEmail(EmailResult.failed("admin@example.com", "relay refused"))

        result = send_daily_digest(
            source=store, email=email, time_port=clock, recipient="admin@example.com"
        )

        assert result.ok is False
        assert result.error == "relay refused"


class TestBuildDigest:
    def test_counts(
        self,
        store: InMemoryAnalyticsStore,
        clock: FixedClock,
        now: datetime,
        make_event: EventFactory,
    ) -> None:
        for minutes in (5, 10, 15):
            store.insert_page_view(make_event("/", now - timedelta(minutes=minutes)))

        digest = build_digest(source=store, time_port=clock)

        assert digest.total_visits == 3
        assert digest.unread_total == 0
        assert "Home: 3 visites" in digest.body_html
