"""
Daily digest - HTML/text rendering and dispatch.

Fixed structure:
- period covered
- overview: total visits, unread message count
- visits per page
- visits per country
- up to N unread-message excerpts

Rendering is pure; build_digest gathers the inputs and send_daily_digest
hands the result to an EmailPort. Repeated triggers are not deduplicated here.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from src.components.analytics import (
    AggregateConfig,
    AggregateInput,
    Report,
    run_aggregate,
)
from src.core.entities import ContactMessage
from src.core.ports.email import EmailPort, EmailResult

from .models import DEFAULT_DIGEST_CONFIG, DigestConfig, DigestContent
from .ports import DigestSourcePort, TimePort

logger = logging.getLogger(__name__)


def excerpt(text: str, length: int = 100) -> str:
    """First `length` characters, with an ellipsis when cut."""
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def _format_day(dt: datetime, tz_name: str) -> str:
    return dt.astimezone(ZoneInfo(tz_name)).strftime("%d/%m/%Y")


def _list_items(counts: dict[str, int]) -> str:
    return "".join(
        f"<li>{html.escape(name)}: {count} visites</li>" for name, count in counts.items()
    )


def render_digest_html(
    report: Report,
    unread_messages: Sequence[ContactMessage],
    *,
    unread_total: int | None = None,
    config: DigestConfig = DEFAULT_DIGEST_CONFIG,
) -> str:
    """Render the digest body as HTML."""
    unread_count = len(unread_messages) if unread_total is None else unread_total
    shown = list(unread_messages)[: config.max_messages]

    parts = [
        f"<h2>Rapport des dernières {config.window_hours} heures</h2>",
        "<p>Période: {} - {}</p>".format(
            _format_day(report.window_start, config.display_timezone),
            _format_day(report.window_end, config.display_timezone),
        ),
        "<h3>Vue d'ensemble</h3>",
        "<ul>",
        f"<li>Visites totales: {report.total_visits}</li>",
        f"<li>Messages non lus: {unread_count}</li>",
        "</ul>",
        "<h3>Visites par page</h3>",
        f"<ul>{_list_items(report.page_views)}</ul>",
        "<h3>Répartition géographique</h3>",
        f"<ul>{_list_items(report.country_stats)}</ul>",
    ]

    if shown:
        parts.append("<h3>Derniers messages non lus</h3>")
        parts.append("<ul>")
        for msg in shown:
            parts.append(
                "<li><strong>{}</strong> ({})<br>{}</li>".format(
                    html.escape(msg.name),
                    html.escape(msg.email),
                    html.escape(excerpt(msg.message, config.excerpt_length)),
                )
            )
        parts.append("</ul>")

    return "\n".join(parts)


def render_digest_text(
    report: Report,
    unread_messages: Sequence[ContactMessage],
    *,
    unread_total: int | None = None,
    config: DigestConfig = DEFAULT_DIGEST_CONFIG,
) -> str:
    """Plain-text alternative of the digest."""
    unread_count = len(unread_messages) if unread_total is None else unread_total
    lines = [
        f"Rapport des dernières {config.window_hours} heures",
        "Période: {} - {}".format(
            _format_day(report.window_start, config.display_timezone),
            _format_day(report.window_end, config.display_timezone),
        ),
        "",
        f"Visites totales: {report.total_visits}",
        f"Messages non lus: {unread_count}",
        "",
        "Visites par page:",
        *(f"- {name}: {count}" for name, count in report.page_views.items()),
        "",
        "Répartition géographique:",
        *(f"- {name}: {count}" for name, count in report.country_stats.items()),
    ]

    shown = list(unread_messages)[: config.max_messages]
    if shown:
        lines += ["", "Derniers messages non lus:"]
        lines += [
            f"- {m.name} ({m.email}): {excerpt(m.message, config.excerpt_length)}" for m in shown
        ]

    return "\n".join(lines)


def build_digest(
    *,
    source: DigestSourcePort,
    time_port: TimePort,
    config: DigestConfig | None = None,
    aggregate_config: AggregateConfig | None = None,
) -> DigestContent:
    """Aggregate the last `window_hours` and render both digest bodies."""
    config = config or DEFAULT_DIGEST_CONFIG
    now = time_port.now_utc()
    start = now - timedelta(hours=config.window_hours)

    report = run_aggregate(
        AggregateInput(start_time=start, end_time=now),
        store=source,  # type: ignore[arg-type]
        time_port=time_port,
        config=aggregate_config,
    )
    messages = source.list_unread_messages(limit=config.max_messages)
    unread_total = source.count_unread_messages()

    return DigestContent(
        subject=config.subject,
        body_html=render_digest_html(report, messages, unread_total=unread_total, config=config),
        body_text=render_digest_text(report, messages, unread_total=unread_total, config=config),
        total_visits=report.total_visits,
        unread_total=unread_total,
    )


def send_daily_digest(
    *,
    source: DigestSourcePort,
    email: EmailPort,
    time_port: TimePort,
    recipient: str,
    config: DigestConfig | None = None,
    aggregate_config: AggregateConfig | None = None,
) -> EmailResult:
    """
    Build the digest and send it to `recipient`.

    Returns:
        EmailResult from the email port, or a failed result if the digest
        could not be built. Never raises.
    """
    try:
        digest = build_digest(
            source=source,
            time_port=time_port,
            config=config,
            aggregate_config=aggregate_config,
        )
    except Exception as e:
        logger.exception("Error building stats digest")
        return EmailResult.failed(recipient, str(e))

    result = email.send_email(
        recipient=recipient,
        subject=digest.subject,
        body_html=digest.body_html,
        body_text=digest.body_text,
    )
    logger.info(
        "Stats digest dispatched to %s: %s (%d visits, %d unread)",
        recipient,
        result.status.value,
        digest.total_visits,
        digest.unread_total,
    )
    return result
