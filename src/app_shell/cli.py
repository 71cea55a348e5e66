import argparse
import json
import logging
import sys
from datetime import timedelta
from typing import Any

from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.fs.chart_cache import FileChartCache
from src.adapters.smtp_email import SMTPEmailAdapter, SMTPSettings
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteAnalyticsStore
from src.app_shell import config as app_config
from src.components.analytics import AggregateInput, Report, run_aggregate
from src.components.report import send_daily_digest
from src.core.ports.email import EmailAddress, EmailPort
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def get_rules(settings: app_config.Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    app_config.validate_rules(rules)
    return rules


def get_email_adapter(settings: app_config.Settings) -> EmailPort:
    if not settings.smtp_host:
        logger.warning("SMTP_HOST not set; the digest will be logged, not sent")
        return DevEmailAdapter(outbox_dir=settings.data_dir / "outbox")
    return SMTPEmailAdapter(
        SMTPSettings(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=EmailAddress(settings.smtp_from) if settings.smtp_from else None,
        )
    )


def report_to_dict(report: Report) -> dict[str, Any]:
    return {
        "start": report.window_start.isoformat(),
        "end": report.window_end.isoformat(),
        "total_visits": report.total_visits,
        "page_views": report.page_views,
        "device_stats": report.device_stats,
        "country_stats": report.country_stats,
        "daily_stats": [{"date": d.label, "count": d.count} for d in report.daily_stats],
        "locations": [{"label": loc.label, "count": loc.count} for loc in report.locations],
        "average_session_duration": report.average_session_duration,
        "peak_hours": [{"hour": h.hour, "count": h.count} for h in report.peak_hours],
    }


def handle_migrate(settings: app_config.Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_clear_cache(settings: app_config.Settings) -> None:
    removed = FileChartCache(settings.chart_cache_dir).clear()
    print(f"Removed {removed} cached chart(s).")


def handle_report(settings: app_config.Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    clock = SystemClock(rules.reporting.display_timezone)
    aggregate_config = app_config.aggregate_config(rules)

    end = clock.now_utc()
    days = args.days or aggregate_config.default_window_days
    report = run_aggregate(
        AggregateInput(start_time=end - timedelta(days=days), end_time=end),
        store=SQLiteAnalyticsStore(settings.db_path),
        time_port=clock,
        config=aggregate_config,
    )
    print(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False))


def handle_send_digest(settings: app_config.Settings) -> None:
    if not settings.admin_email:
        logger.error("FESTIVAL_ADMIN_EMAIL is not set.")
        sys.exit(1)

    rules = get_rules(settings)
    result = send_daily_digest(
        source=SQLiteAnalyticsStore(settings.db_path),
        email=get_email_adapter(settings),
        time_port=SystemClock(rules.reporting.display_timezone),
        recipient=settings.admin_email,
        config=app_config.digest_config(rules),
        aggregate_config=app_config.aggregate_config(rules),
    )
    if not result.ok:
        logger.error("Digest not sent: %s", result.error)
        sys.exit(1)
    print(f"Digest {result.status.value} to {result.recipient}.")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Festival analytics CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # report
    report_parser = subparsers.add_parser("report", help="Print the analytics report as JSON")
    report_parser.add_argument(
        "--days", type=int, default=None, help="Window length in days (default from rules)"
    )

    # send-digest
    subparsers.add_parser("send-digest", help="Email the daily stats digest to the admin")

    # clear-cache
    subparsers.add_parser("clear-cache", help="Delete rendered dashboard charts")

    args = parser.parse_args(argv)
    settings = app_config.Settings.from_env()

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "report":
        handle_report(settings, args)
    elif args.command == "send-digest":
        handle_send_digest(settings)
    elif args.command == "clear-cache":
        handle_clear_cache(settings)


if __name__ == "__main__":
    main()
