from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo


class SystemClock:
    def __init__(self, tz_name: str = "Europe/Paris") -> None:
        self._tz = ZoneInfo(tz_name)

    @property
    def timezone_name(self) -> str:
        return str(self._tz)

    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def to_local(self, utc_dt: datetime) -> datetime:
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=UTC)
        return utc_dt.astimezone(self._tz)


class FixedClock(SystemClock):
    """Clock frozen at a given instant; advance it explicitly."""

    def __init__(self, now: datetime, tz_name: str = "Europe/Paris") -> None:
        super().__init__(tz_name)
        self._now = now if now.tzinfo else now.replace(tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now if now.tzinfo else now.replace(tzinfo=UTC)

    def advance(self, **kwargs: float) -> None:
        self._now = self._now + timedelta(**kwargs)
