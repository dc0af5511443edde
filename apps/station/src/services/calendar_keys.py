"""Local-calendar keys used to detect day, week, month and year boundaries.

Keys are integer encodings (``YYYYMMDD``, ``YYYYMM``, ``YYYY``) compared for
equality only. All helpers are pure functions of a unix timestamp and a time
zone so rollover behaviour can be tested without touching the clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SECONDS_PER_DAY = 86_400
DAYS_PER_WEEK = 7


@lru_cache(maxsize=8)
def resolve_timezone(name: str | None) -> tzinfo:
    """Return the zone for ``name``, falling back to UTC when it is unknown."""
    if not name or name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_datetime(ts: float, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(ts, tz=tz)


def day_key(ts: float, tz: tzinfo) -> int:
    local = local_datetime(ts, tz)
    return local.year * 10000 + local.month * 100 + local.day


def month_key(ts: float, tz: tzinfo) -> int:
    local = local_datetime(ts, tz)
    return local.year * 100 + local.month


def year_key(ts: float, tz: tzinfo) -> int:
    return local_datetime(ts, tz).year


def date_from_day_key(key: int) -> date:
    return date(key // 10000, (key // 100) % 100, key % 100)


def day_start_ts(ts: float, tz: tzinfo) -> int:
    """Unix timestamp of local midnight for the day containing ``ts``."""
    local = local_datetime(ts, tz)
    midnight = datetime(local.year, local.month, local.day, tzinfo=tz)
    return int(midnight.timestamp())


def week_elapsed(week_start: int, ts: float, tz: tzinfo) -> bool:
    """True once at least seven local days separate ``week_start`` from ``ts``.

    A timestamp earlier than the stored week start never counts as elapsed.
    """
    try:
        start = date_from_day_key(week_start)
    except ValueError:
        return True
    today = local_datetime(ts, tz).date()
    return (today - start).days >= DAYS_PER_WEEK


@dataclass(frozen=True, slots=True)
class CalendarKeys:
    day: int
    month: int
    year: int

    @classmethod
    def at(cls, ts: float, tz: tzinfo) -> "CalendarKeys":
        local = local_datetime(ts, tz)
        return cls(
            day=local.year * 10000 + local.month * 100 + local.day,
            month=local.year * 100 + local.month,
            year=local.year,
        )


__all__ = [
    "CalendarKeys",
    "SECONDS_PER_DAY",
    "date_from_day_key",
    "day_key",
    "day_start_ts",
    "local_datetime",
    "month_key",
    "resolve_timezone",
    "week_elapsed",
    "year_key",
]
