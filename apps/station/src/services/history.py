"""History queries over the daily summary table.

The mode of a query is decided once, from which of ``days``/``limit``/``offset``
were supplied, and carried as one of three query types:

* :class:`SimpleQuery` -- nothing supplied: every stored day.
* :class:`TimeOnlyQuery` -- only ``days``: days newer than the window (0 = all).
* :class:`PagedQuery` -- ``limit`` or ``offset`` supplied: optional window plus paging.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from .daily_summary import DailySummaryStore
from .calendar_keys import SECONDS_PER_DAY

DAYS_MIN, DAYS_MAX, DAYS_DEFAULT = 0, 3650, 0
LIMIT_MIN, LIMIT_MAX, LIMIT_DEFAULT = 1, 365, 100
OFFSET_MIN, OFFSET_MAX, OFFSET_DEFAULT = 0, 1_000_000, 0

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

HistoryMetric = Literal["temperature", "humidity", "rain"]

METRIC_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temp_high_c", "temp_low_c"),
    "humidity": ("humidity_high", "humidity_low"),
    "rain": ("rain_in",),
}


@dataclass(frozen=True, slots=True)
class SimpleQuery:
    pass


@dataclass(frozen=True, slots=True)
class TimeOnlyQuery:
    days: int


@dataclass(frozen=True, slots=True)
class PagedQuery:
    days: int
    limit: int
    offset: int


HistoryQuery = Union[SimpleQuery, TimeOnlyQuery, PagedQuery]


def _lookup(items: List[Tuple[str, str]], name: str) -> Optional[str]:
    """First non-empty value whose key matches ``name`` ignoring case."""
    for key, value in items:
        if key.lower() == name and value:
            return value
    return None


def _parse_int(raw: Optional[str], default: int, lower: int, upper: int) -> int:
    if raw is None:
        return default
    match = _LEADING_INT.match(raw)
    if match is None:
        return default
    return max(lower, min(upper, int(match.group(1))))


def parse_history_query(params: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> HistoryQuery:
    items = list(params.items() if isinstance(params, Mapping) else params)
    days_raw = _lookup(items, "days")
    limit_raw = _lookup(items, "limit")
    offset_raw = _lookup(items, "offset")

    if limit_raw is not None or offset_raw is not None:
        return PagedQuery(
            days=_parse_int(days_raw, DAYS_DEFAULT, DAYS_MIN, DAYS_MAX),
            limit=_parse_int(limit_raw, LIMIT_DEFAULT, LIMIT_MIN, LIMIT_MAX),
            offset=_parse_int(offset_raw, OFFSET_DEFAULT, OFFSET_MIN, OFFSET_MAX),
        )
    if days_raw is not None:
        return TimeOnlyQuery(days=_parse_int(days_raw, DAYS_DEFAULT, DAYS_MIN, DAYS_MAX))
    return SimpleQuery()


def _since_ts(days: int, now: float) -> Optional[int]:
    if days <= 0:
        return None
    return int(now) - days * SECONDS_PER_DAY


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9.0 / 5.0 + 32.0


def _project(metric: str, row: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    day = int(row["day_ts"])
    if metric == "temperature":
        high, low = row["temp_high_c"], row["temp_low_c"]
        if high is None or low is None:
            return {"day": day, "temp_high_F": None, "temp_low_F": None}
        return {"day": day, "temp_high_F": celsius_to_fahrenheit(high), "temp_low_F": celsius_to_fahrenheit(low)}
    if metric == "humidity":
        high, low = row["humidity_high"], row["humidity_low"]
        if high is None or low is None:
            return {"day": day, "humidity_high": None, "humidity_low": None}
        return {"day": day, "humidity_high": high, "humidity_low": low}
    # Rain history is sparse: days without a rain total are left out.
    if row["rain_in"] is None:
        return None
    return {"day": day, "rain_in": row["rain_in"]}


async def query_history(
    store: Optional[DailySummaryStore],
    metric: HistoryMetric,
    query: HistoryQuery,
    *,
    now: float,
) -> Dict[str, List[Dict[str, Any]]]:
    if metric not in METRIC_COLUMNS:
        raise ValueError(f"Unknown history metric '{metric}'")
    if store is None:
        return {"days": []}

    columns = METRIC_COLUMNS[metric]
    if isinstance(query, PagedQuery):
        rows = await store.query(
            columns=columns,
            since_ts=_since_ts(query.days, now),
            limit=query.limit,
            offset=query.offset,
        )
    elif isinstance(query, TimeOnlyQuery):
        rows = await store.query(columns=columns, since_ts=_since_ts(query.days, now))
    else:
        rows = await store.query(columns=columns)

    days: List[Dict[str, Any]] = []
    for row in rows:
        projected = _project(metric, row)
        if projected is not None:
            days.append(projected)
    return {"days": days}


__all__ = [
    "HistoryMetric",
    "HistoryQuery",
    "PagedQuery",
    "SimpleQuery",
    "TimeOnlyQuery",
    "celsius_to_fahrenheit",
    "parse_history_query",
    "query_history",
]
