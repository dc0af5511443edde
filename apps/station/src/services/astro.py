"""Sunrise/sunset and moon-phase decoration for the current-conditions payload."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from math import cos, pi
from typing import Any, Dict, Final, Optional

from astral import Observer, moon
from astral.sun import dawn, dusk, elevation, noon, sunrise, sunset

from .calendar_keys import day_start_ts

UNIX_EPOCH_JD: Final[float] = 2440587.5
SECONDS_PER_DAY: Final[int] = 86400
CIVIL_DEPRESSION_DEG: Final[float] = 6.0
LUNAR_PHASE_SPAN: Final[float] = 28.0  # astral reports the moon's age on a 0..28 scale
MOON_SEGMENTS: Final[tuple[str, ...]] = (
    "New",
    "Waxing Crescent",
    "First Quarter",
    "Waxing Gibbous",
    "Full",
    "Waning Gibbous",
    "Last Quarter",
    "Waning Crescent",
)


def julian_day(ts: float) -> float:
    return ts / SECONDS_PER_DAY + UNIX_EPOCH_JD


@dataclass(frozen=True, slots=True)
class SunEvents:
    rise_ts: Optional[int]
    set_ts: Optional[int]
    day_length_sec: int


def _polar_events(observer: Observer, on: date, tz: tzinfo) -> SunEvents:
    # No crossing on this date: either the sun stays up or it never rises.
    midday = noon(observer, date=on, tzinfo=tz)
    if elevation(observer, midday) > 0.0:
        return SunEvents(rise_ts=None, set_ts=None, day_length_sec=SECONDS_PER_DAY)
    return SunEvents(rise_ts=None, set_ts=None, day_length_sec=0)


def sun_events(
    on: date,
    latitude: float,
    longitude: float,
    *,
    tz: tzinfo = timezone.utc,
    depression: Optional[float] = None,
) -> SunEvents:
    """Rise/set on the local date ``on``.

    With ``depression`` set, the civil dawn/dusk pair is returned instead of
    sunrise/sunset.
    """
    observer = Observer(latitude=latitude, longitude=longitude)
    try:
        if depression is None:
            rise = sunrise(observer, date=on, tzinfo=tz)
            set_ = sunset(observer, date=on, tzinfo=tz)
        else:
            rise = dawn(observer, date=on, tzinfo=tz, depression=depression)
            set_ = dusk(observer, date=on, tzinfo=tz, depression=depression)
    except ValueError:
        return _polar_events(observer, on, tz)

    rise_ts = int(rise.timestamp())
    set_ts = int(set_.timestamp())
    return SunEvents(rise_ts=rise_ts, set_ts=set_ts, day_length_sec=max(set_ts - rise_ts, 0))


@dataclass(frozen=True, slots=True)
class MoonPhase:
    julian_day: float
    phase: float  # 0 new, 0.5 full
    visible: float  # illuminated fraction
    segment: str


def moon_phase(ts: float) -> MoonPhase:
    on = datetime.fromtimestamp(ts, tz=timezone.utc).date()
    phase = (moon.phase(on) % LUNAR_PHASE_SPAN) / LUNAR_PHASE_SPAN
    visible = (1.0 - cos(2.0 * pi * phase)) / 2.0
    segment = MOON_SEGMENTS[int(phase * len(MOON_SEGMENTS) + 0.5) % len(MOON_SEGMENTS)]
    return MoonPhase(julian_day=julian_day(ts), phase=phase, visible=visible, segment=segment)


def compute_solar_and_moon(ts: float, *, latitude: float, longitude: float, tz: tzinfo) -> Dict[str, Any]:
    """Astronomy block for the snapshot; all timestamps are unix UTC."""
    local = datetime.fromtimestamp(ts, tz=tz)
    sun = sun_events(local.date(), latitude, longitude, tz=tz)
    civil = sun_events(local.date(), latitude, longitude, tz=tz, depression=CIVIL_DEPRESSION_DEG)
    lunar = moon_phase(ts)
    offset = local.utcoffset()
    return {
        "gmt_offset": offset.total_seconds() / 3600.0 if offset is not None else 0.0,
        "midnight_ts": day_start_ts(ts, tz),
        "time_zone": local.tzname() or "UTC",
        "sun": {
            "sunrise_ts": sun.rise_ts,
            "sunset_ts": sun.set_ts,
            "civil_sunrise_ts": civil.rise_ts,
            "civil_sunset_ts": civil.set_ts,
            "length_of_day_sec": sun.day_length_sec,
            "length_of_visible_sec": civil.day_length_sec,
        },
        "moon": {
            "julian_day": lunar.julian_day,
            "phase": lunar.phase,
            "segment": lunar.segment,
            "visible": lunar.visible,
        },
    }


__all__ = ["MoonPhase", "SunEvents", "compute_solar_and_moon", "moon_phase", "sun_events"]
