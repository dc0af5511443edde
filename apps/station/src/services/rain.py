"""Rain rollover engine.

Converts the gauge's cumulative millimetre counter into per-horizon inch
totals (event, hourly, daily, weekly, monthly, yearly) and resets each total
when its local calendar period ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Optional

from . import extremes
from .calendar_keys import CalendarKeys, day_start_ts, week_elapsed
from .daily_summary import DailySummaryRecord
from .samples import RAIN_READING_MAX_MM, RAIN_READING_MIN_MM
from .weather_state import RainDelta, WeatherState

MM_PER_INCH = 25.4
HOURLY_WINDOW_SEC = 3600
MIN_DELTA_MM = 0.0001
MAX_DELTA_MM = 5000.0


def inches_from_mm(mm: float) -> float:
    return mm / MM_PER_INCH


@dataclass(frozen=True, slots=True)
class RolloverPolicy:
    tz: tzinfo = timezone.utc
    min_day_coverage_sec: int = 12 * 3600
    event_gap_sec: int = 30 * 60


@dataclass(slots=True)
class RolloverResult:
    day: bool = False
    month: bool = False
    year: bool = False
    week: bool = False
    closed_day: Optional[DailySummaryRecord] = None

    @property
    def any(self) -> bool:
        return self.day or self.month or self.year or self.week


@dataclass(frozen=True, slots=True)
class RainIngestResult:
    accepted: bool
    delta_in: float
    rollover: RolloverResult


class RainRolloverEngine:
    def __init__(self, policy: RolloverPolicy | None = None) -> None:
        self.policy = policy or RolloverPolicy()

    def ingest(self, state: WeatherState, reading_mm: Optional[float], now: int) -> RainIngestResult:
        """Roll calendar periods forward, then account a raw gauge reading.

        Every sample advances the calendar, even one without a usable rain
        reading. A missing reading or one outside the gauge range leaves the
        rain accumulators untouched.
        """
        rollover = self.advance(state, now)
        if reading_mm is None or not (RAIN_READING_MIN_MM <= reading_mm <= RAIN_READING_MAX_MM):
            state.last_update = now
            return RainIngestResult(accepted=False, delta_in=0.0, rollover=rollover)
        delta_in = self.accumulate(state, reading_mm, now)
        return RainIngestResult(accepted=True, delta_in=delta_in, rollover=rollover)

    def advance(self, state: WeatherState, now: int) -> RolloverResult:
        """Apply due rollovers, extend today's coverage and trim the hourly window."""
        result = self.rollover(state, now)
        if state.day_first_ts == 0:
            state.day_first_ts = now
        state.day_last_ts = now
        self.recompute_hourly(state, now)
        return result

    def rollover(self, state: WeatherState, now: int) -> RolloverResult:
        tz = self.policy.tz
        keys = CalendarKeys.at(now, tz)
        result = RolloverResult()

        if state.daily_key == 0:
            state.daily_key = keys.day
        if state.month_key == 0:
            state.month_key = keys.month
        if state.year_key == 0:
            state.year_key = keys.year
        if state.week_start_key == 0:
            state.week_start_key = keys.day

        if keys.day != state.daily_key:
            result.day = True
            result.closed_day = self._close_day(state)
            state.daily_in = 0.0
            state.have_rain = False
            state.daily_key = keys.day
            state.day_first_ts = now
            state.day_last_ts = now
            extremes.reset(state)

        if keys.month != state.month_key:
            result.month = True
            state.monthly_in = 0.0
            state.month_key = keys.month

        if keys.year != state.year_key:
            result.year = True
            state.yearly_in = 0.0
            state.year_key = keys.year

        if week_elapsed(state.week_start_key, now, tz):
            result.week = True
            state.weekly_in = 0.0
            state.week_start_key = keys.day

        return result

    def _close_day(self, state: WeatherState) -> Optional[DailySummaryRecord]:
        covered = (
            state.day_first_ts
            and state.day_last_ts
            and (state.day_last_ts - state.day_first_ts) >= self.policy.min_day_coverage_sec
        )
        if not covered:
            return None
        return DailySummaryRecord(
            day_ts=day_start_ts(state.day_first_ts, self.policy.tz),
            temp_high_c=state.temp_high_c if state.have_temp else None,
            temp_low_c=state.temp_low_c if state.have_temp else None,
            humidity_high=state.hum_high if state.have_hum else None,
            humidity_low=state.hum_low if state.have_hum else None,
            rain_in=state.daily_in if state.have_rain else None,
        )

    def accumulate(self, state: WeatherState, reading_mm: float, now: int) -> float:
        """Add the increment since the previous reading; returns the accepted inches."""
        state.have_rain = True

        # First reading after boot or a gauge reset only seeds the counter.
        if state.last_rain_mm == 0.0:
            state.last_rain_mm = reading_mm
            state.last_update = now
            return 0.0

        delta_mm = reading_mm - state.last_rain_mm
        delta_in = 0.0
        if MIN_DELTA_MM < delta_mm < MAX_DELTA_MM:
            delta_in = inches_from_mm(delta_mm)
            state.daily_in += delta_in
            state.monthly_in += delta_in
            state.yearly_in += delta_in
            state.weekly_in += delta_in

            state.deltas.append(RainDelta(ts=now, inches=delta_in))
            self.recompute_hourly(state, now)

            if state.last_rain_event_ts == 0 or (now - state.last_rain_event_ts) > self.policy.event_gap_sec:
                state.event_in = 0.0
            state.event_in += delta_in
            state.last_rain_event_ts = now

        state.last_rain_mm = reading_mm
        state.last_update = now
        return delta_in

    @staticmethod
    def recompute_hourly(state: WeatherState, now: int) -> None:
        state.deltas = [delta for delta in state.deltas if now - delta.ts <= HOURLY_WINDOW_SEC]
        state.hourly_in = sum(delta.inches for delta in state.deltas)


__all__ = [
    "HOURLY_WINDOW_SEC",
    "MM_PER_INCH",
    "RainIngestResult",
    "RainRolloverEngine",
    "RolloverPolicy",
    "RolloverResult",
    "inches_from_mm",
]
