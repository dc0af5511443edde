"""In-memory aggregation state for the station (imperial rain totals, SI telemetry)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import tzinfo
from typing import Any, Dict, List, Mapping

from .calendar_keys import CalendarKeys


@dataclass(slots=True)
class RainDelta:
    """A single accepted rain increment, retained while inside the hourly window."""

    ts: int
    inches: float


@dataclass(slots=True)
class HistoricalBaseline:
    total_in: float = 0.0
    yearly_in: float = 0.0
    monthly_in: float = 0.0
    weekly_in: float = 0.0


@dataclass
class WeatherState:
    """Mutable aggregate owned by :class:`services.station.WeatherStation`.

    Attributes:
        last_rain_mm: Last raw cumulative gauge reading [mm]; 0 means no prior sample.
        last_update: Unix time of the last accepted sample [s].
        daily_in .. event_in: Rain accumulators per horizon [in].
        deltas: Accepted increments inside the rolling hourly window.
        last_rain_event_ts: Unix time of the last accepted increment [s].
        daily_key, month_key, year_key, week_start_key: Calendar keys of the
            periods the accumulators currently belong to (0 = uninitialized).
        historical_*: Totals recorded before this station existed [in].
        have_rain: A valid rain reading was seen during the current day.
        day_first_ts, day_last_ts: Sampled span of the current local day.
    """

    # Instantaneous telemetry
    battery_mv: float = 0.0
    battery_ok: float = 0.0
    station_id: int = 0
    model: str = ""
    firmware: int = 0
    humidity: float = 0.0
    temperature_c: float = 0.0
    wind_dir_deg: float = 0.0
    wind_avg_m_s: float = 0.0
    wind_max_m_s: float = 0.0
    light_lux: float = 0.0
    uvi: float = 0.0
    supercap_v: float = 0.0
    rain_mm: float = 0.0
    observed_time: str = ""

    # Rain accounting
    last_rain_mm: float = 0.0
    last_update: int = 0
    daily_in: float = 0.0
    monthly_in: float = 0.0
    yearly_in: float = 0.0
    weekly_in: float = 0.0
    hourly_in: float = 0.0
    event_in: float = 0.0
    deltas: List[RainDelta] = field(default_factory=list)
    last_rain_event_ts: int = 0
    have_rain: bool = False

    # Calendar keys
    daily_key: int = 0
    month_key: int = 0
    year_key: int = 0
    week_start_key: int = 0

    # Pre-system baselines
    historical_total_in: float = 0.0
    historical_yearly_in: float = 0.0
    historical_monthly_in: float = 0.0
    historical_weekly_in: float = 0.0
    historical_seeded: bool = False

    # Daily extremes
    have_temp: bool = False
    temp_high_c: float = 0.0
    temp_low_c: float = 0.0
    have_hum: bool = False
    hum_high: float = 0.0
    hum_low: float = 0.0
    have_wind: bool = False
    wind_mean_m_s: float = 0.0
    wind_max_gust_m_s: float = 0.0
    wind_sample_count: int = 0
    day_first_ts: int = 0
    day_last_ts: int = 0

    @property
    def lifetime_total_in(self) -> float:
        excess = max(0.0, self.yearly_in - self.historical_yearly_in)
        return self.historical_total_in + excess

    @property
    def meaningful(self) -> bool:
        return self.have_temp or self.have_hum or self.have_wind

    def seed_historical(self, baseline: HistoricalBaseline) -> None:
        """Apply the pre-system baselines once; later calls are no-ops."""
        if self.historical_seeded:
            return
        self.historical_total_in = baseline.total_in
        self.historical_yearly_in = baseline.yearly_in
        self.historical_monthly_in = baseline.monthly_in
        self.historical_weekly_in = baseline.weekly_in
        self.historical_seeded = True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "deltas":
                value = [{"ts": delta.ts, "inches": delta.inches} for delta in value]
            data[item.name] = value
        return data

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, defaults: "WeatherState") -> "WeatherState":
        """Overlay ``payload`` onto ``defaults``; keys with the wrong type are ignored."""
        state = defaults
        for item in fields(cls):
            if item.name not in payload:
                continue
            raw = payload[item.name]
            if item.name == "deltas":
                state.deltas = _parse_deltas(raw)
                continue
            current = getattr(state, item.name)
            coerced = _coerce_like(current, raw)
            if coerced is not None:
                setattr(state, item.name, coerced)
        return state


def new_state(now: float, tz: tzinfo, baseline: HistoricalBaseline | None = None) -> WeatherState:
    """Fresh state with today's calendar keys and zeroed accumulators."""
    keys = CalendarKeys.at(now, tz)
    state = WeatherState(
        last_update=int(now),
        daily_key=keys.day,
        month_key=keys.month,
        year_key=keys.year,
        week_start_key=keys.day,
    )
    state.seed_historical(baseline or HistoricalBaseline())
    return state


def _coerce_like(current: Any, raw: Any) -> Any:
    if isinstance(current, bool):
        return raw if isinstance(raw, bool) else None
    if isinstance(current, int):
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float) and raw.is_integer():
            return int(raw)
        return None
    if isinstance(current, float):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        return float(raw)
    if isinstance(current, str):
        return raw if isinstance(raw, str) else None
    return None


def _parse_deltas(raw: Any) -> List[RainDelta]:
    if not isinstance(raw, list):
        return []
    deltas: List[RainDelta] = []
    for entry in raw:
        if isinstance(entry, Mapping):
            ts, inches = entry.get("ts"), entry.get("inches")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            ts, inches = entry
        else:
            continue
        if isinstance(ts, (int, float)) and isinstance(inches, (int, float)):
            deltas.append(RainDelta(ts=int(ts), inches=float(inches)))
    return deltas


__all__ = ["HistoricalBaseline", "RainDelta", "WeatherState", "new_state"]
