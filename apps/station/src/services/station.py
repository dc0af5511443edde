from __future__ import annotations

import asyncio
import copy
import logging
import time
from dataclasses import dataclass
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import extremes
from .astro import compute_solar_and_moon
from .bridge import BridgeOutcome, SampleReceived
from .calendar_keys import resolve_timezone
from .daily_summary import DailySummaryStore
from .history import HistoryMetric, HistoryQuery, celsius_to_fahrenheit, query_history
from .rain import RainRolloverEngine, RolloverPolicy
from .samples import StationSample, normalize_sample
from .snapshot import StateSnapshotStore
from .weather_state import HistoricalBaseline, WeatherState, new_state

logger = logging.getLogger("weatherstation.hub.station")

MPS_TO_MPH = 2.2369


@dataclass(slots=True)
class BridgeHealth:
    bridge_reachable: bool = False
    stream_healthy: bool = False
    last_poll_ts: int = 0
    http_status: int = 0
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class WeatherStation:
    """Owns the live :class:`WeatherState` and serializes every access to it.

    The bridge poller is the only writer; snapshot readers take the same lock
    for the duration of a copy. History reads go straight to the summary store.
    """

    def __init__(
        self,
        *,
        state: WeatherState,
        engine: Optional[RainRolloverEngine] = None,
        summary_store: Optional[DailySummaryStore] = None,
        snapshot_store: Optional[StateSnapshotStore] = None,
        latitude: float = 0.0,
        longitude: float = 0.0,
        stale_after_seconds: int = 60,
        api_version: str = "2.1.0",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._engine = engine or RainRolloverEngine()
        self._summary_store = summary_store
        self._snapshot_store = snapshot_store
        self._latitude = latitude
        self._longitude = longitude
        self._stale_after = stale_after_seconds
        self._api_version = api_version
        self._clock = clock
        self._health = BridgeHealth()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Any, *, clock: Callable[[], float] = time.time) -> "WeatherStation":
        tz = resolve_timezone(settings.station_timezone)
        baseline = HistoricalBaseline(
            total_in=settings.historical_total_in,
            yearly_in=settings.historical_yearly_in,
            monthly_in=settings.historical_monthly_in,
            weekly_in=settings.historical_weekly_in,
        )
        snapshot_store = StateSnapshotStore(Path(settings.state_path))
        state = snapshot_store.load(now=clock(), tz=tz, baseline=baseline)
        policy = RolloverPolicy(
            tz=tz,
            min_day_coverage_sec=int(settings.min_day_coverage_hours * 3600),
            event_gap_sec=settings.event_gap_minutes * 60,
        )
        return cls(
            state=state,
            engine=RainRolloverEngine(policy),
            summary_store=DailySummaryStore(db_path=Path(settings.history_db)),
            snapshot_store=snapshot_store,
            latitude=settings.latitude,
            longitude=settings.longitude,
            stale_after_seconds=settings.stale_after_seconds,
            api_version=settings.app_version,
            clock=clock,
        )

    @classmethod
    def in_memory(cls, *, tz: tzinfo = timezone.utc, clock: Callable[[], float] = time.time, **kwargs: Any) -> "WeatherStation":
        """Station with fresh state and no persistence, mainly for tests."""
        engine = kwargs.pop("engine", None) or RainRolloverEngine(RolloverPolicy(tz=tz))
        return cls(state=new_state(clock(), tz), engine=engine, clock=clock, **kwargs)

    @property
    def summary_store(self) -> Optional[DailySummaryStore]:
        return self._summary_store

    @property
    def tz(self) -> tzinfo:
        return self._engine.policy.tz

    def _now(self, now: Optional[float]) -> int:
        return int(self._clock() if now is None else now)

    async def ingest(self, payload: Any, *, now: Optional[float] = None) -> bool:
        """Apply one decoded bridge payload; False when it is not a telemetry object."""
        async with self._lock:
            return await self._ingest_locked(payload, self._now(now))

    async def record_poll(self, outcome: BridgeOutcome, *, now: Optional[float] = None) -> None:
        ts = self._now(now)
        async with self._lock:
            health = self._health
            was_healthy = health.stream_healthy
            health.last_poll_ts = ts
            health.http_status = outcome.http_status
            health.bridge_reachable = outcome.bridge_reachable
            health.stream_healthy = outcome.stream_healthy
            health.error_code = outcome.error_code
            health.error_message = outcome.error_message

            if isinstance(outcome, SampleReceived):
                await self._ingest_locked(outcome.payload, ts)

            if was_healthy and not health.stream_healthy:
                logger.warning(
                    "Bridge stream unhealthy: %s (%s)",
                    health.error_code,
                    health.error_message or "no detail",
                )
            elif health.stream_healthy and not was_healthy:
                logger.info("Bridge stream healthy")

    async def _ingest_locked(self, payload: Any, now: int) -> bool:
        sample = normalize_sample(payload)
        if sample is None:
            logger.debug("Ignoring non-object bridge payload")
            return False

        state = self._state
        self._apply_instantaneous(sample)
        rain = self._engine.ingest(state, sample.rain_mm, now)
        if sample.has_rain and not rain.accepted:
            logger.debug("Ignoring out-of-range rain reading %.1f mm", sample.rain_mm)
        rollover = rain.rollover

        extremes.observe(
            state,
            temperature_c=sample.temperature_c,
            humidity=sample.humidity,
            wind_avg_m_s=sample.wind_avg_m_s,
            wind_gust_m_s=sample.wind_max_m_s,
        )

        if rollover.closed_day is not None:
            if self._summary_store is not None:
                await self._summary_store.upsert(rollover.closed_day)
        elif rollover.day:
            logger.info("Day rolled over with insufficient coverage; summary dropped")

        if self._snapshot_store is not None:
            await asyncio.to_thread(self._snapshot_store.save, state)
        return True

    def _apply_instantaneous(self, sample: StationSample) -> None:
        state = self._state
        for attr, value in (
            ("battery_mv", sample.battery_mv),
            ("battery_ok", sample.battery_ok),
            ("station_id", sample.station_id),
            ("model", sample.model),
            ("firmware", sample.firmware),
            ("humidity", sample.humidity),
            ("temperature_c", sample.temperature_c),
            ("wind_dir_deg", sample.wind_dir_deg),
            ("wind_avg_m_s", sample.wind_avg_m_s),
            ("wind_max_m_s", sample.wind_max_m_s),
            ("light_lux", sample.light_lux),
            ("uvi", sample.uvi),
            ("rain_mm", sample.rain_mm),
            ("supercap_v", sample.supercap_v),
            ("observed_time", sample.time),
        ):
            if value is not None:
                setattr(state, attr, value)

    async def state_copy(self) -> WeatherState:
        async with self._lock:
            return copy.deepcopy(self._state)

    async def health_copy(self) -> BridgeHealth:
        async with self._lock:
            return copy.copy(self._health)

    async def current(self, *, now: Optional[float] = None) -> Dict[str, Any]:
        ts = self._now(now)
        async with self._lock:
            state = copy.deepcopy(self._state)
            health = copy.copy(self._health)
        return self._build_current(state, health, ts)

    def _build_current(self, st: WeatherState, health: BridgeHealth, now: int) -> Dict[str, Any]:
        age = now - st.last_update if st.last_update else -1
        stale = st.last_update != 0 and age > self._stale_after

        daily: Dict[str, Any] = {
            "temp_high_F": celsius_to_fahrenheit(st.temp_high_c) if st.have_temp else None,
            "temp_low_F": celsius_to_fahrenheit(st.temp_low_c) if st.have_temp else None,
            "humidity_high": st.hum_high if st.have_hum else None,
            "humidity_low": st.hum_low if st.have_hum else None,
            "wind_mean_mph": st.wind_mean_m_s * MPS_TO_MPH if st.have_wind else None,
            "wind_gust_max_mph": st.wind_max_gust_m_s * MPS_TO_MPH if st.have_wind else None,
            "meaningful": st.meaningful,
        }

        return {
            "api_version": self._api_version,
            "battery_mV": st.battery_mv,
            "battery_ok": st.battery_ok,
            "id": st.station_id,
            "model": st.model,
            "firmware": st.firmware,
            "humidity": st.humidity,
            "temperature_F": celsius_to_fahrenheit(st.temperature_c),
            "wind_dir_deg": st.wind_dir_deg,
            "wind_avg_m_s": st.wind_avg_m_s,
            "wind_max_m_s": st.wind_max_m_s,
            "light_lux": st.light_lux,
            "uvi": st.uvi,
            "supercap_V": st.supercap_v,
            "time": st.observed_time,
            "astro": compute_solar_and_moon(now, latitude=self._latitude, longitude=self._longitude, tz=self.tz),
            "rain": {
                "daily_in": st.daily_in,
                "event_in": st.event_in,
                "hourly_in": st.hourly_in,
                "weekly_in": st.weekly_in,
                "monthly_in": st.monthly_in,
                "yearly_in": st.yearly_in,
                "total_in": st.lifetime_total_in,
            },
            "daily": daily,
            "health": {
                "bridge_reachable": health.bridge_reachable,
                "stream_healthy": health.stream_healthy,
                "last_poll_ts": health.last_poll_ts,
                "last_update_ts": st.last_update,
                "age_sec": age,
                "stale": stale,
                "http_status": health.http_status,
                "error_code": health.error_code,
                "error_message": health.error_message,
            },
        }

    async def history(
        self,
        metric: HistoryMetric,
        query: HistoryQuery,
        *,
        now: Optional[float] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        return await query_history(self._summary_store, metric, query, now=self._now(now))


__all__ = ["BridgeHealth", "MPS_TO_MPH", "WeatherStation"]
