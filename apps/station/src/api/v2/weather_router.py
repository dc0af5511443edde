from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from services.station import WeatherStation
from .dependencies import get_station

router = APIRouter(tags=["weather"])


class RainTotals(BaseModel):
    daily_in: float
    event_in: float
    hourly_in: float = Field(description="Rain over the trailing hour in inches")
    weekly_in: float
    monthly_in: float
    yearly_in: float
    total_in: float = Field(description="Lifetime total including the historical baseline")


class DailyExtremes(BaseModel):
    temp_high_F: Optional[float] = None
    temp_low_F: Optional[float] = None
    humidity_high: Optional[float] = None
    humidity_low: Optional[float] = None
    wind_mean_mph: Optional[float] = None
    wind_gust_max_mph: Optional[float] = None
    meaningful: bool = False


class StationHealth(BaseModel):
    bridge_reachable: bool
    stream_healthy: bool
    last_poll_ts: int
    last_update_ts: int
    age_sec: int = Field(description="Seconds since the last accepted sample, -1 before the first")
    stale: bool
    http_status: int
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class SunTimes(BaseModel):
    sunrise_ts: Optional[int] = None
    sunset_ts: Optional[int] = None
    civil_sunrise_ts: Optional[int] = None
    civil_sunset_ts: Optional[int] = None
    length_of_day_sec: int
    length_of_visible_sec: int


class MoonState(BaseModel):
    julian_day: float
    phase: float = Field(description="0 at new moon, 0.5 at full moon")
    segment: str
    visible: float = Field(description="Illuminated fraction of the disc")


class Astronomy(BaseModel):
    gmt_offset: float
    midnight_ts: int
    time_zone: str
    sun: SunTimes
    moon: MoonState


class WeatherSnapshot(BaseModel):
    api_version: str
    battery_mV: float
    battery_ok: float
    id: int
    model: str
    firmware: int
    humidity: float
    temperature_F: float
    wind_dir_deg: float
    wind_avg_m_s: float
    wind_max_m_s: float
    light_lux: float
    uvi: float
    supercap_V: float
    time: str
    astro: Astronomy
    rain: RainTotals
    daily: DailyExtremes
    health: StationHealth


@router.get("/weather", response_model=WeatherSnapshot)
async def current_weather(station: WeatherStation = Depends(get_station)):
    """Live conditions, rain totals, today's extremes and bridge health."""
    return await station.current()
