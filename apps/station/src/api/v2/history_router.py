from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from services.history import HistoryMetric, parse_history_query
from services.station import WeatherStation
from .dependencies import get_station

router = APIRouter(prefix="/history", tags=["history"])


class TemperatureDay(BaseModel):
    day: int = Field(description="Local midnight of the summarized day, unix seconds")
    temp_high_F: Optional[float] = None
    temp_low_F: Optional[float] = None


class HumidityDay(BaseModel):
    day: int
    humidity_high: Optional[float] = None
    humidity_low: Optional[float] = None


class RainDay(BaseModel):
    day: int
    rain_in: float


class TemperatureHistory(BaseModel):
    days: List[TemperatureDay]


class HumidityHistory(BaseModel):
    days: List[HumidityDay]


class RainHistory(BaseModel):
    days: List[RainDay] = Field(description="Days without a rain reading are omitted")


async def _history(request: Request, station: WeatherStation, metric: HistoryMetric) -> Dict[str, List[Dict[str, Any]]]:
    # Query parameters are matched case-insensitively, so they are read raw.
    query = parse_history_query(request.query_params.multi_items())
    return await station.history(metric, query)


@router.get("/temperature", response_model=TemperatureHistory)
async def temperature_history(request: Request, station: WeatherStation = Depends(get_station)):
    return await _history(request, station, "temperature")


@router.get("/humidity", response_model=HumidityHistory)
async def humidity_history(request: Request, station: WeatherStation = Depends(get_station)):
    return await _history(request, station, "humidity")


@router.get("/rain", response_model=RainHistory)
async def rain_history(request: Request, station: WeatherStation = Depends(get_station)):
    return await _history(request, station, "rain")
