from __future__ import annotations

from fastapi import HTTPException, Request, status

from services.station import WeatherStation


def get_station(request: Request) -> WeatherStation:
    station = getattr(request.app.state, "station", None)
    if station is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Station not initialised")
    return station
