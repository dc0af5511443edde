from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

RAIN_READING_MIN_MM = 0.0
RAIN_READING_MAX_MM = 20_000.0


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _coerce_int(value: Any) -> Optional[int]:
    number = _coerce_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _coerce_flag(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    return _coerce_float(value)


def _coerce_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip()
    return None


@dataclass(frozen=True, slots=True)
class StationSample:
    """One telemetry payload from the sensor bridge with typed, optional fields."""

    battery_mv: Optional[float] = None
    battery_ok: Optional[float] = None
    station_id: Optional[int] = None
    model: Optional[str] = None
    firmware: Optional[int] = None
    humidity: Optional[float] = None
    temperature_c: Optional[float] = None
    wind_dir_deg: Optional[float] = None
    wind_avg_m_s: Optional[float] = None
    wind_max_m_s: Optional[float] = None
    light_lux: Optional[float] = None
    uvi: Optional[float] = None
    rain_mm: Optional[float] = None
    supercap_v: Optional[float] = None
    time: Optional[str] = None

    @property
    def has_rain(self) -> bool:
        return self.rain_mm is not None


def normalize_sample(payload: Any) -> Optional[StationSample]:
    """Extract the known telemetry fields from a decoded bridge payload.

    Unknown keys are ignored and malformed values become ``None``, so a
    partially garbled payload still yields its valid fields. Returns ``None``
    only when the payload is not a JSON object at all.
    """
    if not isinstance(payload, Mapping):
        return None
    return StationSample(
        battery_mv=_coerce_float(payload.get("battery_mV")),
        battery_ok=_coerce_flag(payload.get("battery_ok")),
        station_id=_coerce_int(payload.get("id")),
        model=_coerce_str(payload.get("model")),
        firmware=_coerce_int(payload.get("firmware")),
        humidity=_coerce_float(payload.get("humidity")),
        temperature_c=_coerce_float(payload.get("temperature_C")),
        wind_dir_deg=_coerce_float(payload.get("wind_dir_deg")),
        wind_avg_m_s=_coerce_float(payload.get("wind_avg_m_s")),
        wind_max_m_s=_coerce_float(payload.get("wind_max_m_s")),
        light_lux=_coerce_float(payload.get("light_lux")),
        uvi=_coerce_float(payload.get("uvi")),
        rain_mm=_coerce_float(payload.get("rain_mm")),
        supercap_v=_coerce_float(payload.get("supercap_V")),
        time=_coerce_str(payload.get("time")),
    )


__all__ = ["RAIN_READING_MAX_MM", "RAIN_READING_MIN_MM", "StationSample", "normalize_sample"]
