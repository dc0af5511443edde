from __future__ import annotations

from typing import Optional

from .weather_state import WeatherState


def observe(
    state: WeatherState,
    *,
    temperature_c: Optional[float] = None,
    humidity: Optional[float] = None,
    wind_avg_m_s: Optional[float] = None,
    wind_gust_m_s: Optional[float] = None,
) -> None:
    """Fold one sample into the running daily extremes.

    Each metric is tracked independently; a missing value leaves that metric
    untouched so a day without observations keeps reporting no data.
    """
    if temperature_c is not None:
        if not state.have_temp:
            state.temp_high_c = temperature_c
            state.temp_low_c = temperature_c
            state.have_temp = True
        else:
            state.temp_high_c = max(state.temp_high_c, temperature_c)
            state.temp_low_c = min(state.temp_low_c, temperature_c)

    if humidity is not None:
        if not state.have_hum:
            state.hum_high = humidity
            state.hum_low = humidity
            state.have_hum = True
        else:
            state.hum_high = max(state.hum_high, humidity)
            state.hum_low = min(state.hum_low, humidity)

    if wind_avg_m_s is not None:
        gust = wind_gust_m_s if wind_gust_m_s is not None else wind_avg_m_s
        if not state.have_wind:
            state.have_wind = True
            state.wind_mean_m_s = wind_avg_m_s
            state.wind_max_gust_m_s = gust
            state.wind_sample_count = 1
        else:
            n = state.wind_sample_count
            state.wind_mean_m_s = (state.wind_mean_m_s * n + wind_avg_m_s) / (n + 1)
            state.wind_sample_count = n + 1
            state.wind_max_gust_m_s = max(state.wind_max_gust_m_s, gust)


def reset(state: WeatherState) -> None:
    """Forget the current day's extremes (called on day rollover)."""
    state.have_temp = False
    state.have_hum = False
    state.have_wind = False
    state.wind_mean_m_s = 0.0
    state.wind_max_gust_m_s = 0.0
    state.wind_sample_count = 0


__all__ = ["observe", "reset"]
