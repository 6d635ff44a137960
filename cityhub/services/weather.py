# cityhub/services/weather.py
# Open-Meteo forecast, flattened into unit-neutral field names.

import httpx
import logging
from typing import Any, List, Optional
from fastapi import status
from cityhub.core.config import settings
from cityhub.models.dto import (
    CurrentWeather,
    DailyWeather,
    HourlyWeather,
    WeatherResponse,
    WeatherUnits,
)
from cityhub.utils.params import api_error

logger = logging.getLogger(__name__)

HOURLY_LIMIT = 24

CURRENT_FIELDS = "temperature_2m,apparent_temperature,is_day,precipitation,weather_code,wind_speed_10m"
HOURLY_FIELDS = "temperature_2m,precipitation_probability,weather_code"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max"


def _first(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _series(block: Optional[dict], key: str) -> List[Any]:
    values = (block or {}).get(key)
    return values if isinstance(values, list) else []


def _at(values: List[Any], index: int) -> Any:
    return values[index] if index < len(values) else None


def _as_bool(value: Any) -> Optional[bool]:
    # Open-Meteo reports is_day as 0/1
    return None if value is None else bool(value)


def normalize_forecast(data: dict, tz: str, imperial: bool) -> WeatherResponse:
    """Maps the raw forecast body; accepts the legacy `current_weather` block too."""
    cur = data.get("current") or {}
    legacy = data.get("current_weather") or {}

    current = CurrentWeather(
        time_iso=_first(cur.get("time"), legacy.get("time"), ""),
        temp=_first(cur.get("temperature_2m"), legacy.get("temperature")),
        feels_like=cur.get("apparent_temperature"),
        is_day=_as_bool(_first(cur.get("is_day"), legacy.get("is_day"))),
        precip=cur.get("precipitation"),
        wind_speed=_first(cur.get("wind_speed_10m"), legacy.get("windspeed")),
        code=_first(cur.get("weather_code"), legacy.get("weathercode")),
    )

    hourly_block = data.get("hourly")
    hourly_temp = _series(hourly_block, "temperature_2m")
    hourly_code = _series(hourly_block, "weather_code")
    hourly_pop = _series(hourly_block, "precipitation_probability")
    hourly = [
        HourlyWeather(
            time_iso=t,
            temp=_at(hourly_temp, i),
            code=_at(hourly_code, i),
            precip_prob_pct=_at(hourly_pop, i),
        )
        for i, t in enumerate(_series(hourly_block, "time"))
    ]

    daily_block = data.get("daily")
    daily_high = _series(daily_block, "temperature_2m_max")
    daily_low = _series(daily_block, "temperature_2m_min")
    daily_pop = _series(daily_block, "precipitation_probability_max")
    daily_code = _series(daily_block, "weather_code")
    daily = [
        DailyWeather(
            date=d,
            high=_at(daily_high, i),
            low=_at(daily_low, i),
            precip_prob_max_pct=_at(daily_pop, i),
            code=_at(daily_code, i),
        )
        for i, d in enumerate(_series(daily_block, "time"))
    ]

    return WeatherResponse(
        timezone=data.get("timezone") or tz,
        units=WeatherUnits(
            temp="F" if imperial else "C",
            wind="mph" if imperial else "km/h",
        ),
        current=current,
        today=daily[0] if daily else None,
        hourly=hourly[:HOURLY_LIMIT],
        daily=daily,
    )


async def fetch_forecast(
    client: httpx.AsyncClient,
    lat: float,
    lon: float,
    tz: str = "UTC",
    days: int = 7,
    unit: str = "si",
) -> WeatherResponse:
    """
    Forecast for a coordinate. `unit="us"` asks the upstream for fahrenheit
    and mph; anything else gives celsius and km/h.

    Raises:
        HTTPException: 502 when Open-Meteo is unreachable or fails.
    """
    imperial = unit.lower() == "us"
    params = {
        "latitude": lat,
        "longitude": lon,
        "timezone": tz,
        "current": CURRENT_FIELDS,
        "hourly": HOURLY_FIELDS,
        "daily": DAILY_FIELDS,
        "forecast_days": days,
        "temperature_unit": "fahrenheit" if imperial else "celsius",
        "wind_speed_unit": "mph" if imperial else "kmh",
    }

    try:
        response = await client.get(settings.FORECAST_URL, params=params)
    except httpx.HTTPError as e:
        logger.error(f"Weather provider unreachable: {e}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "NETWORK_ERROR",
            "Failed to reach weather provider.",
        )

    if response.is_error:
        logger.error(f"Weather provider returned status {response.status_code}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            f"Weather failed: {response.status_code}",
        )

    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.error("Weather provider sent an unreadable response")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            "Weather provider sent an unreadable response.",
        )

    return normalize_forecast(data, tz, imperial)
