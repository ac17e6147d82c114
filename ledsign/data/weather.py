"""api.weather.gov request building and response parsing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
import json
import logging
import re
from typing import Any

import requests

from ledsign.data.fetcher import RequestBuildError

LOGGER = logging.getLogger(__name__)

WEATHER_API_BASE = "https://api.weather.gov"
MAX_DATA_AGE = timedelta(hours=6)
EVENING_HOUR = 18
MORNING_HOUR = 6

# Conditions reported by https://api.weather.gov/icons, mapped to our icon names.
ICON_BY_CONDITION = {
    "day/skc": "sun",
    "night/skc": "moon",
    "day/few": "cloud_sun",
    "night/few": "cloud_moon",
    "day/sct": "cloud_sun",
    "night/sct": "cloud_moon",
    "bkn": "clouds",
    "ovc": "clouds",
    "day/wind_skc": "sun",
    "night/wind_skc": "moon",
    "day/wind_few": "cloud_wind_sun",
    "night/wind_few": "cloud_wind_moon",
    "day/wind_sct": "cloud_wind_sun",
    "night/wind_sct": "cloud_wind_moon",
    "wind_bkn": "cloud_wind",
    "wind_ovc": "cloud_wind",
    "snow": "snow",
    "rain_snow": "rain_snow",
    "rain_sleet": "rain_snow",
    "snow_sleet": "rain_snow",
    "fzra": "rain",
    "rain_fzra": "rain",
    "snow_fzra": "rain_snow",
    "sleet": "rain",
    "rain": "rain",
    "rain_showers": "showers",
    "rain_showers_hi": "showers",
    "tsra": "lightning",
    "tsra_sct": "lightning",
    "tsra_hi": "lightning",
    "blizzard": "snow",
    "fog": "cloud",
}

_ICON_URL_PATTERN = re.compile(r"/icons/land/([^/]+/([a-z_]+))")


class WeatherDataError(Exception):
    """Raised when a weather.gov payload is unusable."""


@dataclass(frozen=True)
class CurrentConditions:
    temperature_f: int
    icon: str | None


@dataclass(frozen=True)
class ForecastDay:
    """One column of the forecast; ``high_f`` is None when only the night is left."""

    weekday: str
    high_f: int | None
    low_f: int
    icon: str | None


def build_request(url: str, user_agent: str) -> requests.Request:
    if not user_agent:
        raise RequestBuildError("weather.gov requires a User-Agent")
    headers = {"User-Agent": user_agent, "Accept": "application/ld+json"}
    return requests.Request("GET", url, headers=headers)


def observations_url(station: str) -> str:
    return f"{WEATHER_API_BASE}/stations/{station}/observations/latest"


def forecast_url(office: str) -> str:
    return f"{WEATHER_API_BASE}/gridpoints/{office}/forecast"


def icon_for_url(url: str | None) -> str | None:
    """Map a weather.gov icon URL to one of our icon names."""
    match = _ICON_URL_PATTERN.search(url or "")
    if match is None:
        LOGGER.warning("Could not extract condition from icon URL %r", url)
        return None
    with_time_of_day, condition = match.group(1), match.group(2)
    icon = ICON_BY_CONDITION.get(with_time_of_day) or ICON_BY_CONDITION.get(condition)
    if icon is None:
        LOGGER.warning("Condition %r did not map to a known weather icon", with_time_of_day)
    return icon


def celsius_to_fahrenheit(value: float) -> int:
    return int(round(value * 9 / 5 + 32))


def _load(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise WeatherDataError("weather.gov response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise WeatherDataError("weather.gov response must be a JSON object")
    # GeoJSON responses nest everything under "properties"; JSON-LD does not.
    if isinstance(payload.get("properties"), dict):
        return payload["properties"]
    return payload


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise WeatherDataError(f"Missing timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise WeatherDataError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        raise WeatherDataError(f"Timestamp without timezone: {value!r}")
    return parsed


def _check_fresh(updated: datetime, now: datetime) -> None:
    if now - updated > MAX_DATA_AGE:
        raise WeatherDataError(f"Data last updated at {updated.isoformat()} is stale")


def parse_observations(body: bytes, now: datetime) -> CurrentConditions:
    data = _load(body)
    _check_fresh(_parse_timestamp(data.get("timestamp")), now)
    value = (data.get("temperature") or {}).get("value")
    if not isinstance(value, (int, float)):
        raise WeatherDataError("Observation has no temperature value")
    return CurrentConditions(temperature_f=celsius_to_fahrenheit(value), icon=icon_for_url(data.get("icon")))


def _period_ending(periods: list[dict[str, Any]], end: datetime) -> dict[str, Any]:
    for period in periods:
        try:
            period_end = _parse_timestamp(period.get("endTime"))
        except WeatherDataError:
            continue
        if period_end == end:
            return period
    raise WeatherDataError(f"No forecast period ends at {end.isoformat()}")


def _at(day: date, hour: int, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(hour), tzinfo=tz)


def parse_forecast(body: bytes, now: datetime) -> tuple[ForecastDay, ForecastDay]:
    """Today (or tonight, after 6 PM) and tomorrow.

    ``now`` must be timezone-aware in the forecast office's local time.
    """
    data = _load(body)
    _check_fresh(_parse_timestamp(data.get("updateTime")), now)
    periods = data.get("periods") or []
    tz = now.tzinfo
    today = now.date()
    tomorrow = today + timedelta(days=1)

    high_today = None
    if now.hour < EVENING_HOUR:
        high_today = _period_ending(periods, _at(today, EVENING_HOUR, tz)).get("temperature")
    tonight = _period_ending(periods, _at(tomorrow, MORNING_HOUR, tz))
    tomorrow_day = _period_ending(periods, _at(tomorrow, EVENING_HOUR, tz))
    tomorrow_night = _period_ending(periods, _at(tomorrow + timedelta(days=1), MORNING_HOUR, tz))

    first = ForecastDay(
        weekday=now.strftime("%a").upper(),
        high_f=high_today,
        low_f=tonight.get("temperature"),
        icon=icon_for_url(tonight.get("icon")),
    )
    second = ForecastDay(
        weekday=(now + timedelta(days=1)).strftime("%a").upper(),
        high_f=tomorrow_day.get("temperature"),
        low_f=tomorrow_night.get("temperature"),
        icon=icon_for_url(tomorrow_day.get("icon")),
    )
    return first, second


__all__ = [
    "CurrentConditions",
    "ForecastDay",
    "WeatherDataError",
    "build_request",
    "celsius_to_fahrenheit",
    "forecast_url",
    "icon_for_url",
    "observations_url",
    "parse_forecast",
    "parse_observations",
]
