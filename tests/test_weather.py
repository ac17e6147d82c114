from __future__ import annotations

from datetime import datetime, timedelta
import json
from zoneinfo import ZoneInfo

import pytest

from ledsign.data.fetcher import RequestBuildError
from ledsign.data.weather import (
    CurrentConditions,
    ForecastDay,
    WeatherDataError,
    build_request,
    celsius_to_fahrenheit,
    forecast_url,
    icon_for_url,
    observations_url,
    parse_forecast,
    parse_observations,
)

TZ = ZoneInfo("America/New_York")
NOW = datetime(2026, 10, 19, 9, 30, tzinfo=TZ)


def _observation(timestamp: str, celsius: float | None = 20.0) -> bytes:
    return json.dumps(
        {
            "timestamp": timestamp,
            "temperature": {"value": celsius, "unitCode": "wmoUnit:degC"},
            "icon": "https://api.weather.gov/icons/land/day/few?size=medium",
        }
    ).encode()


def _period(end: datetime, temperature: int, condition: str) -> dict:
    return {
        "endTime": end.isoformat(),
        "temperature": temperature,
        "icon": f"https://api.weather.gov/icons/land/{condition}?size=medium",
    }


def _forecast(updated: datetime, periods: list[dict]) -> bytes:
    return json.dumps({"updateTime": updated.isoformat(), "periods": periods}).encode()


def _periods() -> list[dict]:
    return [
        _period(datetime(2026, 10, 19, 18, tzinfo=TZ), 61, "day/sct"),
        _period(datetime(2026, 10, 20, 6, tzinfo=TZ), 45, "night/skc"),
        _period(datetime(2026, 10, 20, 18, tzinfo=TZ), 58, "day/rain"),
        _period(datetime(2026, 10, 21, 6, tzinfo=TZ), 42, "night/few"),
    ]


def test_urls() -> None:
    assert observations_url("KBOS") == "https://api.weather.gov/stations/KBOS/observations/latest"
    assert forecast_url("BOX/71,90") == "https://api.weather.gov/gridpoints/BOX/71,90/forecast"


def test_build_request_sets_headers() -> None:
    request = build_request("https://api.weather.gov/x", "ledsign (me@example.com)")

    assert request.headers["User-Agent"] == "ledsign (me@example.com)"
    assert request.headers["Accept"] == "application/ld+json"


def test_build_request_requires_user_agent() -> None:
    with pytest.raises(RequestBuildError):
        build_request("https://api.weather.gov/x", "")


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://api.weather.gov/icons/land/day/skc?size=medium", "sun"),
        ("https://api.weather.gov/icons/land/night/skc?size=medium", "moon"),
        ("https://api.weather.gov/icons/land/day/ovc?size=medium", "clouds"),
        ("https://api.weather.gov/icons/land/night/tsra_hi,40?size=medium", "lightning"),
        ("https://api.weather.gov/icons/land/day/tornado?size=medium", None),
        (None, None),
    ],
)
def test_icon_for_url(url, expected) -> None:
    assert icon_for_url(url) == expected


def test_celsius_to_fahrenheit() -> None:
    assert celsius_to_fahrenheit(0) == 32
    assert celsius_to_fahrenheit(-40) == -40
    assert celsius_to_fahrenheit(21.5) == 71


def test_parse_observations() -> None:
    body = _observation((NOW - timedelta(minutes=20)).isoformat())

    assert parse_observations(body, NOW) == CurrentConditions(temperature_f=68, icon="cloud_sun")


def test_parse_observations_geojson_properties() -> None:
    inner = json.loads(_observation((NOW - timedelta(minutes=20)).isoformat()))
    body = json.dumps({"type": "Feature", "properties": inner}).encode()

    assert parse_observations(body, NOW).temperature_f == 68


def test_parse_observations_rejects_stale_data() -> None:
    body = _observation((NOW - timedelta(hours=7)).isoformat())

    with pytest.raises(WeatherDataError):
        parse_observations(body, NOW)


def test_parse_observations_requires_temperature() -> None:
    body = _observation((NOW - timedelta(minutes=5)).isoformat(), celsius=None)

    with pytest.raises(WeatherDataError):
        parse_observations(body, NOW)


def test_parse_observations_invalid_json() -> None:
    with pytest.raises(WeatherDataError):
        parse_observations(b"not json", NOW)


def test_parse_forecast_morning() -> None:
    body = _forecast(NOW - timedelta(hours=1), _periods())

    today, tomorrow = parse_forecast(body, NOW)

    assert today == ForecastDay(weekday="MON", high_f=61, low_f=45, icon="moon")
    assert tomorrow == ForecastDay(weekday="TUE", high_f=58, low_f=42, icon="rain")


def test_parse_forecast_evening_has_no_high() -> None:
    evening = datetime(2026, 10, 19, 19, 0, tzinfo=TZ)
    body = _forecast(evening - timedelta(hours=1), _periods()[1:])

    today, tomorrow = parse_forecast(body, evening)

    assert today.high_f is None
    assert today.low_f == 45
    assert tomorrow.high_f == 58


def test_parse_forecast_missing_period() -> None:
    body = _forecast(NOW - timedelta(hours=1), _periods()[:2])

    with pytest.raises(WeatherDataError):
        parse_forecast(body, NOW)


def test_parse_forecast_rejects_stale_update() -> None:
    body = _forecast(NOW - timedelta(hours=8), _periods())

    with pytest.raises(WeatherDataError):
        parse_forecast(body, NOW)
