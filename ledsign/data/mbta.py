"""MBTA v3 API request building and prediction parsing."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
import json
import logging
from typing import Any

import requests

from ledsign.data.fetcher import RequestBuildError

LOGGER = logging.getLogger(__name__)

MBTA_API_BASE = "https://api-v3.mbta.com"

ROUTE_TYPE_LIGHT_RAIL = 0
ROUTE_TYPE_HEAVY_RAIL = 1
ROUTE_TYPE_COMMUTER_RAIL = 2
ROUTE_TYPE_BUS = 3
ROUTE_TYPE_UNKNOWN = -1

# Not exhaustive, just some easy ones.
STATION_NAMES = {
    "place-davis": "DAVIS SQUARE",
    "place-pktrm": "PARK STREET",
    "place-knncl": "KENDALL SQUARE",
    "place-chmnl": "CHARLES/MGH",
    "place-gover": "GOVERNMENT CENTER",
    "place-harsq": "HARVARD SQUARE",
    "place-spmnl": "SCIENCE PARK",
    "place-lech": "LECHMERE",
    "place-unsqu": "UNION SQUARE",
}


class MBTADataError(Exception):
    """Raised when an MBTA API payload cannot be interpreted."""


@dataclass(frozen=True)
class MBTARoute:
    """A route heading to one destination."""

    route_id: str
    color: str
    route_type: int
    destination: str


@dataclass(frozen=True)
class MBTAPrediction:
    """Upcoming departure times for one route/destination, soonest first."""

    route: MBTARoute
    times: tuple[datetime, ...]


def station_name(station_id: str) -> str:
    name = STATION_NAMES.get(station_id)
    if name is None:
        LOGGER.warning("Could not find station name for %s", station_id)
        return "?????"
    return name


def build_predictions_request(api_key: str, station_id: str) -> requests.Request:
    """Request for every prediction at a station, with routes and trips included."""
    if not station_id:
        raise RequestBuildError("MBTA station id is empty")
    headers = {"x-api-key": api_key} if api_key else {}
    params = {
        "include": "route,trip",
        "filter[stop]": station_id,
    }
    return requests.Request("GET", f"{MBTA_API_BASE}/predictions", params=params, headers=headers)


def _parse_time(value: str) -> datetime | None:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def _related_id(resource: dict[str, Any], relation: str) -> str | None:
    data = ((resource.get("relationships") or {}).get(relation) or {}).get("data")
    if isinstance(data, dict):
        return data.get("id")
    return None


def _routes_by_trip(included: list[dict[str, Any]]) -> dict[str, MBTARoute]:
    route_defs: dict[str, dict[str, Any]] = {}
    for resource in included:
        if resource.get("type") == "route":
            route_defs[resource.get("id")] = resource.get("attributes") or {}

    routes: dict[str, MBTARoute] = {}
    for resource in included:
        if resource.get("type") != "trip":
            continue
        route_id = _related_id(resource, "route")
        attrs = route_defs.get(route_id)
        if attrs is None:
            LOGGER.warning("Could not find MBTA route data for %s", route_id)
            continue
        route_type = attrs.get("type")
        routes[resource.get("id")] = MBTARoute(
            route_id=route_id,
            color=attrs.get("color") or "FFFFFF",
            route_type=route_type if route_type in (0, 1, 2, 3) else ROUTE_TYPE_UNKNOWN,
            destination=(resource.get("attributes") or {}).get("headsign") or "",
        )
    return routes


def parse_predictions(body: bytes) -> list[MBTAPrediction]:
    """Group departure predictions by route and destination."""
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise MBTADataError("MBTA API response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise MBTADataError("MBTA API response must be a JSON object")

    routes = _routes_by_trip(payload.get("included") or [])
    times_by_route: dict[MBTARoute, list[datetime]] = defaultdict(list)
    for resource in payload.get("data") or []:
        if resource.get("type") != "prediction":
            continue
        departure = (resource.get("attributes") or {}).get("departure_time")
        # Some vehicles don't give departure estimates.
        if not departure:
            continue
        departure_time = _parse_time(departure)
        if departure_time is None:
            LOGGER.warning("Error interpreting MBTA time %r", departure)
            continue
        trip_id = _related_id(resource, "trip")
        route = routes.get(trip_id)
        if route is None:
            LOGGER.warning("Error interpreting MBTA trip ID %s in prediction", trip_id)
            continue
        times_by_route[route].append(departure_time)

    return [
        MBTAPrediction(route=route, times=tuple(sorted(times)))
        for route, times in times_by_route.items()
        if times
    ]


def upcoming_predictions(predictions: list[MBTAPrediction], now: datetime) -> list[MBTAPrediction]:
    """Drop past departures and routes left empty, soonest route first."""
    upcoming = []
    for prediction in predictions:
        times = tuple(t for t in prediction.times if t >= now)
        if times:
            upcoming.append(MBTAPrediction(route=prediction.route, times=times))
    return sorted(upcoming, key=lambda p: p.times[0])


__all__ = [
    "MBTADataError",
    "MBTAPrediction",
    "MBTARoute",
    "MBTA_API_BASE",
    "ROUTE_TYPE_BUS",
    "build_predictions_request",
    "parse_predictions",
    "station_name",
    "upcoming_predictions",
]
