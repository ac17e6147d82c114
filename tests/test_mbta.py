from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json

import pytest

from ledsign.data.fetcher import RequestBuildError
from ledsign.data.mbta import (
    MBTA_API_BASE,
    MBTADataError,
    MBTAPrediction,
    MBTARoute,
    ROUTE_TYPE_BUS,
    build_predictions_request,
    parse_predictions,
    station_name,
    upcoming_predictions,
)

NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)


def _prediction(trip_id: str, departure: str | None) -> dict:
    return {
        "type": "prediction",
        "attributes": {"departure_time": departure},
        "relationships": {"trip": {"data": {"id": trip_id}}},
    }


def _trip(trip_id: str, route_id: str, headsign: str) -> dict:
    return {
        "type": "trip",
        "id": trip_id,
        "attributes": {"headsign": headsign},
        "relationships": {"route": {"data": {"id": route_id}}},
    }


def _route(route_id: str, color: str, route_type: int) -> dict:
    return {"type": "route", "id": route_id, "attributes": {"color": color, "type": route_type}}


def _body(data: list[dict], included: list[dict]) -> bytes:
    return json.dumps({"data": data, "included": included}).encode()


def test_build_predictions_request() -> None:
    request = build_predictions_request("test-key", "place-davis")

    assert request.method == "GET"
    assert request.url == f"{MBTA_API_BASE}/predictions"
    assert request.params == {"include": "route,trip", "filter[stop]": "place-davis"}
    assert request.headers == {"x-api-key": "test-key"}


def test_build_predictions_request_without_key() -> None:
    request = build_predictions_request("", "place-davis")

    assert request.headers == {}


def test_build_predictions_request_requires_station() -> None:
    with pytest.raises(RequestBuildError):
        build_predictions_request("test-key", "")


def test_station_name_lookup() -> None:
    assert station_name("place-davis") == "DAVIS SQUARE"
    assert station_name("place-nowhere") == "?????"


def test_parse_predictions_groups_by_route_and_destination() -> None:
    body = _body(
        data=[
            _prediction("t2", "2026-10-19T10:12:00-04:00"),
            _prediction("t1", "2026-10-19T10:05:00-04:00"),
            _prediction("t3", "2026-10-19T10:08:00-04:00"),
        ],
        included=[
            _route("Red", "DA291C", 1),
            _route("87", "FFC72C", 3),
            _trip("t1", "Red", "Alewife"),
            _trip("t2", "Red", "Alewife"),
            _trip("t3", "87", "Arlington Center"),
        ],
    )

    predictions = parse_predictions(body)

    by_route = {p.route.route_id: p for p in predictions}
    red = by_route["Red"]
    assert red.route == MBTARoute(route_id="Red", color="DA291C", route_type=1, destination="Alewife")
    assert [t.minute for t in red.times] == [5, 12]
    assert by_route["87"].route.route_type == ROUTE_TYPE_BUS


def test_parse_predictions_skips_missing_and_bad_entries() -> None:
    body = _body(
        data=[
            _prediction("t1", None),
            _prediction("t1", "not a time"),
            _prediction("unknown-trip", "2026-10-19T10:05:00-04:00"),
            {"type": "vehicle"},
        ],
        included=[_route("Red", "DA291C", 1), _trip("t1", "Red", "Alewife")],
    )

    assert parse_predictions(body) == []


def test_parse_predictions_accepts_utc_suffix() -> None:
    body = _body(
        data=[_prediction("t1", "2026-10-19T14:05:00Z")],
        included=[_route("Red", "DA291C", 1), _trip("t1", "Red", "Alewife")],
    )

    (prediction,) = parse_predictions(body)

    assert prediction.times == (NOW + timedelta(minutes=5),)


def test_parse_predictions_invalid_json() -> None:
    with pytest.raises(MBTADataError):
        parse_predictions(b"<html>")


def test_parse_predictions_non_object() -> None:
    with pytest.raises(MBTADataError):
        parse_predictions(b"[]")


def test_upcoming_predictions_filters_past_and_sorts() -> None:
    red = MBTARoute("Red", "DA291C", 1, "Alewife")
    orange = MBTARoute("Orange", "ED8B00", 1, "Oak Grove")
    green = MBTARoute("Green-E", "00843D", 0, "Medford/Tufts")
    predictions = [
        MBTAPrediction(red, (NOW - timedelta(minutes=1), NOW + timedelta(minutes=9))),
        MBTAPrediction(orange, (NOW + timedelta(minutes=3),)),
        MBTAPrediction(green, (NOW - timedelta(minutes=2),)),
    ]

    upcoming = upcoming_predictions(predictions, NOW)

    assert [p.route.route_id for p in upcoming] == ["Orange", "Red"]
    assert upcoming[1].times == (NOW + timedelta(minutes=9),)
