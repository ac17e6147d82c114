"""Upcoming departures at one MBTA station."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
import threading
from typing import Callable

from PIL import Image

from ledsign.data.fetcher import DebugSink, FetchConfig, Fetcher
from ledsign.data.mbta import (
    MBTADataError,
    MBTAPrediction,
    ROUTE_TYPE_BUS,
    build_predictions_request,
    parse_predictions,
    station_name,
    upcoming_predictions,
)
from ledsign.display.base import Display
from ledsign.rendering.surface import (
    ALIGN_CENTER,
    ALIGN_LEFT,
    ALIGN_RIGHT,
    AQUA,
    WHITE,
    YELLOW,
    color_from_hex,
    draw_box,
    draw_error,
    draw_stale_marker,
    reduce_color,
    text_width,
    write_text,
)
from ledsign.slides.base import draw_every_second
from ledsign.timing import Ticker

LOGGER = logging.getLogger(__name__)

MAX_ROUTES = 3
MAX_TIMES = 3
DEST_LEFT_X = 12


def format_estimates(times: tuple[datetime, ...], now: datetime) -> str:
    """Minutes until the first few departures, e.g. ``"2, 9, 15 min"``."""
    minutes = [str(math.floor((t - now).total_seconds() / 60)) for t in times[:MAX_TIMES]]
    return ", ".join(minutes) + " min"


class MbtaSlide:
    def __init__(
        self,
        api_key: str,
        station_id: str,
        refresh_interval_seconds: float = 60,
        timeout_seconds: float = 10,
        debug_sink: DebugSink | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._api_key = api_key
        self._station_id = station_id
        self._station_name = station_name(station_id)
        self._clock = clock
        self._lock = threading.Lock()
        self._predictions: list[MBTAPrediction] = []
        self._loaded = False
        self._redraw_ticker: Ticker | None = None
        self.fetcher = Fetcher(
            FetchConfig(
                slide_id=f"MbtaSlide-{station_id}",
                refresh_interval_seconds=refresh_interval_seconds,
                parse=self.parse,
                build_request=lambda: build_predictions_request(self._api_key, self._station_id),
                timeout_seconds=timeout_seconds,
            ),
            debug_sink=debug_sink,
        )

    def initialize(self) -> None:
        self.fetcher.start()

    def terminate(self) -> None:
        self.fetcher.stop()

    def start_draw(self, display: Display) -> None:
        self._redraw_ticker = draw_every_second(display, self.draw, name="redraw-mbta")

    def stop_draw(self) -> None:
        if self._redraw_ticker is not None:
            self._redraw_ticker.stop()
            self._redraw_ticker = None

    def is_enabled(self) -> bool:
        return True

    def parse(self, body: bytes) -> bool:
        try:
            predictions = parse_predictions(body)
        except MBTADataError as exc:
            LOGGER.warning("Error parsing MBTA data: %s", exc)
            return False
        with self._lock:
            self._predictions = predictions
            self._loaded = True
        return True

    def predictions(self) -> list[MBTAPrediction]:
        with self._lock:
            return list(self._predictions)

    def draw(self, surface: Image.Image) -> None:
        with self._lock:
            loaded, cached = self._loaded, list(self._predictions)
        if not loaded:
            draw_error(surface, "MBTA Trains", "No data.")
            return

        now = self._clock()
        predictions = upcoming_predictions(cached, now)
        if not predictions:
            draw_error(surface, "MBTA Trains", "No predictions.")
        else:
            self._draw_predictions(surface, predictions, now)
        if self.fetcher.last_fetch_success is False:
            draw_stale_marker(surface)

    def _draw_predictions(self, surface: Image.Image, predictions: list[MBTAPrediction], now: datetime) -> None:
        write_text(surface, self._station_name, YELLOW, ALIGN_CENTER, surface.width // 2, 0)

        # TODO: rotate through destinations when a station has more than three.
        for i, prediction in enumerate(predictions[:MAX_ROUTES]):
            y = (i + 1) * 8
            route = prediction.route
            if route.route_type == ROUTE_TYPE_BUS:
                write_text(surface, route.route_id, YELLOW, ALIGN_CENTER, 5, y)
            else:
                try:
                    line_color = reduce_color(color_from_hex(route.color))
                except ValueError:
                    line_color = reduce_color(WHITE)
                draw_box(surface, line_color, 0, y, 11, 7)

            estimates = format_estimates(prediction.times, now)
            dest_width = surface.width - DEST_LEFT_X - text_width(estimates) - 2
            destination = route.destination.upper()
            # Long names fall back to their first word.
            if text_width(destination) > dest_width:
                destination = destination.split(" ")[0]
            write_text(surface, destination, WHITE, ALIGN_LEFT, DEST_LEFT_X, y, max_width=dest_width)
            write_text(surface, estimates, AQUA, ALIGN_RIGHT, surface.width - 1, y)


__all__ = ["MbtaSlide", "format_estimates"]
