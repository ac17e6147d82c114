"""Current temperature plus a two-day forecast from api.weather.gov."""

from __future__ import annotations

from datetime import datetime
import logging
import threading
from typing import Callable
from zoneinfo import ZoneInfo

from PIL import Image

from ledsign.config import DEFAULT_USER_AGENT
from ledsign.data import weather
from ledsign.data.fetcher import DebugSink, FetchConfig, Fetcher
from ledsign.display.base import Display
from ledsign.rendering.surface import ALIGN_CENTER, AQUA, WHITE, YELLOW, draw_error, draw_stale_marker, write_text
from ledsign.slides.base import draw_every_second
from ledsign.timing import Ticker

LOGGER = logging.getLogger(__name__)

COLUMN_CENTERS = (21, 63, 105)
COLUMN_WIDTH = 40


def _icon_label(icon: str | None) -> str:
    if icon is None:
        return "?"
    return icon.split("_")[0].upper()


class WeatherSlide:
    def __init__(
        self,
        station: str,
        office: str,
        observations_interval_seconds: float = 300,
        forecast_interval_seconds: float = 1800,
        user_agent: str = DEFAULT_USER_AGENT,
        timezone: str = "America/New_York",
        timeout_seconds: float = 10,
        debug_sink: DebugSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._lock = threading.Lock()
        self._current: weather.CurrentConditions | None = None
        self._forecast: tuple[weather.ForecastDay, weather.ForecastDay] | None = None
        self._redraw_ticker: Ticker | None = None

        observations_url = weather.observations_url(station)
        forecast_url = weather.forecast_url(office)
        self.observations_fetcher = Fetcher(
            FetchConfig(
                slide_id="WeatherSlide-Observations",
                refresh_interval_seconds=observations_interval_seconds,
                parse=self.parse_observations,
                build_request=lambda: weather.build_request(observations_url, user_agent),
                timeout_seconds=timeout_seconds,
            ),
            debug_sink=debug_sink,
        )
        self.forecast_fetcher = Fetcher(
            FetchConfig(
                slide_id="WeatherSlide-Forecast",
                refresh_interval_seconds=forecast_interval_seconds,
                parse=self.parse_forecast,
                build_request=lambda: weather.build_request(forecast_url, user_agent),
                timeout_seconds=timeout_seconds,
            ),
            debug_sink=debug_sink,
        )

    def initialize(self) -> None:
        self.observations_fetcher.start()
        self.forecast_fetcher.start()

    def terminate(self) -> None:
        self.observations_fetcher.stop()
        self.forecast_fetcher.stop()

    def start_draw(self, display: Display) -> None:
        self._redraw_ticker = draw_every_second(display, self.draw, name="redraw-weather")

    def stop_draw(self) -> None:
        if self._redraw_ticker is not None:
            self._redraw_ticker.stop()
            self._redraw_ticker = None

    def is_enabled(self) -> bool:
        return True

    def parse_observations(self, body: bytes) -> bool:
        try:
            current = weather.parse_observations(body, self._clock())
        except weather.WeatherDataError as exc:
            LOGGER.warning("Could not interpret observations: %s", exc)
            return False
        with self._lock:
            self._current = current
        return True

    def parse_forecast(self, body: bytes) -> bool:
        try:
            forecast = weather.parse_forecast(body, self._clock())
        except weather.WeatherDataError as exc:
            LOGGER.warning("Could not interpret forecast: %s", exc)
            return False
        with self._lock:
            self._forecast = forecast
        return True

    def draw(self, surface: Image.Image) -> None:
        with self._lock:
            current, forecast = self._current, self._forecast
        if current is None or forecast is None:
            draw_error(surface, "Weather", "No data.")
            return

        self._draw_column(surface, COLUMN_CENTERS[0], "NOW", f"{current.temperature_f}°", YELLOW, current.icon)
        for center, day in zip(COLUMN_CENTERS[1:], forecast):
            if day.high_f is None:
                temps = f"{day.low_f}°"
            else:
                temps = f"{day.high_f}°/{day.low_f}°"
            self._draw_column(surface, center, day.weekday, temps, AQUA, day.icon)
        if self.observations_fetcher.last_fetch_success is False or self.forecast_fetcher.last_fetch_success is False:
            draw_stale_marker(surface)

    def _draw_column(
        self,
        surface: Image.Image,
        center: int,
        label: str,
        temperature: str,
        label_color: tuple[int, int, int],
        icon: str | None,
    ) -> None:
        write_text(surface, temperature, WHITE, ALIGN_CENTER, center, 0, max_width=COLUMN_WIDTH)
        write_text(surface, _icon_label(icon), WHITE, ALIGN_CENTER, center, 12, max_width=COLUMN_WIDTH)
        write_text(surface, label, label_color, ALIGN_CENTER, center, 24)


__all__ = ["WeatherSlide"]
