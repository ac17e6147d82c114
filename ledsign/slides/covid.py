"""Daily case and vaccination counts per region."""

from __future__ import annotations

from datetime import date, timedelta
from functools import partial
import logging
import threading
from typing import Callable, Mapping, Sequence

from PIL import Image
import requests

from ledsign.config import DEFAULT_COVID_REGIONS, CovidRegion
from ledsign.data.covid import (
    OWID_VACCINATIONS_URL,
    CovidDataError,
    daily_diffs,
    daily_report_url,
    format_number,
    parse_daily_report,
    parse_vaccinations,
)
from ledsign.data.fetcher import DebugSink, FetchConfig, Fetcher
from ledsign.display.base import Display
from ledsign.rendering.surface import (
    ALIGN_CENTER,
    ALIGN_LEFT,
    ALIGN_RIGHT,
    GRAY,
    GREEN,
    RED,
    WHITE,
    YELLOW,
    Color,
    draw_column_graph,
    draw_error,
    draw_stale_marker,
    write_text,
)
from ledsign.slides.base import draw_once

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 29
# Below this share of successful day fetches the slide shows a placeholder.
MIN_SUCCESS_RATIO = 0.5
TOTAL_RIGHT_X = 62
DIFF_RIGHT_X = 96
GRAPH_HEIGHT = 7


def draw_data_row(
    surface: Image.Image,
    y: int,
    label: str,
    totals: Mapping[date, int],
    today: date,
    history_days: int,
    highlight: Color = YELLOW,
) -> None:
    """Label, yesterday's total, yesterday's increase, and a graph of increases."""
    yesterday = today - timedelta(days=1)
    write_text(surface, label, WHITE, ALIGN_LEFT, 1, y)

    total = totals.get(yesterday, 0)
    if total > 0:
        write_text(surface, format_number(total), highlight, ALIGN_RIGHT, TOTAL_RIGHT_X, y)
    else:
        write_text(surface, "?", GRAY, ALIGN_RIGHT, TOTAL_RIGHT_X, y)

    diffs = daily_diffs(totals, today, history_days)
    if diffs and diffs[-1] > 0:
        write_text(surface, "+" + format_number(diffs[-1]), highlight, ALIGN_RIGHT, DIFF_RIGHT_X, y)
    else:
        write_text(surface, "+?", GRAY, ALIGN_RIGHT, DIFF_RIGHT_X, y)

    draw_column_graph(surface, highlight, surface.width - history_days, y + 6, GRAPH_HEIGHT, diffs)


class CovidSlide:
    """Confirmed cases from the CSSE daily reports, one fetcher per day of history."""

    def __init__(
        self,
        regions: Sequence[CovidRegion] = DEFAULT_COVID_REGIONS,
        history_days: int = DEFAULT_HISTORY_DAYS,
        refresh_interval_seconds: float = 4 * 60 * 60,
        timeout_seconds: float = 10,
        debug_sink: DebugSink | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._regions = tuple(regions)
        self._history_days = history_days
        self._today = today
        self._lock = threading.Lock()
        self._totals: dict[str, dict[date, int]] = {region.label: {} for region in self._regions}
        self._requested: dict[int, date] = {}
        self.fetchers = [
            Fetcher(
                FetchConfig(
                    slide_id=f"CovidSlide-{days_ago}",
                    refresh_interval_seconds=refresh_interval_seconds,
                    parse=partial(self.parse_report, days_ago),
                    build_request=partial(self.build_report_request, days_ago),
                    timeout_seconds=timeout_seconds,
                ),
                debug_sink=debug_sink,
            )
            for days_ago in range(1, history_days + 1)
        ]

    def initialize(self) -> None:
        for fetcher in self.fetchers:
            fetcher.start()

    def terminate(self) -> None:
        for fetcher in self.fetchers:
            fetcher.stop()

    def start_draw(self, display: Display) -> None:
        draw_once(display, self.draw)

    def stop_draw(self) -> None:
        pass

    def is_enabled(self) -> bool:
        return True

    def build_report_request(self, days_ago: int) -> requests.Request:
        day = self._today() - timedelta(days=days_ago)
        with self._lock:
            self._requested[days_ago] = day
        return requests.Request("GET", daily_report_url(day))

    def parse_report(self, days_ago: int, body: bytes) -> bool:
        with self._lock:
            day = self._requested.get(days_ago)
        if day is None:
            LOGGER.warning("Got a daily report that was never requested (%d days ago)", days_ago)
            return False
        try:
            totals = parse_daily_report(body, self._regions)
        except CovidDataError as exc:
            LOGGER.warning("Error parsing daily report for %s: %s", day, exc)
            return False

        cutoff = self._today() - timedelta(days=self._history_days + 1)
        with self._lock:
            for label, series in self._totals.items():
                if label in totals:
                    series[day] = totals[label]
                for old in [d for d in series if d < cutoff]:
                    del series[old]
        return True

    def totals(self, label: str) -> dict[date, int]:
        with self._lock:
            return dict(self._totals.get(label, {}))

    def success_ratio(self) -> float:
        """Share of day fetchers whose latest fetch succeeded."""
        if not self.fetchers:
            return 0.0
        succeeded = sum(1 for fetcher in self.fetchers if fetcher.last_fetch_success)
        return succeeded / len(self.fetchers)

    def draw(self, surface: Image.Image) -> None:
        if self.success_ratio() < MIN_SUCCESS_RATIO:
            draw_error(surface, "Covid Cases", "Missing data.")
            return

        today = self._today()
        write_text(surface, "COVID-19 CASES", RED, ALIGN_CENTER, surface.width // 2 - 1, 0)
        for i, region in enumerate(self._regions):
            draw_data_row(surface, (i + 1) * 8, region.label, self.totals(region.label), today, self._history_days)


class VaccinationSlide:
    """People vaccinated per region from the OWID US state file."""

    def __init__(
        self,
        regions: Sequence[CovidRegion] = DEFAULT_COVID_REGIONS,
        history_days: int = DEFAULT_HISTORY_DAYS,
        refresh_interval_seconds: float = 6 * 60 * 60,
        timeout_seconds: float = 10,
        debug_sink: DebugSink | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._regions = tuple(regions)
        self._history_days = history_days
        self._today = today
        self._lock = threading.Lock()
        self._totals: dict[str, dict[date, int]] = {}
        self._loaded = False
        self.fetcher = Fetcher(
            FetchConfig(
                slide_id="VaccinationSlide",
                refresh_interval_seconds=refresh_interval_seconds,
                parse=self.parse,
                url=OWID_VACCINATIONS_URL,
                timeout_seconds=timeout_seconds,
            ),
            debug_sink=debug_sink,
        )

    def initialize(self) -> None:
        self.fetcher.start()

    def terminate(self) -> None:
        self.fetcher.stop()

    def start_draw(self, display: Display) -> None:
        draw_once(display, self.draw)

    def stop_draw(self) -> None:
        pass

    def is_enabled(self) -> bool:
        return True

    def parse(self, body: bytes) -> bool:
        since = self._today() - timedelta(days=self._history_days)
        try:
            totals = parse_vaccinations(body, self._regions, since)
        except CovidDataError as exc:
            LOGGER.warning("Error parsing vaccination data: %s", exc)
            return False
        with self._lock:
            self._totals = totals
            self._loaded = True
        return True

    def draw(self, surface: Image.Image) -> None:
        with self._lock:
            loaded, totals = self._loaded, self._totals
        if not loaded:
            draw_error(surface, "Covid Vaccination", "Missing data.")
            return

        today = self._today()
        write_text(surface, "COVID-19 VACCINATIONS", GREEN, ALIGN_CENTER, surface.width // 2 - 1, 0)
        for i, region in enumerate(self._regions):
            draw_data_row(surface, (i + 1) * 8, region.label, totals.get(region.label, {}), today, self._history_days)
        if self.fetcher.last_fetch_success is False:
            draw_stale_marker(surface)


__all__ = ["CovidSlide", "VaccinationSlide", "draw_data_row"]
