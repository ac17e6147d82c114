"""Seasonal slides that only join the rotation around their holiday."""

from __future__ import annotations

from datetime import datetime, timedelta
import math
import random
from typing import Callable

from PIL import Image

from ledsign.display.base import Display
from ledsign.rendering.surface import (
    ALIGN_CENTER,
    AQUA,
    GREEN,
    RED,
    WHITE,
    YELLOW,
    draw_box,
    draw_empty_box,
    draw_horizontal_line,
    write_text,
)
from ledsign.slides.base import draw_every, draw_every_second
from ledsign.timing import Ticker

CHRISTMAS_WINDOW_DAYS = 30

# (left, right) extent of each row of the tree, top to bottom.
TREE_ROWS = (
    (10, 10), (9, 11), (9, 11), (8, 12), (8, 12), (8, 12), (7, 13), (7, 13),
    (6, 14), (6, 14), (6, 14), (5, 15), (5, 15), (4, 16), (4, 16), (4, 16),
    (3, 17), (3, 17), (2, 18), (2, 18), (2, 18), (1, 19), (1, 19), (0, 20),
    (0, 20),
)
TREE_OFFSET = (18, 2)
DARK_GREEN = (0, 128, 0)
BROWN = (255, 128, 0)
LIGHT_COLORS = (AQUA, AQUA, RED, RED, GREEN, GREEN, (0, 0, 255), (0, 0, 255), (255, 220, 0), (255, 220, 0))


def days_until(now: datetime, target: datetime) -> int:
    """Whole days until ``target``, rounded up."""
    return math.ceil((target - now).total_seconds() / 86400)


class ChristmasSlide:
    def __init__(self, clock: Callable[[], datetime] = datetime.now, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._christmas: datetime | None = None
        self._redraw_ticker: Ticker | None = None

    def initialize(self) -> None:
        self._christmas = datetime(self._clock().year, 12, 25)

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        self._redraw_ticker = draw_every_second(display, self.draw, name="redraw-christmas")

    def stop_draw(self) -> None:
        if self._redraw_ticker is not None:
            self._redraw_ticker.stop()
            self._redraw_ticker = None

    def is_enabled(self) -> bool:
        if self._christmas is None:
            return False
        days = days_until(self._clock(), self._christmas)
        return 0 <= days <= CHRISTMAS_WINDOW_DAYS

    def _random_point_in_tree(self) -> tuple[int, int]:
        while True:
            x = self._rng.randrange(21)
            y = self._rng.randrange(1, 24)
            left, right = TREE_ROWS[y]
            if left < x < right:
                return x, y

    def draw(self, surface: Image.Image) -> None:
        ox, oy = TREE_OFFSET
        surface.putpixel((ox + 10, oy - 1), YELLOW)
        for j, (left, right) in enumerate(TREE_ROWS):
            draw_horizontal_line(surface, DARK_GREEN, ox + left, ox + right, oy + j)
        draw_box(surface, BROWN, ox + 9, oy + 25, 3, 5)
        for color in LIGHT_COLORS:
            x, y = self._random_point_in_tree()
            surface.putpixel((ox + x, oy + y), color)

        days = 0
        if self._christmas is not None:
            days = max(0, days_until(self._clock(), self._christmas))
        center = 82
        draw_empty_box(surface, RED, center - 9, 1, 19, 13)
        write_text(surface, str(days), RED, ALIGN_CENTER, center, 3)
        write_text(surface, "DAYS UNTIL", GREEN, ALIGN_CENTER, center, 15)
        write_text(surface, "CHRISTMAS", GREEN, ALIGN_CENTER, center, 23)


NEW_YEAR_FPS = 4.0


def format_countdown(remaining: timedelta) -> str:
    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d} : {minutes:02d} : {seconds:02d}"


class NewYearSlide:
    """Hours/minutes/seconds until midnight on January 1st."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._midnight: datetime | None = None
        self._redraw_ticker: Ticker | None = None

    def initialize(self) -> None:
        now = self._clock()
        # In January the new year just passed; keep counting to it and show zeros.
        year = now.year if now.month == 1 else now.year + 1
        self._midnight = datetime(year, 1, 1)

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        self._redraw_ticker = draw_every(1.0 / NEW_YEAR_FPS, display, self.draw, name="redraw-new-year")

    def stop_draw(self) -> None:
        if self._redraw_ticker is not None:
            self._redraw_ticker.stop()
            self._redraw_ticker = None

    def is_enabled(self) -> bool:
        if self._midnight is None:
            return False
        return self._midnight - self._clock() > timedelta(hours=-1)

    def draw(self, surface: Image.Image) -> None:
        if self._midnight is None:
            return
        center = surface.width // 2
        remaining = self._midnight - self._clock()
        write_text(surface, format_countdown(remaining), AQUA, ALIGN_CENTER, center, 3)
        write_text(surface, "UNTIL", WHITE, ALIGN_CENTER, center, 13)
        write_text(surface, str(self._midnight.year), GREEN, ALIGN_CENTER, center - 1, 22)


__all__ = ["ChristmasSlide", "NewYearSlide", "days_until", "format_countdown"]
