"""Clock slide: weekday, date, and time of day."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from PIL import Image

from ledsign.display.base import Display
from ledsign.rendering.surface import ALIGN_CENTER, WHITE, YELLOW, write_text
from ledsign.slides.base import draw_every_second
from ledsign.timing import Ticker


def format_clock(now: datetime) -> tuple[str, str, str]:
    """Return (weekday, date, time) strings, e.g. ("MONDAY", "OCTOBER 19", "3:04 PM")."""
    weekday = now.strftime("%A").upper()
    day = f"{now.strftime('%B').upper()} {now.day}"
    hour = now.hour % 12 or 12
    clock = f"{hour}:{now.minute:02d} {'AM' if now.hour < 12 else 'PM'}"
    return weekday, day, clock


class TimeSlide:
    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._redraw_ticker: Ticker | None = None

    def initialize(self) -> None:
        pass

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        self._redraw_ticker = draw_every_second(display, self.draw, name="redraw-time")

    def stop_draw(self) -> None:
        if self._redraw_ticker is not None:
            self._redraw_ticker.stop()
            self._redraw_ticker = None

    def is_enabled(self) -> bool:
        return True

    def draw(self, surface: Image.Image) -> None:
        weekday, day, clock = format_clock(self._clock())
        left_center = surface.width // 4
        right_center = surface.width * 3 // 4
        write_text(surface, weekday, WHITE, ALIGN_CENTER, left_center, 6)
        write_text(surface, day, WHITE, ALIGN_CENTER, left_center, 17)
        write_text(surface, clock, YELLOW, ALIGN_CENTER, right_center, 12)


__all__ = ["TimeSlide", "format_clock"]
