"""Days-until list for configured events."""

from __future__ import annotations

from datetime import date
from typing import Callable, Sequence

from PIL import Image

from ledsign.config import CountdownEvent
from ledsign.display.base import Display
from ledsign.rendering.surface import ALIGN_LEFT, ALIGN_RIGHT, WHITE, write_text
from ledsign.slides.base import draw_once

MAX_ROWS = 4

# Row positions that spread 1-4 lines evenly over a 32px panel.
ROW_Y_BY_COUNT = {
    1: (13,),
    2: (6, 19),
    3: (3, 13, 23),
    4: (0, 8, 16, 24),
}


def upcoming_events(events: Sequence[CountdownEvent], today: date) -> list[CountdownEvent]:
    """Events on or after ``today``, soonest first, at most ``MAX_ROWS``."""
    remaining = [event for event in events if event.date >= today]
    return sorted(remaining, key=lambda event: event.date)[:MAX_ROWS]


class CountdownSlide:
    def __init__(self, events: Sequence[CountdownEvent], today: Callable[[], date] = date.today) -> None:
        self._events = list(events)
        self._today = today

    def initialize(self) -> None:
        pass

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        draw_once(display, self.draw)

    def stop_draw(self) -> None:
        pass

    def is_enabled(self) -> bool:
        return bool(upcoming_events(self._events, self._today()))

    def draw(self, surface: Image.Image) -> None:
        today = self._today()
        events = upcoming_events(self._events, today)
        if not events:
            return
        for y, event in zip(ROW_Y_BY_COUNT[len(events)], events):
            days = (event.date - today).days
            write_text(surface, str(days), WHITE, ALIGN_RIGHT, 20, y)
            write_text(surface, event.label.upper(), event.color, ALIGN_LEFT, 26, y)


__all__ = ["CountdownSlide", "upcoming_events"]
