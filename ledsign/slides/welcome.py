"""Static slides shown outside the configured rotation."""

from __future__ import annotations

from PIL import Image

from ledsign.display.base import Display
from ledsign.rendering.surface import ALIGN_CENTER, AQUA, WHITE, YELLOW, write_text
from ledsign.slides.base import draw_once


class WelcomeSlide:
    """Shown while the slideshow waits for connectivity and data."""

    def __init__(self, title: str = "HELLO!", subtitle: str = "LED SIGN") -> None:
        self._title = title
        self._subtitle = subtitle

    # Never in the rotation, so never initialized or terminated.
    def initialize(self) -> None:
        pass

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        draw_once(display, self.draw)

    def stop_draw(self) -> None:
        pass

    def is_enabled(self) -> bool:
        return True

    def draw(self, surface: Image.Image) -> None:
        midpoint = surface.width // 2
        write_text(surface, self._title, YELLOW, ALIGN_CENTER, midpoint, 4)
        write_text(surface, self._subtitle, AQUA, ALIGN_CENTER, midpoint, 17)


class IdleSlide:
    """Fallback shown when no slide in the rotation is enabled."""

    def initialize(self) -> None:
        pass

    def terminate(self) -> None:
        pass

    def start_draw(self, display: Display) -> None:
        draw_once(display, self.draw)

    def stop_draw(self) -> None:
        pass

    def is_enabled(self) -> bool:
        return True

    def draw(self, surface: Image.Image) -> None:
        write_text(surface, "STANDING BY", WHITE, ALIGN_CENTER, surface.width // 2, 12)


__all__ = ["IdleSlide", "WelcomeSlide"]
