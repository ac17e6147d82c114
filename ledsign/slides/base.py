"""Slide interface and the redraw cadences slides use while visible.

Slides are not subclasses of a common base. Any object with these six
methods can be put in the rotation:

- ``initialize()``: called once before the slide is ever drawn. May block,
  for example on the first fetch of its data.
- ``terminate()``: called once at shutdown. Stops anything the slide owns,
  including its fetchers.
- ``start_draw(display)``: the slide became current. Establish a redraw
  cadence with :func:`draw_every` or draw a single frame with
  :func:`draw_once`.
- ``stop_draw()``: the slide is no longer current. Cancel whatever
  ``start_draw`` set up; must be safe when it only drew once.
- ``is_enabled()``: whether the slide takes part in the current rotation
  pass. Reads stored state only.
- ``draw(surface)``: paint the current state. Must render a placeholder
  when no data has loaded yet.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from PIL import Image

from ledsign.display.base import Display
from ledsign.rendering.surface import new_surface
from ledsign.timing import Ticker

DrawFn = Callable[[Image.Image], None]


@runtime_checkable
class Slide(Protocol):
    def initialize(self) -> None:
        ...

    def terminate(self) -> None:
        ...

    def start_draw(self, display: Display) -> None:
        ...

    def stop_draw(self) -> None:
        ...

    def is_enabled(self) -> bool:
        ...

    def draw(self, surface: Image.Image) -> None:
        ...


def slide_name(slide: object) -> str:
    return type(slide).__name__


def render(display: Display, draw: DrawFn) -> Image.Image:
    """Draw into a fresh surface sized for ``display``."""
    surface = new_surface(*display.size)
    draw(surface)
    return surface


def draw_once(display: Display, draw: DrawFn) -> None:
    display.redraw(render(display, draw))


def draw_every(interval_seconds: float, display: Display, draw: DrawFn, name: str = "redraw") -> Ticker:
    """Draw now, then every ``interval_seconds`` until the ticker is stopped."""
    draw_once(display, draw)
    ticker = Ticker(interval_seconds, lambda: draw_once(display, draw), name=name)
    ticker.start()
    return ticker


def draw_every_second(display: Display, draw: DrawFn, name: str = "redraw") -> Ticker:
    return draw_every(1.0, display, draw, name=name)


__all__ = ["DrawFn", "Slide", "draw_every", "draw_every_second", "draw_once", "render", "slide_name"]
