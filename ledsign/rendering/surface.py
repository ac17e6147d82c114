"""Pixel surface helpers shared by every slide."""

from __future__ import annotations

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

SCREEN_WIDTH = 128
SCREEN_HEIGHT = 32
LINE_HEIGHT = 8
FONT_SIZE = 8

ALIGN_LEFT = "left"
ALIGN_CENTER = "center"
ALIGN_RIGHT = "right"

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
YELLOW = (255, 255, 0)
AQUA = (0, 255, 255)
RED = (255, 0, 0)
GREEN = (0, 255, 0)
GRAY = (128, 128, 128)

Color = tuple[int, int, int]


@lru_cache(maxsize=1)
def get_font() -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=FONT_SIZE)


def new_surface(width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT) -> Image.Image:
    """Return an all-black RGB surface."""
    return Image.new("RGB", (width, height), BLACK)


def blank_frame(size: tuple[int, int]) -> Image.Image:
    return new_surface(*size)


def text_width(text: str) -> int:
    if not text:
        return 0
    left, _, right, _ = get_font().getbbox(text)
    return int(right - left)


def _origin_x(width: int, align: str, x: int) -> int:
    if align == ALIGN_LEFT:
        return x
    if align == ALIGN_RIGHT:
        return x - width + 1
    if align == ALIGN_CENTER:
        return x - width // 2
    raise ValueError(f"Unknown alignment: {align}")


def write_text(
    surface: Image.Image,
    text: str,
    color: Color,
    align: str,
    x: int,
    y: int,
    max_width: int | None = None,
) -> None:
    """Write ``text`` anchored at ``x`` with the given alignment.

    With ``max_width`` the text is cut to the characters that fit.
    """
    if max_width is not None:
        while text and text_width(text) > max_width:
            text = text[:-1]
    if not text:
        return
    origin_x = _origin_x(text_width(text), align, x)
    ImageDraw.Draw(surface).text((origin_x, y), text, font=get_font(), fill=color)


def draw_box(surface: Image.Image, color: Color, x: int, y: int, width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        return
    ImageDraw.Draw(surface).rectangle((x, y, x + width - 1, y + height - 1), fill=color)


def draw_empty_box(surface: Image.Image, color: Color, x: int, y: int, width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        return
    ImageDraw.Draw(surface).rectangle((x, y, x + width - 1, y + height - 1), outline=color)


def draw_horizontal_line(surface: Image.Image, color: Color, x0: int, x1: int, y: int) -> None:
    ImageDraw.Draw(surface).line((x0, y, x1, y), fill=color)


def draw_error(surface: Image.Image, title: str, message: str) -> None:
    """Placeholder for a slide that has nothing valid to show."""
    center = surface.width // 2
    write_text(surface, title.upper(), YELLOW, ALIGN_CENTER, center, 8)
    write_text(surface, message.upper(), WHITE, ALIGN_CENTER, center, 18)


def draw_stale_marker(surface: Image.Image) -> None:
    """Small red mark in the top-right corner over data from an earlier fetch."""
    draw_box(surface, RED, surface.width - 2, 0, 2, 2)


def draw_column_graph(
    surface: Image.Image,
    color: Color,
    x: int,
    bottom: int,
    height: int,
    values: list[int],
) -> None:
    """One-pixel columns scaled to the largest value, drawn upwards from ``bottom``."""
    peak = max(values, default=0)
    if peak <= 0:
        return
    for offset, value in enumerate(values):
        column = round(max(value, 0) / peak * height)
        if column > 0:
            draw_box(surface, color, x + offset, bottom - column + 1, 1, column)


def color_from_hex(value: str) -> Color:
    """Parse ``RRGGBB`` (optionally ``#``-prefixed) into an RGB tuple."""
    value = value.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected a 6-digit hex color, got {value!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def reduce_color(color: Color, factor: float = 0.5) -> Color:
    return tuple(int(channel * factor) for channel in color)  # type: ignore[return-value]


def is_blank(surface: Image.Image) -> bool:
    return surface.convert("RGB").getbbox() is None


__all__ = [
    "ALIGN_CENTER",
    "ALIGN_LEFT",
    "ALIGN_RIGHT",
    "AQUA",
    "BLACK",
    "GRAY",
    "GREEN",
    "LINE_HEIGHT",
    "RED",
    "SCREEN_HEIGHT",
    "SCREEN_WIDTH",
    "WHITE",
    "YELLOW",
    "blank_frame",
    "color_from_hex",
    "draw_box",
    "draw_column_graph",
    "draw_empty_box",
    "draw_error",
    "draw_horizontal_line",
    "draw_stale_marker",
    "is_blank",
    "new_surface",
    "reduce_color",
    "text_width",
    "write_text",
]
