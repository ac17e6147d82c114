"""Frame output helpers for the LED matrix emulator."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw

RENDER_SCALE = 8
DOT_PADDING = 0.75
MIN_BRIGHTNESS = 40
GRID_COLOR = (0, 255, 255)


def _floor_color(color: tuple[int, int, int]) -> tuple[int, int, int]:
    # Unlit LEDs still read as dim gray dots.
    return tuple(max(channel, MIN_BRIGHTNESS) for channel in color)  # type: ignore[return-value]


def render_led_preview(
    image: Image.Image,
    scale: int = RENDER_SCALE,
    gridlines: bool = True,
) -> Image.Image:
    """Draw each pixel of ``image`` as a round LED on an enlarged canvas."""
    source = image.convert("RGB")
    width, height = source.size
    preview = Image.new("RGB", (width * scale, height * scale), (0, 0, 0))
    draw = ImageDraw.Draw(preview)
    pixels = source.load()
    radius = scale * DOT_PADDING / 2

    for j in range(height):
        for i in range(width):
            cx = (i + 0.5) * scale
            cy = (j + 0.5) * scale
            draw.ellipse(
                (cx - radius, cy - radius, cx + radius, cy + radius),
                fill=_floor_color(pixels[i, j]),
            )

    if gridlines:
        canvas_width, canvas_height = preview.size
        draw.line((0, canvas_height // 2, canvas_width, canvas_height // 2), fill=GRID_COLOR, width=2)
        draw.line((canvas_width // 2, 0, canvas_width // 2, canvas_height), fill=GRID_COLOR, width=2)
        for j in range(8, height, 8):
            draw.line((0, j * scale, canvas_width, j * scale), fill=GRID_COLOR)
        for i in range(8, width, 8):
            draw.line((i * scale, 0, i * scale, canvas_height), fill=GRID_COLOR)

    return preview


def save_frame(image: Image.Image, path: str | Path = "emulator_output/frame.png") -> None:
    """Save a frame to disk as a PNG image."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path, format="PNG")


__all__ = ["render_led_preview", "save_frame"]
