"""Display that writes enlarged LED renderings to PNG files."""

from __future__ import annotations

import logging
from pathlib import Path
import threading

from PIL import Image

from ledsign.rendering.emulator import RENDER_SCALE, render_led_preview, save_frame
from ledsign.rendering.surface import SCREEN_HEIGHT, SCREEN_WIDTH

LOGGER = logging.getLogger(__name__)


class EmulatorDisplay:
    """Write each frame to ``<output_dir>/<name>.png``."""

    def __init__(
        self,
        output_dir: str | Path = "emulator_output",
        width: int = SCREEN_WIDTH,
        height: int = SCREEN_HEIGHT,
        scale: int = RENDER_SCALE,
        gridlines: bool = False,
    ) -> None:
        self._output_dir = Path(output_dir)
        self._size = (width, height)
        self._scale = scale
        self._gridlines = gridlines
        self._name = "frame"
        self._lock = threading.Lock()

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def set_name(self, name: str) -> None:
        """Pick the file name used by the next frames."""
        self._name = name

    def path_for(self, name: str) -> Path:
        return self._output_dir / f"{name}.png"

    def initialize(self) -> None:
        self._output_dir.mkdir(parents=True, exist_ok=True)

    def redraw(self, surface: Image.Image) -> None:
        preview = render_led_preview(surface, scale=self._scale, gridlines=self._gridlines)
        with self._lock:
            path = self.path_for(self._name)
            save_frame(preview, path)
        LOGGER.debug("Saved rendering to %s", path)


__all__ = ["EmulatorDisplay"]
