"""Hardware output driver for HUB75 panels via Piomatter."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading

from PIL import Image

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatrixGeometry:
    """Logical geometry used for panel chain setup."""

    width: int
    height: int
    panel_width: int = 64
    panel_height: int = 32
    n_addr_lines: int | None = None


_ADDR_LINES_BY_PANEL_HEIGHT = {16: 3, 32: 4, 64: 5}


class MatrixDisplay:
    """Push RGB frames to a chained HUB75 panel setup."""

    def __init__(self, geometry: MatrixGeometry, brightness: int = 80) -> None:
        if geometry.width % geometry.panel_width != 0:
            raise ValueError(
                f"Display width ({geometry.width}) must be a multiple of panel width "
                f"({geometry.panel_width})."
            )
        if geometry.height % geometry.panel_height != 0:
            raise ValueError(
                f"Display height ({geometry.height}) must be a multiple of panel height "
                f"({geometry.panel_height})."
            )
        self._geometry = geometry
        self._brightness = brightness
        self._lock = threading.Lock()
        self._np = None
        self._matrix = None
        self._framebuffer = None

    @property
    def size(self) -> tuple[int, int]:
        return (self._geometry.width, self._geometry.height)

    @property
    def panel_count(self) -> int:
        return self._geometry.width // self._geometry.panel_width

    def initialize(self) -> None:
        """Open the panel chain. Only works on a Raspberry Pi."""
        try:
            import numpy as np
            import adafruit_blinka_raspberry_pi5_piomatter as piomatter
        except ImportError as exc:
            raise RuntimeError(
                "Hardware display requires 'numpy' and "
                "'adafruit_blinka_raspberry_pi5_piomatter' on Raspberry Pi."
            ) from exc

        geometry = self._geometry
        n_addr_lines = geometry.n_addr_lines
        if n_addr_lines is None:
            n_addr_lines = _ADDR_LINES_BY_PANEL_HEIGHT.get(geometry.panel_height)
            if n_addr_lines is None:
                raise ValueError(
                    "Unsupported panel_height for automatic address-line detection. "
                    "Use 16, 32, or 64, or set n_addr_lines explicitly."
                )

        piomatter_geometry = piomatter.Geometry(
            width=geometry.width,
            height=geometry.height,
            n_addr_lines=n_addr_lines,
            rotation=piomatter.Orientation.Normal,
        )
        self._np = np
        self._framebuffer = np.zeros((geometry.height, geometry.width, 3), dtype=np.uint8)
        matrix_kwargs = {
            "colorspace": piomatter.Colorspace.RGB888Packed,
            "pinout": piomatter.Pinout.AdafruitMatrixBonnet,
            "framebuffer": self._framebuffer,
            "geometry": piomatter_geometry,
        }
        try:
            # Newer builds support queue_depth; older builds do not.
            self._matrix = piomatter.PioMatter(**matrix_kwargs, queue_depth=2)
        except TypeError:
            self._matrix = piomatter.PioMatter(**matrix_kwargs)

        if hasattr(self._matrix, "brightness"):
            self._matrix.brightness = max(0.0, min(1.0, self._brightness / 100.0))
        LOGGER.info("Hardware display ready with %d panels", self.panel_count)

    def redraw(self, surface: Image.Image) -> None:
        """Copy a frame into the framebuffer and flush."""
        if self._matrix is None:
            raise RuntimeError("MatrixDisplay.redraw called before initialize()")
        if surface.size != self.size:
            raise ValueError(f"Frame size mismatch. Expected {self.size}, got {surface.size}.")

        rgb = surface.convert("RGB")
        with self._lock:
            self._framebuffer[:] = self._np.asarray(rgb, dtype=self._np.uint8)
            self._matrix.show()


__all__ = ["MatrixDisplay", "MatrixGeometry"]
