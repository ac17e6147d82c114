"""Display output adapters."""

from ledsign.display.base import Display
from ledsign.display.emulator import EmulatorDisplay
from ledsign.display.hardware import MatrixDisplay, MatrixGeometry

__all__ = ["Display", "EmulatorDisplay", "MatrixDisplay", "MatrixGeometry"]
