"""Interface every display sink implements."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from PIL import Image


@runtime_checkable
class Display(Protocol):
    """Receives finished frames.

    ``redraw`` must not block indefinitely; a slow sink only delays what is
    visible.
    """

    @property
    def size(self) -> tuple[int, int]:
        ...

    def initialize(self) -> None:
        ...

    def redraw(self, surface: Image.Image) -> None:
        ...


__all__ = ["Display"]
