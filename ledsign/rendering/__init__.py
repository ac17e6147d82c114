"""Rendering utilities for the LED matrix display."""

from ledsign.rendering.emulator import render_led_preview, save_frame
from ledsign.rendering.surface import blank_frame, draw_error, new_surface, write_text

__all__ = ["blank_frame", "draw_error", "new_surface", "render_led_preview", "save_frame", "write_text"]
