"""Slide rotation, quiet hours, and manual control of what the display shows.

Locking:

- ``_control_lock`` serializes start/advance/freeze/unfreeze/stop and the
  advance tick.
- ``_state_lock`` guards what the redraw paths read: the current slide, its
  activation generation, and the frames last submitted and shown. The frame
  to show is picked and numbered under it.
- ``_send_lock`` is held only around the display call. A frame whose number
  is older than the last one sent is skipped, so a slow display delays
  output without blocking anything that waits on ``_state_lock``.

Tickers are never joined while holding a lock their callbacks take.
"""

from __future__ import annotations

from datetime import datetime
import logging
import threading
import time
from typing import Callable, Sequence

from PIL import Image

from ledsign.config import SlideshowConfig
from ledsign.data.network import ConnectivityProbe, wait_for_connection
from ledsign.display.base import Display
from ledsign.rendering.surface import blank_frame
from ledsign.scheduling.night_mode import in_night_mode
from ledsign.slides.base import Slide, slide_name
from ledsign.slides.welcome import IdleSlide, WelcomeSlide
from ledsign.timing import Ticker

LOGGER = logging.getLogger(__name__)

STOPPED = "stopped"
STARTING = "starting"
RUNNING = "running"


class _SlideOutput:
    """Display handed to a slide for one activation.

    Frames submitted after the activation ended are dropped.
    """

    def __init__(self, show: Slideshow, generation: int) -> None:
        self._show = show
        self._generation = generation

    @property
    def size(self) -> tuple[int, int]:
        return self._show.display.size

    def initialize(self) -> None:
        pass

    def redraw(self, surface: Image.Image) -> None:
        self._show._submit(self._generation, surface)


class Slideshow:
    """Rotates through slides, showing exactly one at a time."""

    def __init__(
        self,
        display: Display,
        slides: Sequence[Slide],
        config: SlideshowConfig,
        welcome_slide: Slide | None = None,
        fallback_slide: Slide | None = None,
        is_connected: Callable[[], bool] | None = None,
        probe_interval_seconds: float = 1.0,
        sync_time: Callable[[], object] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.display = display
        self._slides = tuple(slides)
        self._config = config
        self._welcome_slide = welcome_slide or WelcomeSlide()
        self._fallback_slide = fallback_slide or IdleSlide()
        self._is_connected = is_connected or ConnectivityProbe().is_connected
        self._probe_interval_seconds = probe_interval_seconds
        self._sync_time = sync_time
        self._clock = clock
        self._sleep = sleep

        self._control_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._state = STOPPED
        self._frozen = False
        self._run_id = 0
        self._current_index = -1
        self._current_slide: Slide | None = None
        self._generation = 0
        self._last_frame: Image.Image | None = None
        self._shown_frame: Image.Image | None = None
        self._blanked = False
        self._ticket = 0
        self._sent_ticket = 0
        self._start_pending = False
        self._advance_ticker: Ticker | None = None
        self._redraw_ticker: Ticker | None = None

    @property
    def slides(self) -> tuple[Slide, ...]:
        return self._slides

    @property
    def state(self) -> str:
        with self._state_lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state != STOPPED

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def current_index(self) -> int:
        with self._state_lock:
            return self._current_index

    @property
    def current_slide(self) -> Slide | None:
        with self._state_lock:
            return self._current_slide

    @property
    def showing_fallback(self) -> bool:
        return self.current_slide is self._fallback_slide

    def latest_frame(self) -> Image.Image | None:
        """The frame most recently sent to the display."""
        with self._state_lock:
            return self._shown_frame

    def in_night_mode(self) -> bool:
        night_mode = self._config.night_mode
        return night_mode.enabled and in_night_mode(self._clock(), night_mode.start_hour, night_mode.end_hour)

    def start(self) -> bool:
        """Show the welcome slide, wait until ready, then start rotating.

        Blocks until connectivity is present and every slide is initialized.
        """
        return self.begin_start() and self.complete_start()

    def begin_start(self) -> bool:
        """Move to ``starting`` and show the welcome slide, without blocking.

        Only one caller wins; the rest get False.
        """
        with self._control_lock:
            if self.state != STOPPED:
                LOGGER.warning("Cannot start, slideshow already running")
                return False
            with self._state_lock:
                self._state = STARTING
                self._current_index = -1
            self._run_id += 1
            run_id = self._run_id
            self._redraw_ticker = Ticker(
                self._config.redraw_interval_seconds,
                lambda: self._redraw_tick(run_id),
                name="slideshow-redraw",
            )
            self._redraw_ticker.start()
            self._activate(-1, self._welcome_slide)
            self._start_pending = True
            return True

    def complete_start(self) -> bool:
        """Wait for readiness after ``begin_start()``, then start rotating."""
        with self._control_lock:
            if self.state != STARTING or not self._start_pending:
                LOGGER.warning("Cannot complete start, slideshow is %s", self.state)
                return False
            self._start_pending = False
            run_id = self._run_id

        self._wait_for_readiness()
        LOGGER.info("All slides reported readiness")

        with self._control_lock:
            self._advance_locked()
            self._advance_ticker = Ticker(
                self._config.advance_interval_seconds,
                lambda: self._advance_tick(run_id),
                name="slideshow-advance",
            )
            self._advance_ticker.start()
            with self._state_lock:
                self._state = RUNNING
        return True

    def advance(self) -> bool:
        """Move to the next enabled slide."""
        with self._control_lock:
            if self.state != RUNNING:
                LOGGER.warning("Cannot advance, slideshow is %s", self.state)
                return False
            self._advance_locked()
            return True

    def freeze(self) -> bool:
        """Stop automatic advancing; the current slide keeps redrawing."""
        with self._control_lock:
            if self._frozen:
                LOGGER.warning("Cannot freeze, slideshow already frozen")
                return False
            self._frozen = True
            LOGGER.info("Slideshow frozen")
            return True

    def unfreeze(self) -> bool:
        """Resume automatic advancing, moving to the next slide right away."""
        with self._control_lock:
            if not self._frozen:
                LOGGER.warning("Cannot unfreeze, slideshow already unfrozen")
                return False
            self._frozen = False
            LOGGER.info("Slideshow unfrozen")
            if self.state == RUNNING:
                self._advance_locked()
            return True

    def stop(self) -> bool:
        """Stop drawing, terminate every slide, and blank the display."""
        with self._control_lock:
            state = self.state
            if state != RUNNING:
                if state == STARTING:
                    LOGGER.warning("Cannot stop, slideshow is still starting")
                else:
                    LOGGER.warning("Cannot stop, slideshow already stopped")
                return False

            outgoing = self.current_slide
            with self._state_lock:
                self._state = STOPPED
            if outgoing is not None:
                self._stop_draw(outgoing)
            with self._state_lock:
                self._generation += 1
                self._current_index = -1
                self._current_slide = None
                self._last_frame = None

            tickers = (self._advance_ticker, self._redraw_ticker)
            self._advance_ticker = None
            self._redraw_ticker = None

            for slide in self._slides:
                try:
                    slide.terminate()
                except Exception:
                    LOGGER.exception("Slide %s failed to terminate", slide_name(slide))

            with self._state_lock:
                self._blanked = False
                frame = blank_frame(self.display.size)
                ticket = self._queue_locked(frame)

        self._send(frame, ticket)
        for ticker in tickers:
            if ticker is not None:
                ticker.stop()
        LOGGER.info("Slideshow stopped")
        return True

    def _wait_for_readiness(self) -> None:
        wait_for_connection(self._is_connected, self._probe_interval_seconds, sleep=self._sleep)
        if self._sync_time is not None:
            self._sync_time()
        # Each initialize() may block on its first fetch.
        for slide in self._slides:
            try:
                slide.initialize()
            except Exception:
                LOGGER.exception("Slide %s failed to initialize", slide_name(slide))

    def _advance_tick(self, run_id: int) -> None:
        with self._control_lock:
            if run_id != self._run_id or self.state != RUNNING or self._frozen:
                return
            self._advance_locked()

    def _advance_locked(self) -> None:
        outgoing = self.current_slide
        if outgoing is not None:
            self._stop_draw(outgoing)
        index, incoming = self._next_enabled()
        self._activate(index, incoming)

    def _next_enabled(self) -> tuple[int, Slide]:
        count = len(self._slides)
        start = self.current_index
        for step in range(1, count + 1):
            index = (start + step) % count
            slide = self._slides[index]
            if self._is_enabled(slide):
                return index, slide
        LOGGER.warning("No enabled slides, showing fallback slide")
        return start, self._fallback_slide

    def _is_enabled(self, slide: Slide) -> bool:
        try:
            return bool(slide.is_enabled())
        except Exception:
            LOGGER.exception("Slide %s failed its enabled check", slide_name(slide))
            return False

    def _activate(self, index: int, slide: Slide) -> None:
        with self._state_lock:
            self._generation += 1
            self._current_index = index
            self._current_slide = slide
            self._last_frame = None
            output = _SlideOutput(self, self._generation)
        LOGGER.debug("Showing slide %s (index %d)", slide_name(slide), index)
        try:
            slide.start_draw(output)
        except Exception:
            LOGGER.exception("Slide %s failed to start drawing", slide_name(slide))

    def _stop_draw(self, slide: Slide) -> None:
        try:
            slide.stop_draw()
        except Exception:
            LOGGER.exception("Slide %s failed to stop drawing", slide_name(slide))

    def _submit(self, generation: int, surface: Image.Image) -> None:
        with self._state_lock:
            if generation != self._generation:
                LOGGER.debug("Dropped frame from an inactive slide")
                return
            self._last_frame = surface
            if self.in_night_mode():
                if self._blanked:
                    return
                self._blanked = True
                frame = blank_frame(self.display.size)
            else:
                self._blanked = False
                frame = surface
            ticket = self._queue_locked(frame)
        self._send(frame, ticket)

    def _redraw_tick(self, run_id: int) -> None:
        frame = None
        with self._state_lock:
            if run_id != self._run_id or self._state == STOPPED:
                return
            night = self.in_night_mode()
            if night and not self._blanked:
                LOGGER.info("Entering night mode")
                self._blanked = True
                frame = blank_frame(self.display.size)
            elif not night and self._blanked:
                LOGGER.info("Leaving night mode")
                self._blanked = False
                frame = self._last_frame
            if frame is None:
                return
            ticket = self._queue_locked(frame)
        self._send(frame, ticket)

    def _queue_locked(self, frame: Image.Image) -> int:
        self._ticket += 1
        self._shown_frame = frame
        return self._ticket

    def _send(self, frame: Image.Image, ticket: int) -> None:
        with self._send_lock:
            # A newer frame already went out.
            if ticket <= self._sent_ticket:
                return
            self._sent_ticket = ticket
            # Display problems never affect rotation.
            try:
                self.display.redraw(frame)
            except Exception:
                LOGGER.exception("Display redraw failed")


__all__ = ["RUNNING", "STARTING", "STOPPED", "Slideshow"]
