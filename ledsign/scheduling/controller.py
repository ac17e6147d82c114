"""HTTP control endpoint for a running slideshow."""

from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import io
import logging
import threading
from typing import Any

from ledsign.scheduling.slideshow import Slideshow

LOGGER = logging.getLogger(__name__)

CONTROL_PATHS = ("/start", "/stop", "/freeze", "/unfreeze", "/shutdown")


class Controller:
    """Serves start/stop/freeze/unfreeze/shutdown over HTTP POST."""

    def __init__(self, slideshow: Slideshow, host: str = "0.0.0.0", port: int = 5000) -> None:
        self.slideshow = slideshow
        self._shutdown_event = threading.Event()
        self._server = ThreadingHTTPServer((host, port), _make_handler(self))
        self._server.daemon_threads = True
        self._thread: threading.Thread | None = None

    @property
    def server_address(self) -> tuple[str, int]:
        host, port = self._server.server_address[:2]
        return host, port

    def serve_in_background(self) -> None:
        self._thread = threading.Thread(target=self._server.serve_forever, name="controller", daemon=True)
        self._thread.start()
        LOGGER.info("Started HTTP controller endpoint on %s:%d", *self.server_address)

    def run_until_shutdown(self, timeout: float | None = None) -> bool:
        """Serve requests until POST /shutdown; returns False on timeout."""
        if self._thread is None:
            self.serve_in_background()
        shut_down = self._shutdown_event.wait(timeout=timeout)
        self.close()
        return shut_down

    def close(self) -> None:
        if self._thread is not None:
            self._server.shutdown()
            self._thread = None
        self._server.server_close()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def handle_command(self, path: str) -> tuple[int, str]:
        """Apply one control command, returning (status, message)."""
        show = self.slideshow
        if path == "/start":
            if not show.begin_start():
                return 412, "Cannot start, slideshow already running"
            # The rest of start-up blocks until every slide is ready.
            threading.Thread(target=show.complete_start, name="slideshow-start", daemon=True).start()
            return 200, "Starting slideshow"
        if path == "/stop":
            if show.stop():
                return 200, "Stopping slideshow"
            if show.running:
                return 412, "Cannot stop, slideshow still starting"
            return 412, "Cannot stop, slideshow already stopped"
        if path == "/freeze":
            if show.freeze():
                return 200, "Freezing slideshow"
            return 412, "Cannot freeze, slideshow already frozen"
        if path == "/unfreeze":
            if show.unfreeze():
                return 200, "Unfreezing slideshow"
            return 412, "Cannot unfreeze, slideshow already unfrozen"
        if path == "/shutdown":
            self.request_shutdown()
            return 200, "Shutting down slideshow controller"
        LOGGER.debug("Unknown request type %s", path)
        return 400, "Unknown request type"


def _make_handler(controller: Controller) -> type[BaseHTTPRequestHandler]:
    class ControlHandler(BaseHTTPRequestHandler):
        def do_POST(self) -> None:  # noqa: N802
            LOGGER.debug("Controller received request %s", self.path)
            status, message = controller.handle_command(self.path)
            self._send_text(status, message)

        def do_GET(self) -> None:  # noqa: N802
            if self.path == "/healthz":
                self._send_text(200, "ok")
                return

            if self.path == "/frame.png":
                frame = controller.slideshow.latest_frame()
                if frame is None:
                    self.send_response(404)
                    self.end_headers()
                    return
                buffer = io.BytesIO()
                frame.save(buffer, format="PNG")
                self.send_response(200)
                self.send_header("Content-Type", "image/png")
                self.end_headers()
                self.wfile.write(buffer.getvalue())
                return

            self._reject_method()

        def do_PUT(self) -> None:  # noqa: N802
            self._reject_method()

        def do_DELETE(self) -> None:  # noqa: N802
            self._reject_method()

        def _reject_method(self) -> None:
            if self.path in CONTROL_PATHS:
                LOGGER.debug("Request with bad method %s %s", self.command, self.path)
                self.send_response(405)
                self.end_headers()
                return
            self.send_response(404)
            self.end_headers()

        def _send_text(self, status: int, message: str) -> None:
            body = (message + "\n").encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: Any) -> None:
            return

    return ControlHandler


__all__ = ["Controller"]
