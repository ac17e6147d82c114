from __future__ import annotations

import io
import threading
import time
from unittest.mock import MagicMock

from PIL import Image
import pytest
import requests

from ledsign.config import NightModeConfig, SlideshowConfig
from ledsign.scheduling.controller import Controller
from ledsign.scheduling.slideshow import RUNNING, STARTING, Slideshow


def _slideshow(**attrs) -> MagicMock:
    show = MagicMock(spec=Slideshow)
    show.running = attrs.pop("running", True)
    show.latest_frame.return_value = None
    for name, value in attrs.items():
        getattr(show, name).return_value = value
    return show


@pytest.fixture()
def controller_factory():
    created = []

    def make(show) -> Controller:
        controller = Controller(show, host="127.0.0.1", port=0)
        created.append(controller)
        return controller

    yield make
    for controller in created:
        controller.close()


def _url(controller: Controller, path: str) -> str:
    host, port = controller.server_address
    return f"http://{host}:{port}{path}"


def test_start_runs_in_background(controller_factory) -> None:
    completed = threading.Event()
    show = _slideshow(running=False, begin_start=True)
    show.complete_start.side_effect = lambda: completed.set()
    controller = controller_factory(show)

    assert controller.handle_command("/start") == (200, "Starting slideshow")
    assert completed.wait(timeout=2)
    show.begin_start.assert_called_once()


def test_start_when_running(controller_factory) -> None:
    show = _slideshow(running=True, begin_start=False)
    controller = controller_factory(show)

    assert controller.handle_command("/start") == (412, "Cannot start, slideshow already running")
    show.complete_start.assert_not_called()


def test_concurrent_starts_get_one_success(controller_factory) -> None:
    connected = threading.Event()
    display = MagicMock()
    display.size = (128, 32)
    config = SlideshowConfig(
        advance_interval_seconds=3600,
        redraw_interval_seconds=3600,
        night_mode=NightModeConfig(enabled=False, start_hour=0, end_hour=0),
    )
    show = Slideshow(display, [], config, is_connected=connected.is_set, sleep=lambda s: time.sleep(0.01))
    controller = controller_factory(show)
    barrier = threading.Barrier(6)
    statuses = []

    def request() -> None:
        barrier.wait()
        statuses.append(controller.handle_command("/start")[0])

    threads = [threading.Thread(target=request) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=2)

    try:
        assert sorted(statuses) == [200, 412, 412, 412, 412, 412]
        assert show.state == STARTING
    finally:
        connected.set()
        deadline = time.time() + 2
        while time.time() < deadline and show.state != RUNNING:
            time.sleep(0.01)
        show.stop()


def test_stop(controller_factory) -> None:
    controller = controller_factory(_slideshow(stop=True))

    assert controller.handle_command("/stop") == (200, "Stopping slideshow")


def test_stop_when_stopped(controller_factory) -> None:
    controller = controller_factory(_slideshow(running=False, stop=False))

    assert controller.handle_command("/stop") == (412, "Cannot stop, slideshow already stopped")


def test_stop_while_starting(controller_factory) -> None:
    controller = controller_factory(_slideshow(running=True, stop=False))

    assert controller.handle_command("/stop") == (412, "Cannot stop, slideshow still starting")


@pytest.mark.parametrize(
    "path, method, result, expected",
    [
        ("/freeze", "freeze", True, (200, "Freezing slideshow")),
        ("/freeze", "freeze", False, (412, "Cannot freeze, slideshow already frozen")),
        ("/unfreeze", "unfreeze", True, (200, "Unfreezing slideshow")),
        ("/unfreeze", "unfreeze", False, (412, "Cannot unfreeze, slideshow already unfrozen")),
    ],
)
def test_freeze_commands(controller_factory, path, method, result, expected) -> None:
    controller = controller_factory(_slideshow(**{method: result}))

    assert controller.handle_command(path) == expected


def test_unknown_command(controller_factory) -> None:
    controller = controller_factory(_slideshow())

    assert controller.handle_command("/reboot") == (400, "Unknown request type")


def test_http_round_trip(controller_factory) -> None:
    show = _slideshow(freeze=True)
    controller = controller_factory(show)
    controller.serve_in_background()

    response = requests.post(_url(controller, "/freeze"), timeout=5)

    assert response.status_code == 200
    assert response.text == "Freezing slideshow\n"
    show.freeze.assert_called_once()


def test_http_method_and_path_errors(controller_factory) -> None:
    controller = controller_factory(_slideshow())
    controller.serve_in_background()

    assert requests.get(_url(controller, "/freeze"), timeout=5).status_code == 405
    assert requests.put(_url(controller, "/stop"), timeout=5).status_code == 405
    assert requests.delete(_url(controller, "/start"), timeout=5).status_code == 405
    assert requests.post(_url(controller, "/nope"), timeout=5).status_code == 400
    assert requests.get(_url(controller, "/nope"), timeout=5).status_code == 404


def test_http_health_and_frame(controller_factory) -> None:
    show = _slideshow()
    controller = controller_factory(show)
    controller.serve_in_background()

    health = requests.get(_url(controller, "/healthz"), timeout=5)
    assert health.status_code == 200
    assert health.text == "ok\n"

    assert requests.get(_url(controller, "/frame.png"), timeout=5).status_code == 404

    show.latest_frame.return_value = Image.new("RGB", (128, 32), (255, 0, 0))
    response = requests.get(_url(controller, "/frame.png"), timeout=5)
    assert response.status_code == 200
    assert response.headers["Content-Type"] == "image/png"
    frame = Image.open(io.BytesIO(response.content))
    assert frame.size == (128, 32)


def test_shutdown_ends_run_until_shutdown(controller_factory) -> None:
    controller = controller_factory(_slideshow())
    controller.serve_in_background()
    url = _url(controller, "/shutdown")
    result = {}

    runner = threading.Thread(target=lambda: result.update(done=controller.run_until_shutdown(timeout=5)))
    runner.start()
    response = requests.post(url, timeout=5)
    runner.join(timeout=5)

    assert response.status_code == 200
    assert result["done"] is True


def test_run_until_shutdown_times_out(controller_factory) -> None:
    controller = controller_factory(_slideshow())

    assert controller.run_until_shutdown(timeout=0.05) is False
