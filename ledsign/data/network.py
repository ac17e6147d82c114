"""Connectivity checks and clock sync run before the slideshow starts."""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable, Sequence

import requests

from ledsign.config import DEFAULT_NTP_COMMAND, DEFAULT_PROBE_URL

LOGGER = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_SECONDS = 5
DEFAULT_COMMAND_TIMEOUT_SECONDS = 30


class ConnectivityProbe:
    """Cheap reachability check against a known endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_PROBE_URL,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def is_connected(self) -> bool:
        try:
            self._session.get(self._url, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            LOGGER.debug("Connection check failed: %s", exc)
            return False
        return True


def wait_for_connection(
    is_connected: Callable[[], bool],
    interval_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Block until ``is_connected`` succeeds; returns the number of checks."""
    checks = 1
    while not is_connected():
        sleep(interval_seconds)
        checks += 1
    LOGGER.info("Internet connection present after %d checks", checks)
    return checks


def sync_time(command: Sequence[str] = DEFAULT_NTP_COMMAND) -> bool:
    """Resync the wall clock, in case the Pi lost power for a while."""
    if not command:
        return False
    try:
        subprocess.run(
            list(command),
            check=True,
            capture_output=True,
            timeout=DEFAULT_COMMAND_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        LOGGER.warning("Failed NTP time synchronization: %s", exc)
        return False
    return True


__all__ = ["ConnectivityProbe", "sync_time", "wait_for_connection"]
