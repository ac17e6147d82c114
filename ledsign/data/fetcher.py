"""Threaded fetcher that periodically refreshes one remote resource for a slide."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading
import time
from typing import Callable, Protocol

import requests

from ledsign.timing import Ticker

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


class RequestBuildError(Exception):
    """Raised by a request builder when it cannot produce a request."""


class DebugSink(Protocol):
    def write(self, slide_id: str, body: bytes) -> None:
        ...


class DirectoryDebugSink:
    """Write every fetched body to ``<directory>/<unix time>-<slide id>.txt``."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def write(self, slide_id: str, body: bytes) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        out_file = self._directory / f"{int(time.time())}-{slide_id}.txt"
        out_file.write_bytes(body)
        LOGGER.debug("Logged HTTP response data to %s", out_file)


@dataclass(frozen=True)
class FetchConfig:
    """What to fetch, how often, and how to interpret it."""

    slide_id: str
    refresh_interval_seconds: float
    parse: Callable[[bytes], bool]
    url: str | None = None
    build_request: Callable[[], requests.Request] | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class FetchResult:
    """Snapshot of the latest fetch attempt."""

    success: bool
    body: bytes | None
    fetched_at: float
    error: str | None


class Fetcher:
    """Background fetcher that refreshes a resource on a fixed schedule."""

    def __init__(
        self,
        config: FetchConfig,
        session: requests.Session | None = None,
        debug_sink: DebugSink | None = None,
    ) -> None:
        if config.url is None and config.build_request is None:
            raise ValueError(f"Fetcher for {config.slide_id} needs a url or a build_request callback")
        self._config = config
        self._session = session or requests.Session()
        self._debug_sink = debug_sink
        self._latest: FetchResult | None = None
        self._result_lock = threading.Lock()
        self._fetch_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._ticker: Ticker | None = None

    @property
    def slide_id(self) -> str:
        return self._config.slide_id

    @property
    def started(self) -> bool:
        return self._ticker is not None

    def get_latest(self) -> FetchResult | None:
        """Return the most recent fetch result, if any."""
        with self._result_lock:
            return self._latest

    @property
    def last_fetch_success(self) -> bool | None:
        """``None`` until the first fetch completes, then whether it succeeded."""
        latest = self.get_latest()
        return None if latest is None else latest.success

    def start(self) -> bool:
        """Start periodic refresh and fetch once before returning."""
        with self._lifecycle_lock:
            if self._ticker is not None:
                LOGGER.warning("Attempting to start fetch loop for %s when already started", self.slide_id)
                return False
            self._ticker = Ticker(
                self._config.refresh_interval_seconds,
                self.fetch,
                name=f"fetch-{self.slide_id}",
            )
            self._ticker.start()
        self.fetch()
        return True

    def stop(self) -> bool:
        """Stop periodic refresh; the last result is kept."""
        with self._lifecycle_lock:
            ticker, self._ticker = self._ticker, None
        if ticker is None:
            LOGGER.warning("Attempting to stop fetch loop for %s when already stopped", self.slide_id)
            return False
        ticker.stop()
        return True

    def fetch(self) -> FetchResult:
        """Fetch and parse once. Concurrent callers are serialized."""
        with self._fetch_lock:
            result = self._fetch_once()
            with self._result_lock:
                self._latest = result
            LOGGER.debug("Fetch complete for %s, success=%s", self.slide_id, result.success)
            return result

    def _build_request(self) -> requests.PreparedRequest:
        if self._config.build_request is not None:
            request = self._config.build_request()
        else:
            request = requests.Request("GET", self._config.url)
        return self._session.prepare_request(request)

    def _fetch_once(self) -> FetchResult:
        try:
            prepared = self._build_request()
        except (RequestBuildError, requests.RequestException, ValueError) as exc:
            LOGGER.warning("Request error for %s: %s", self.slide_id, exc)
            return self._failure(str(exc))

        try:
            response = self._session.send(prepared, timeout=self._config.timeout_seconds)
        except requests.RequestException as exc:
            LOGGER.warning("Response error for %s (%s): %s", self.slide_id, prepared.url, exc)
            return self._failure(f"Request failed: {exc}")

        if not 200 <= response.status_code < 300:
            LOGGER.warning("Got status %s for %s (%s)", response.status_code, self.slide_id, prepared.url)
            return self._failure(f"Status {response.status_code}")

        body = response.content
        if self._debug_sink is not None:
            try:
                self._debug_sink.write(self.slide_id, body)
            except OSError as exc:
                LOGGER.warning("Could not write debug output for %s: %s", self.slide_id, exc)

        try:
            success = bool(self._config.parse(body))
        except Exception:
            LOGGER.exception("Parse callback for %s raised", self.slide_id)
            return self._failure("Parse callback raised", body)

        return FetchResult(
            success=success,
            body=body,
            fetched_at=time.time(),
            error=None if success else "Response rejected by parser",
        )

    def _failure(self, error: str, body: bytes | None = None) -> FetchResult:
        return FetchResult(success=False, body=body, fetched_at=time.time(), error=error)


__all__ = [
    "DebugSink",
    "DirectoryDebugSink",
    "FetchConfig",
    "FetchResult",
    "Fetcher",
    "RequestBuildError",
]
