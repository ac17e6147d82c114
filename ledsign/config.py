"""Configuration loader for the LED sign slideshow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import os
from typing import Any

from dotenv import load_dotenv
import yaml

KNOWN_SLIDES = ("time", "mbta", "weather", "countdown", "christmas", "new_year", "covid", "vaccinations")
DISPLAY_OUTPUTS = ("hardware", "emulator")

DEFAULT_PROBE_URL = "http://clients3.google.com/generate_204"
DEFAULT_NTP_COMMAND = ("/usr/sbin/ntpdate", "-s", "time.google.com")
DEFAULT_USER_AGENT = "ledsign (https://github.com/ledsign/ledsign)"


@dataclass(frozen=True)
class NightModeConfig:
    """Daily quiet window, in whole hours."""

    enabled: bool
    start_hour: int
    end_hour: int


@dataclass(frozen=True)
class SlideshowConfig:
    """Rotation cadence and quiet hours."""

    advance_interval_seconds: float
    redraw_interval_seconds: float
    night_mode: NightModeConfig


@dataclass(frozen=True)
class DisplayConfig:
    """Display configuration for rendering and hardware."""

    width: int
    height: int
    brightness: int
    output: str


@dataclass(frozen=True)
class MbtaConfig:
    """MBTA API configuration."""

    api_key: str
    station_id: str
    refresh_interval_seconds: float = 60


@dataclass(frozen=True)
class WeatherConfig:
    """api.weather.gov station and forecast office."""

    station: str
    office: str
    observations_interval_seconds: float = 300
    forecast_interval_seconds: float = 1800
    user_agent: str = DEFAULT_USER_AGENT
    timezone: str = "America/New_York"


@dataclass(frozen=True)
class CountdownEvent:
    """A dated event counted down to on the countdown slide."""

    date: date
    label: str
    color: tuple[int, int, int]


@dataclass(frozen=True)
class CountdownConfig:
    events: list[CountdownEvent] = field(default_factory=list)


@dataclass(frozen=True)
class CovidRegion:
    """One row on the pandemic slides."""

    label: str
    country: str = "US"
    state: str | None = None

    @property
    def location(self) -> str:
        """Name the vaccinations feed uses for this region."""
        if self.state is not None:
            return self.state
        return "United States" if self.country == "US" else self.country


DEFAULT_COVID_REGIONS = (
    CovidRegion("US"),
    CovidRegion("Mass", state="Massachusetts"),
    CovidRegion("Ariz", state="Arizona"),
)
MAX_COVID_REGIONS = 3
MAX_HISTORY_DAYS = 32


@dataclass(frozen=True)
class CovidConfig:
    """Regions and history shown by the case and vaccination slides."""

    regions: tuple[CovidRegion, ...] = DEFAULT_COVID_REGIONS
    history_days: int = 29
    cases_refresh_interval_seconds: float = 4 * 60 * 60
    vaccinations_refresh_interval_seconds: float = 6 * 60 * 60


@dataclass(frozen=True)
class NetworkConfig:
    """Connectivity probe and HTTP settings."""

    probe_url: str = DEFAULT_PROBE_URL
    probe_interval_seconds: float = 1.0
    timeout_seconds: float = 10.0
    ntp_command: tuple[str, ...] = DEFAULT_NTP_COMMAND


@dataclass(frozen=True)
class ControllerConfig:
    host: str = "0.0.0.0"
    port: int = 5000


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str
    log_dir: str


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    slides: list[str]
    slideshow: SlideshowConfig
    display: DisplayConfig
    log: LoggingConfig
    network: NetworkConfig
    controller: ControllerConfig
    countdown: CountdownConfig
    mbta: MbtaConfig | None = None
    weather: WeatherConfig | None = None
    covid: CovidConfig = field(default_factory=CovidConfig)


def _require_key(mapping: dict[str, Any], key: str, context: str) -> Any:
    if key not in mapping:
        raise ValueError(f"Missing required key '{key}' in {context} config")
    return mapping[key]


def _section(data: dict[str, Any], key: str, required: bool = True) -> dict[str, Any] | None:
    if key not in data:
        if required:
            raise ValueError(f"Missing required key '{key}' in top-level config")
        return None
    value = data[key]
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' config must be a mapping")
    return value


def _hour(value: Any, key: str) -> int:
    if not isinstance(value, int) or not 0 <= value <= 23:
        raise ValueError(f"'{key}' must be an hour between 0 and 23, got {value!r}")
    return value


def _parse_color(value: Any, context: str) -> tuple[int, int, int]:
    text = str(value).lstrip("#")
    if len(text) != 6:
        raise ValueError(f"{context} color must be a 6-digit hex string, got {value!r}")
    try:
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError as exc:
        raise ValueError(f"{context} color must be a 6-digit hex string, got {value!r}") from exc


def _parse_date(value: Any, context: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"{context} date must be YYYY-MM-DD, got {value!r}") from exc


def _parse_slideshow(section: dict[str, Any]) -> SlideshowConfig:
    night_section = section.get("night_mode") or {}
    if not isinstance(night_section, dict):
        raise ValueError("'night_mode' config must be a mapping")
    night_mode = NightModeConfig(
        enabled=bool(night_section.get("enabled", False)),
        start_hour=_hour(night_section.get("start_hour", 0), "night_mode.start_hour"),
        end_hour=_hour(night_section.get("end_hour", 0), "night_mode.end_hour"),
    )
    advance = _require_key(section, "advance_interval_seconds", "slideshow")
    redraw = section.get("redraw_interval_seconds", 1)
    if advance <= 0 or redraw <= 0:
        raise ValueError("Slideshow intervals must be positive")
    return SlideshowConfig(
        advance_interval_seconds=advance,
        redraw_interval_seconds=redraw,
        night_mode=night_mode,
    )


def _parse_countdown(section: dict[str, Any] | None) -> CountdownConfig:
    if section is None:
        return CountdownConfig()
    raw_events = section.get("events") or []
    if not isinstance(raw_events, list):
        raise ValueError("'countdown.events' must be a list")
    events = []
    for idx, raw in enumerate(raw_events):
        context = f"countdown.events[{idx}]"
        if not isinstance(raw, dict):
            raise ValueError(f"{context} must be a mapping")
        events.append(
            CountdownEvent(
                date=_parse_date(_require_key(raw, "date", context), context),
                label=str(_require_key(raw, "label", context)),
                color=_parse_color(raw.get("color", "FFFFFF"), context),
            )
        )
    return CountdownConfig(events=events)


def _parse_covid(section: dict[str, Any] | None) -> CovidConfig:
    if section is None:
        return CovidConfig()
    raw_regions = section.get("regions")
    regions = DEFAULT_COVID_REGIONS
    if raw_regions is not None:
        if not isinstance(raw_regions, list) or not 1 <= len(raw_regions) <= MAX_COVID_REGIONS:
            raise ValueError(f"'covid.regions' must be a list of 1 to {MAX_COVID_REGIONS} regions")
        parsed = []
        for idx, raw in enumerate(raw_regions):
            context = f"covid.regions[{idx}]"
            if not isinstance(raw, dict):
                raise ValueError(f"{context} must be a mapping")
            parsed.append(
                CovidRegion(
                    label=str(_require_key(raw, "label", context)),
                    country=str(raw.get("country", "US")),
                    state=raw.get("state"),
                )
            )
        regions = tuple(parsed)
    history_days = section.get("history_days", 29)
    if not isinstance(history_days, int) or not 2 <= history_days <= MAX_HISTORY_DAYS:
        raise ValueError(f"'covid.history_days' must be between 2 and {MAX_HISTORY_DAYS}, got {history_days!r}")
    return CovidConfig(
        regions=regions,
        history_days=history_days,
        cases_refresh_interval_seconds=section.get("cases_refresh_interval_seconds", 4 * 60 * 60),
        vaccinations_refresh_interval_seconds=section.get("vaccinations_refresh_interval_seconds", 6 * 60 * 60),
    )


def load_config(path: str = "config/config.yaml") -> AppConfig:
    """Load application configuration from a YAML file."""
    load_dotenv()
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the top level")

    slides = _require_key(data, "slides", "top-level")
    if not isinstance(slides, list) or not all(isinstance(name, str) for name in slides):
        raise ValueError("'slides' config must be a list of slide names")
    unknown = [name for name in slides if name not in KNOWN_SLIDES]
    if unknown:
        raise ValueError(f"Unknown slides in config: {', '.join(unknown)}")

    slideshow_section = _section(data, "slideshow")
    display_section = _section(data, "display")
    logging_section = _section(data, "logging")
    network_section = _section(data, "network", required=False) or {}
    controller_section = _section(data, "controller", required=False) or {}
    mbta_section = _section(data, "mbta", required="mbta" in slides)
    weather_section = _section(data, "weather", required="weather" in slides)

    display = DisplayConfig(
        width=_require_key(display_section, "width", "display"),
        height=_require_key(display_section, "height", "display"),
        brightness=display_section.get("brightness", 80),
        output=display_section.get("output", "hardware"),
    )
    if display.output not in DISPLAY_OUTPUTS:
        raise ValueError(f"'display.output' must be one of {', '.join(DISPLAY_OUTPUTS)}")

    logging = LoggingConfig(
        level=_require_key(logging_section, "level", "logging"),
        log_dir=_require_key(logging_section, "log_dir", "logging"),
    )

    network = NetworkConfig(
        probe_url=network_section.get("probe_url", DEFAULT_PROBE_URL),
        probe_interval_seconds=network_section.get("probe_interval_seconds", 1.0),
        timeout_seconds=network_section.get("timeout_seconds", 10.0),
        ntp_command=tuple(network_section.get("ntp_command", DEFAULT_NTP_COMMAND)),
    )

    controller = ControllerConfig(
        host=controller_section.get("host", "0.0.0.0"),
        port=controller_section.get("port", 5000),
    )

    mbta = None
    if mbta_section is not None:
        mbta = MbtaConfig(
            api_key=os.environ.get("MBTA_API_KEY", ""),
            station_id=_require_key(mbta_section, "station_id", "mbta"),
            refresh_interval_seconds=mbta_section.get("refresh_interval_seconds", 60),
        )

    weather = None
    if weather_section is not None:
        weather = WeatherConfig(
            station=_require_key(weather_section, "station", "weather"),
            office=_require_key(weather_section, "office", "weather"),
            observations_interval_seconds=weather_section.get("observations_interval_seconds", 300),
            forecast_interval_seconds=weather_section.get("forecast_interval_seconds", 1800),
            user_agent=weather_section.get("user_agent", DEFAULT_USER_AGENT),
            timezone=weather_section.get("timezone", "America/New_York"),
        )

    return AppConfig(
        slides=list(slides),
        slideshow=_parse_slideshow(slideshow_section),
        display=display,
        log=logging,
        network=network,
        controller=controller,
        countdown=_parse_countdown(_section(data, "countdown", required=False)),
        mbta=mbta,
        weather=weather,
        covid=_parse_covid(_section(data, "covid", required=False)),
    )
