"""Command-line entry point: run the slideshow or render every slide once."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from ledsign.config import AppConfig, load_config
from ledsign.data.fetcher import DebugSink, DirectoryDebugSink
from ledsign.data.network import ConnectivityProbe, sync_time
from ledsign.display import Display, EmulatorDisplay, MatrixDisplay, MatrixGeometry
from ledsign.logs import configure_logging
from ledsign.scheduling.controller import Controller
from ledsign.scheduling.slideshow import Slideshow
from ledsign.slides import (
    ChristmasSlide,
    CountdownSlide,
    CovidSlide,
    MbtaSlide,
    NewYearSlide,
    Slide,
    TimeSlide,
    VaccinationSlide,
    WeatherSlide,
)
from ledsign.slides.base import slide_name

LOGGER = logging.getLogger(__name__)


def build_slides(config: AppConfig, debug_sink: DebugSink | None = None) -> list[Slide]:
    """Construct the configured slides, in rotation order."""
    timeout = config.network.timeout_seconds
    slides: list[Slide] = []
    for name in config.slides:
        if name == "time":
            slides.append(TimeSlide())
        elif name == "mbta":
            if config.mbta is None:
                raise ValueError("'mbta' config section is required for the mbta slide")
            slides.append(
                MbtaSlide(
                    api_key=config.mbta.api_key,
                    station_id=config.mbta.station_id,
                    refresh_interval_seconds=config.mbta.refresh_interval_seconds,
                    timeout_seconds=timeout,
                    debug_sink=debug_sink,
                )
            )
        elif name == "weather":
            if config.weather is None:
                raise ValueError("'weather' config section is required for the weather slide")
            slides.append(
                WeatherSlide(
                    station=config.weather.station,
                    office=config.weather.office,
                    observations_interval_seconds=config.weather.observations_interval_seconds,
                    forecast_interval_seconds=config.weather.forecast_interval_seconds,
                    user_agent=config.weather.user_agent,
                    timezone=config.weather.timezone,
                    timeout_seconds=timeout,
                    debug_sink=debug_sink,
                )
            )
        elif name == "countdown":
            slides.append(CountdownSlide(config.countdown.events))
        elif name == "christmas":
            slides.append(ChristmasSlide())
        elif name == "new_year":
            slides.append(NewYearSlide())
        elif name == "covid":
            slides.append(
                CovidSlide(
                    regions=config.covid.regions,
                    history_days=config.covid.history_days,
                    refresh_interval_seconds=config.covid.cases_refresh_interval_seconds,
                    timeout_seconds=timeout,
                    debug_sink=debug_sink,
                )
            )
        elif name == "vaccinations":
            slides.append(
                VaccinationSlide(
                    regions=config.covid.regions,
                    history_days=config.covid.history_days,
                    refresh_interval_seconds=config.covid.vaccinations_refresh_interval_seconds,
                    timeout_seconds=timeout,
                    debug_sink=debug_sink,
                )
            )
        else:
            raise ValueError(f"Unknown slide: {name}")
    return slides


def build_display(config: AppConfig, output: str) -> Display:
    if output == "hardware":
        return MatrixDisplay(
            MatrixGeometry(width=config.display.width, height=config.display.height),
            brightness=config.display.brightness,
        )
    return EmulatorDisplay(width=config.display.width, height=config.display.height)


def generate_images(slides: Sequence[Slide], display: EmulatorDisplay) -> list[str]:
    """Initialize each slide and save one frame of it, named after the slide."""
    display.initialize()
    written = []
    for slide in slides:
        name = slide_name(slide)
        display.set_name(name)
        slide.initialize()
        slide.start_draw(display)
        slide.stop_draw()
        slide.terminate()
        written.append(str(display.path_for(name)))
        LOGGER.info("Saved rendering of slide %s", name)
    return written


def run_slideshow(config: AppConfig, display: Display, slides: Sequence[Slide], port: int) -> None:
    display.initialize()
    show = Slideshow(
        display,
        slides,
        config.slideshow,
        is_connected=ConnectivityProbe(config.network.probe_url).is_connected,
        probe_interval_seconds=config.network.probe_interval_seconds,
        sync_time=lambda: sync_time(config.network.ntp_command),
    )
    controller = Controller(show, host=config.controller.host, port=port)
    controller.serve_in_background()
    show.start()
    try:
        controller.run_until_shutdown()
    except KeyboardInterrupt:
        controller.close()
    if show.running:
        show.stop()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rotating LED sign slideshow")
    parser.add_argument("--config", default="config/config.yaml", help="Path to the YAML config file")
    parser.add_argument(
        "--generate-images",
        action="store_true",
        help="Render each slide to a PNG instead of running the slideshow",
    )
    parser.add_argument("--debug-log", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--debug-http", metavar="DIR", help="Save every HTTP response body under DIR")
    parser.add_argument(
        "--output",
        choices=["hardware", "emulator"],
        help="Frame output target (defaults to display.output in the config)",
    )
    parser.add_argument("--port", type=int, help="Controller port (defaults to controller.port)")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.log, debug=args.debug_log)

    debug_sink = DirectoryDebugSink(args.debug_http) if args.debug_http else None
    slides = build_slides(config, debug_sink=debug_sink)

    if args.generate_images:
        display = EmulatorDisplay("render", width=config.display.width, height=config.display.height, gridlines=True)
        generate_images(slides, display)
        return 0

    display = build_display(config, args.output or config.display.output)
    run_slideshow(config, display, slides, args.port or config.controller.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
