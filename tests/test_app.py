from __future__ import annotations

import dataclasses
import textwrap
from unittest.mock import MagicMock

import pytest

from ledsign import app
from ledsign.config import load_config
from ledsign.display import EmulatorDisplay, MatrixDisplay
from ledsign.slides import (
    CountdownSlide,
    CovidSlide,
    MbtaSlide,
    NewYearSlide,
    TimeSlide,
    VaccinationSlide,
    WeatherSlide,
)

CONFIG_YAML = """
slides: [time, mbta, weather, countdown, new_year]
slideshow:
  advance_interval_seconds: 10
display:
  width: 128
  height: 32
  output: emulator
mbta:
  station_id: "place-davis"
weather:
  station: "KBOS"
  office: "BOX/71,90"
logging:
  level: "INFO"
  log_dir: "logs/"
"""


@pytest.fixture()
def config_path(tmp_path) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(CONFIG_YAML))
    return str(path)


def test_build_slides_in_config_order(config_path) -> None:
    slides = app.build_slides(load_config(config_path))

    assert [type(slide) for slide in slides] == [TimeSlide, MbtaSlide, WeatherSlide, CountdownSlide, NewYearSlide]


@pytest.mark.parametrize("section", ["mbta", "weather"])
def test_build_slides_requires_data_section(config_path, section) -> None:
    config = dataclasses.replace(load_config(config_path), **{section: None})

    with pytest.raises(ValueError, match=section):
        app.build_slides(config)


def test_build_covid_slides_use_covid_section(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        textwrap.dedent(CONFIG_YAML).replace("[time, mbta, weather, countdown, new_year]", "[covid, vaccinations]")
        + "covid:\n  history_days: 7\n"
    )

    covid, vaccinations = app.build_slides(load_config(str(path)))

    assert isinstance(covid, CovidSlide)
    assert len(covid.fetchers) == 7
    assert isinstance(vaccinations, VaccinationSlide)


def test_build_display(config_path) -> None:
    config = load_config(config_path)

    assert isinstance(app.build_display(config, "emulator"), EmulatorDisplay)
    assert isinstance(app.build_display(config, "hardware"), MatrixDisplay)


def test_generate_images_writes_one_file_per_slide(tmp_path) -> None:
    slides = [TimeSlide(), CountdownSlide([])]
    display = EmulatorDisplay(tmp_path / "render", scale=1)

    written = app.generate_images(slides, display)

    assert [p.rsplit("/", 1)[-1] for p in written] == ["TimeSlide.png", "CountdownSlide.png"]
    assert (tmp_path / "render" / "TimeSlide.png").exists()
    assert (tmp_path / "render" / "CountdownSlide.png").exists()


def test_generate_images_calls_lifecycle_in_order(tmp_path) -> None:
    slide = MagicMock()
    display = MagicMock(spec=EmulatorDisplay)

    app.generate_images([slide], display)

    assert [call[0] for call in slide.method_calls] == ["initialize", "start_draw", "stop_draw", "terminate"]


def test_main_generate_images(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(CONFIG_YAML).replace("[time, mbta, weather, countdown, new_year]", "[time]"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(app, "configure_logging", MagicMock())

    assert app.main(["--config", str(path), "--generate-images"]) == 0

    assert (tmp_path / "render" / "TimeSlide.png").exists()
    app.configure_logging.assert_called_once()


def test_main_runs_slideshow_with_overrides(config_path, monkeypatch) -> None:
    run = MagicMock()
    monkeypatch.setattr(app, "run_slideshow", run)
    monkeypatch.setattr(app, "configure_logging", MagicMock())

    assert app.main(["--config", config_path, "--output", "emulator", "--port", "8080", "--debug-log"]) == 0

    config, display, slides, port = run.call_args.args
    assert isinstance(display, EmulatorDisplay)
    assert port == 8080
    assert len(slides) == 5
    assert app.configure_logging.call_args.kwargs["debug"] is True
