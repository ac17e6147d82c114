from __future__ import annotations

from datetime import date
import logging
from unittest.mock import patch

from PIL import Image
import pytest

from ledsign.config import DEFAULT_COVID_REGIONS, CovidRegion
from ledsign.data.covid import (
    CovidDataError,
    daily_diffs,
    daily_report_url,
    format_number,
    parse_daily_report,
    parse_vaccinations,
)
from ledsign.data.fetcher import FetchResult
from ledsign.rendering.surface import YELLOW, draw_error, new_surface
from ledsign.slides import CovidSlide, Slide, VaccinationSlide

TODAY = date(2021, 3, 10)

DAILY_REPORT = b"""\
FIPS,Admin2,Province_State,Country_Region,Last_Update,Lat,Long_,Confirmed,Deaths
25017,Middlesex,Massachusetts,US,2021-03-10 05:22:18,42.48,-71.39,100,3
25025,Suffolk,Massachusetts,US,2021-03-10 05:22:18,42.35,-71.06,50,2
,Unassigned,Massachusetts,US,2021-03-10 05:22:18,,,n/a,0
04013,Maricopa,Arizona,US,2021-03-10 05:22:18,33.34,-112.49,70,1
,,Ontario,Canada,2021-03-10 05:22:18,51.25,-85.32,999,9
"""

VACCINATIONS = b"""\
date,location,total_vaccinations,people_vaccinated
2021-03-05,Massachusetts,900,700
2021-03-08,Massachusetts,1000,800
2021-03-09,Massachusetts,1100,
2021-03-09,Arizona,500,400
2021-03-09,United States,90000,60000
2021-03-09,Texas,3000,2000
"""


def _result(success: bool) -> FetchResult:
    return FetchResult(success=success, body=None, fetched_at=0.0, error=None if success else "Status 404")


def _same(a: Image.Image, b: Image.Image) -> bool:
    return a.tobytes() == b.tobytes()


def _placeholder(title: str, message: str) -> Image.Image:
    surface = new_surface()
    draw_error(surface, title, message)
    return surface


def test_daily_report_url() -> None:
    assert daily_report_url(date(2021, 3, 5)).endswith("/csse_covid_19_daily_reports/03-05-2021.csv")


def test_parse_daily_report_sums_regions(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        totals = parse_daily_report(DAILY_REPORT, DEFAULT_COVID_REGIONS)

    assert totals == {"US": 220, "Mass": 150, "Ariz": 70}
    assert "n/a" in caplog.text


def test_parse_daily_report_drops_empty_regions() -> None:
    regions = (CovidRegion("Wash", state="Washington"), CovidRegion("Can", country="Canada"))

    assert parse_daily_report(DAILY_REPORT, regions) == {"Can": 999}


@pytest.mark.parametrize("body", [b"", b"Province_State,Country_Region,Deaths\nArizona,US,1\n"])
def test_parse_daily_report_rejects_bad_csv(body) -> None:
    with pytest.raises(CovidDataError):
        parse_daily_report(body, DEFAULT_COVID_REGIONS)


def test_parse_vaccinations_filters_and_skips_empty() -> None:
    series = parse_vaccinations(VACCINATIONS, DEFAULT_COVID_REGIONS, since=date(2021, 3, 7))

    assert series == {
        "US": {date(2021, 3, 9): 60000},
        "Mass": {date(2021, 3, 8): 800},
        "Ariz": {date(2021, 3, 9): 400},
    }


def test_parse_vaccinations_needs_columns() -> None:
    with pytest.raises(CovidDataError):
        parse_vaccinations(b"date,location,total_vaccinations\n", DEFAULT_COVID_REGIONS, since=TODAY)


def test_daily_diffs_carry_last_total_over_gaps() -> None:
    totals = {
        date(2021, 3, 5): 100,
        date(2021, 3, 6): 110,
        date(2021, 3, 8): 130,
        date(2021, 3, 9): 135,
    }

    assert daily_diffs(totals, TODAY, 5) == [10, 0, 20, 5]


def test_daily_diffs_without_history() -> None:
    assert daily_diffs({date(2021, 3, 9): 135}, TODAY, 4) == [0, 0, 0]


@pytest.mark.parametrize(
    "n, expected",
    [
        (0, "0"),
        (999, "999"),
        (1234, "1.2k"),
        (12345, "12k"),
        (123456, "123k"),
        (1234567, "1.2M"),
        (12345678, "12M"),
        (123456789, "123M"),
        (1234567890, "1234567890"),
    ],
)
def test_format_number(n, expected) -> None:
    assert format_number(n) == expected


def test_covid_slides_implement_protocol() -> None:
    assert isinstance(CovidSlide(), Slide)
    assert isinstance(VaccinationSlide(), Slide)


def test_covid_slide_has_one_fetcher_per_day() -> None:
    slide = CovidSlide(history_days=5, today=lambda: TODAY)

    assert len(slide.fetchers) == 5
    assert slide.build_report_request(1).url.endswith("03-09-2021.csv")
    assert slide.build_report_request(5).url.endswith("03-05-2021.csv")


def test_covid_slide_stores_totals_for_requested_day() -> None:
    slide = CovidSlide(history_days=5, today=lambda: TODAY)

    slide.build_report_request(2)
    assert slide.parse_report(2, DAILY_REPORT) is True

    assert slide.totals("Mass") == {date(2021, 3, 8): 150}
    assert slide.totals("US") == {date(2021, 3, 8): 220}


def test_covid_slide_rejects_unrequested_or_bad_report() -> None:
    slide = CovidSlide(history_days=5, today=lambda: TODAY)

    assert slide.parse_report(3, DAILY_REPORT) is False
    slide.build_report_request(3)
    assert slide.parse_report(3, b"not,a,report\n") is False
    assert slide.totals("US") == {}


def _draw_with_results(slide: CovidSlide, results: list[bool]) -> Image.Image:
    surface = new_surface()
    patches = [
        patch.object(fetcher, "get_latest", return_value=_result(ok)) for fetcher, ok in zip(slide.fetchers, results)
    ]
    for p in patches:
        p.start()
    try:
        slide.draw(surface)
    finally:
        for p in patches:
            p.stop()
    return surface


def test_covid_slide_placeholder_below_half_success() -> None:
    slide = CovidSlide(history_days=3, today=lambda: TODAY)

    surface = _draw_with_results(slide, [True, False, False])

    assert _same(surface, _placeholder("Covid Cases", "Missing data."))


def test_covid_slide_draws_at_half_success() -> None:
    slide = CovidSlide(history_days=2, today=lambda: TODAY)
    slide.build_report_request(1)
    slide.parse_report(1, DAILY_REPORT)

    surface = _draw_with_results(slide, [True, False])

    assert not _same(surface, _placeholder("Covid Cases", "Missing data."))
    assert surface.getbbox() is not None


def test_covid_slide_graph_shows_daily_increases() -> None:
    slide = CovidSlide(regions=(CovidRegion("US"),), history_days=5, today=lambda: TODAY)
    for days_ago, confirmed in ((5, 100), (4, 110), (2, 130), (1, 135)):
        slide.build_report_request(days_ago)
        body = b"Province_State,Country_Region,Confirmed\nMassachusetts,US,%d\n" % confirmed
        assert slide.parse_report(days_ago, body) is True

    surface = _draw_with_results(slide, [True] * 5)

    # Diffs are [10, 0, 20, 5] in columns 123..126; the peak fills the row.
    assert surface.getpixel((125, 8)) == YELLOW
    assert surface.getpixel((125, 14)) == YELLOW
    assert surface.getpixel((124, 14)) == (0, 0, 0)


def test_vaccination_slide_placeholder_until_loaded() -> None:
    slide = VaccinationSlide(today=lambda: TODAY)
    surface = new_surface()

    with patch.object(slide.fetcher, "get_latest", return_value=_result(False)):
        slide.draw(surface)

    assert _same(surface, _placeholder("Covid Vaccination", "Missing data."))


def test_vaccination_slide_keeps_data_after_failed_fetch() -> None:
    slide = VaccinationSlide(today=lambda: TODAY)
    assert slide.parse(VACCINATIONS) is True
    fresh = new_surface()
    stale = new_surface()

    with patch.object(slide.fetcher, "get_latest", return_value=_result(True)):
        slide.draw(fresh)
    with patch.object(slide.fetcher, "get_latest", return_value=_result(False)):
        slide.draw(stale)

    assert not _same(stale, _placeholder("Covid Vaccination", "Missing data."))
    assert _same(stale.crop((0, 0, 124, 32)), fresh.crop((0, 0, 124, 32)))
    assert stale.getpixel((127, 0)) == (255, 0, 0)


def test_vaccination_slide_rejects_bad_csv() -> None:
    slide = VaccinationSlide(today=lambda: TODAY)

    assert slide.parse(b"nothing useful\n") is False
