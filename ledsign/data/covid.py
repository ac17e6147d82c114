"""Parsing for the published pandemic CSV feeds.

Case counts come from the CSSE daily reports, one CSV per day with a row per
county or province. Vaccinations come from the OWID US state file, a single
CSV with a row per location and day.
"""

from __future__ import annotations

import csv
from datetime import date, timedelta
import io
import logging
from typing import Iterator, Mapping, Sequence

from ledsign.config import CovidRegion

LOGGER = logging.getLogger(__name__)

CSSE_DAILY_REPORT_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_daily_reports/{day:%m-%d-%Y}.csv"
)
OWID_VACCINATIONS_URL = (
    "https://github.com/owid/covid-19-data/raw/master/public/data/vaccinations/us_state_vaccinations.csv"
)

REPORT_COLUMNS = ("Province_State", "Country_Region", "Confirmed")


class CovidDataError(Exception):
    """Raised when a CSV feed does not have the expected shape."""


def daily_report_url(day: date) -> str:
    return CSSE_DAILY_REPORT_URL.format(day=day)


def _reader(body: bytes) -> Iterator[list[str]]:
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CovidDataError(f"CSV is not UTF-8: {exc}") from exc
    return csv.reader(io.StringIO(text))


def _header_index(header: Sequence[str], names: Sequence[str]) -> dict[str, int]:
    """Column index per name, matched case-insensitively."""
    upper = [column.strip().upper() for column in header]
    columns = {}
    for name in names:
        try:
            columns[name] = upper.index(name.upper())
        except ValueError as exc:
            raise CovidDataError(f"Missing column {name!r} in CSV header") from exc
    return columns


def parse_daily_report(body: bytes, regions: Sequence[CovidRegion]) -> dict[str, int]:
    """Sum confirmed cases per region label for one daily report.

    Regions with a zero sum are left out, so a partial report never
    overwrites a good total with nothing.
    """
    rows = _reader(body)
    try:
        header = next(rows)
    except StopIteration as exc:
        raise CovidDataError("Empty CSV") from exc
    except csv.Error as exc:
        raise CovidDataError(f"Unreadable CSV: {exc}") from exc
    columns = _header_index(header, REPORT_COLUMNS)
    width = max(columns.values()) + 1

    sums = {region.label: 0 for region in regions}
    try:
        for row in rows:
            if len(row) < width:
                continue
            value = row[columns["Confirmed"]]
            try:
                confirmed = int(float(value)) if value else 0
            except (ValueError, OverflowError):
                LOGGER.warning("Unreadable case count %r in daily report", value)
                continue
            state = row[columns["Province_State"]]
            country = row[columns["Country_Region"]]
            for region in regions:
                if country == region.country and (region.state is None or state == region.state):
                    sums[region.label] += confirmed
    except csv.Error as exc:
        raise CovidDataError(f"Unreadable CSV: {exc}") from exc
    return {label: total for label, total in sums.items() if total > 0}


def parse_vaccinations(
    body: bytes,
    regions: Sequence[CovidRegion],
    since: date,
) -> dict[str, dict[date, int]]:
    """People vaccinated per region label and day, from ``since`` onwards.

    Empty counts are skipped rather than read as zero.
    """
    rows = _reader(body)
    try:
        header = next(rows)
    except StopIteration as exc:
        raise CovidDataError("Empty CSV") from exc
    except csv.Error as exc:
        raise CovidDataError(f"Unreadable CSV: {exc}") from exc
    columns = _header_index(header, ("date", "location", "people_vaccinated"))
    width = max(columns.values()) + 1
    labels_by_location = {region.location: region.label for region in regions}

    series: dict[str, dict[date, int]] = {region.label: {} for region in regions}
    try:
        for row in rows:
            if len(row) < width:
                continue
            label = labels_by_location.get(row[columns["location"]])
            if label is None:
                continue
            try:
                day = date.fromisoformat(row[columns["date"]])
            except ValueError:
                LOGGER.warning("Unreadable date %r in vaccinations CSV", row[columns["date"]])
                continue
            if day < since:
                continue
            value = row[columns["people_vaccinated"]]
            if not value:
                continue
            try:
                series[label][day] = int(float(value))
            except (ValueError, OverflowError):
                LOGGER.warning("Unreadable vaccination count %r in vaccinations CSV", value)
    except csv.Error as exc:
        raise CovidDataError(f"Unreadable CSV: {exc}") from exc
    return series


def daily_diffs(totals: Mapping[date, int], today: date, days: int) -> list[int]:
    """Daily increases for the ``days - 1`` days ending yesterday, oldest first.

    Gaps carry the last known total forward; a day with no total, or no
    earlier total to compare to, counts as zero.
    """
    last = 0
    diffs = []
    for back in range(days - 1, 0, -1):
        previous = totals.get(today - timedelta(days=back + 1))
        if previous is not None:
            last = previous
        value = totals.get(today - timedelta(days=back))
        diffs.append(value - last if value is not None and last > 0 else 0)
    return diffs


def format_number(n: int) -> str:
    """At most four glyphs, with k and M suffixes: ``1.2k``, ``345k``, ``12M``."""
    digits = len(str(n)) if n > 0 else 0
    if digits == 4:
        return f"{n / 1_000:.1f}k"
    if digits in (5, 6):
        return f"{n / 1_000:.0f}k"
    if digits == 7:
        return f"{n / 1_000_000:.1f}M"
    if digits in (8, 9):
        return f"{n / 1_000_000:.0f}M"
    return str(n)


__all__ = [
    "CSSE_DAILY_REPORT_URL",
    "CovidDataError",
    "OWID_VACCINATIONS_URL",
    "daily_diffs",
    "daily_report_url",
    "format_number",
    "parse_daily_report",
    "parse_vaccinations",
]
