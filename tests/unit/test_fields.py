from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pandas as pd
import pytest

from fuel_import.models.config_models import DateRange
from fuel_import.parsing.fields import (
    parse_date,
    parse_duration_hours,
    parse_number,
    parse_percentage,
    parse_session_date,
    parse_time_of_day,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2 hours 30 minutes", 2.5),
        ("45 minutes", 0.75),
        ("3 hours", 3.0),
        ("1 hour 1 minute", 1 + 1 / 60),
        ("35 minutes", 35 / 60),
        ("", 0),
        ("n/a", 0),
    ],
)
def test_parse_duration_hours_text(text, expected):
    assert parse_duration_hours(text) == pytest.approx(expected)


def test_parse_duration_hours_minute_only_is_not_hours():
    # minutes alone must not be mistaken for whole hours
    assert parse_duration_hours("90 minutes") == pytest.approx(1.5)


def test_parse_duration_hours_numeric_and_excel_cells():
    assert parse_duration_hours(8) == 8.0
    assert parse_duration_hours(2.25) == 2.25
    assert parse_duration_hours(float("nan")) == 0.0
    assert parse_duration_hours(None) == 0.0
    assert parse_duration_hours(timedelta(hours=1, minutes=30)) == pytest.approx(1.5)
    assert parse_duration_hours(time(2, 15)) == pytest.approx(2.25)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,234.5%", 1234.5),
        ("  12.0 ", 12.0),
        ("-", 0.0),
        ("-150.3", -150.3),
        ("897,500", 897.5),
        ("1.234,5", 1234.5),
        ("1,234,567", 1234567.0),
        ("1.234.567", 1234567.0),
        ("12,345,678.90", 12345678.9),
        ("1e-05", 0.00001),
        ("0,00001", 0.00001),
        ("R 19,44", 19.44),
        ("", 0.0),
        ("abc", 0.0),
        (None, 0.0),
        (42, 42.0),
        (float("nan"), 0.0),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize(
    "raw",
    [
        "1,234.5%", "  12.0 ", "-", "-150.3", "897,500", "56%", "x",
        "0,00001", "12345678901234567.5", "1,234,567",
    ],
)
def test_parse_number_is_idempotent(raw):
    once = parse_number(raw)
    assert parse_number(str(once)) == once


def test_parse_percentage():
    assert parse_percentage("80%") == 80.0
    assert parse_percentage("50,5%") == 50.5
    assert parse_percentage(" 12 % ") == 12.0
    assert parse_percentage("") == 0.0
    assert parse_percentage(0.56) == 0.56


def test_parse_time_of_day():
    assert parse_time_of_day("From: 06:00:00") == time(6, 0, 0)
    assert parse_time_of_day("14:30:05") == time(14, 30, 5)
    assert parse_time_of_day("25:00:00") is None
    assert parse_time_of_day("06:00") is None
    assert parse_time_of_day("") is None


def test_parse_date_strict_and_flexible():
    assert parse_date("2026-01-20") == date(2026, 1, 20)
    assert parse_date("2026-02-30") is None
    assert parse_date("Jan 20, 2026") == date(2026, 1, 20)
    assert parse_date("01/02/2026") == date(2026, 1, 2)
    assert parse_date("01/02/2026", dayfirst=True) == date(2026, 2, 1)
    assert parse_date("not a date") is None
    assert parse_date("8") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_date_accepts_cell_objects():
    assert parse_date(datetime(2026, 1, 20, 13, 5)) == date(2026, 1, 20)
    assert parse_date(pd.Timestamp("2026-01-21")) == date(2026, 1, 21)
    assert parse_date(date(2026, 1, 19)) == date(2026, 1, 19)
    assert parse_date(pd.NaT) is None


def test_parse_session_date_range_is_closed_interval():
    rng = DateRange(start=date(2026, 1, 19), end=date(2026, 1, 21))
    assert parse_session_date("2026-01-19", rng) == date(2026, 1, 19)
    assert parse_session_date("2026-01-21", rng) == date(2026, 1, 21)
    assert parse_session_date("2026-01-18", rng) is None
    assert parse_session_date("2026-01-22", rng) is None
    assert parse_session_date("garbage", rng) is None
