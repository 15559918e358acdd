from datetime import datetime

import pytest

from utils.time_utils import (
    get_period_key,
    get_timeframe_start,
    is_within_date_range,
    subtract_months,
    subtract_years,
    week_of_month,
)

NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.mark.parametrize("timeframe,expected", [
    ("day", datetime(2024, 2, 14, 12, 0, 0)),
    ("week", datetime(2023, 12, 22, 12, 0, 0)),
    ("month", datetime(2023, 3, 15, 12, 0, 0)),
    ("year", datetime(2019, 3, 15, 12, 0, 0)),
    ("quarter", datetime(2023, 3, 15, 12, 0, 0)),
])
def test_timeframe_window_start(timeframe, expected):
    assert get_timeframe_start(timeframe, NOW) == expected


def test_subtract_years_from_leap_day():
    assert subtract_years(datetime(2024, 2, 29), 5) == datetime(2019, 2, 28)


def test_subtract_months_clamps_day():
    assert subtract_months(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
    assert subtract_months(datetime(2024, 1, 15), 1) == datetime(2023, 12, 15)


def test_week_of_month_counts_sunday_weeks():
    # March 2024 starts on a Friday
    assert week_of_month(datetime(2024, 3, 1)) == 1
    assert week_of_month(datetime(2024, 3, 2)) == 1
    assert week_of_month(datetime(2024, 3, 3)) == 2
    assert week_of_month(datetime(2024, 3, 31)) == 6


def test_week_of_month_when_first_is_sunday():
    # September 2024 starts on a Sunday
    assert week_of_month(datetime(2024, 9, 1)) == 1
    assert week_of_month(datetime(2024, 9, 7)) == 1
    assert week_of_month(datetime(2024, 9, 8)) == 2


@pytest.mark.parametrize("timeframe,expected", [
    ("day", "2024-03-07"),
    ("week", "2024-W2"),
    ("month", "2024-03"),
    ("year", "2024"),
    ("unknown", "2024-03"),
])
def test_period_keys(timeframe, expected):
    assert get_period_key(datetime(2024, 3, 7, 9, 30), timeframe) == expected


def test_date_range_filters():
    assert is_within_date_range(datetime(2024, 3, 15, 0, 5), "today", NOW)
    assert not is_within_date_range(datetime(2024, 3, 14, 23, 59), "today", NOW)

    assert is_within_date_range(datetime(2024, 3, 9), "week", NOW)
    assert not is_within_date_range(datetime(2024, 3, 7), "week", NOW)

    assert is_within_date_range(datetime(2024, 2, 16), "month", NOW)
    assert not is_within_date_range(datetime(2024, 2, 14), "month", NOW)

    assert is_within_date_range(datetime(2001, 1, 1), "all", NOW)
    assert is_within_date_range(None, "all", NOW)
    assert not is_within_date_range(None, "today", NOW)
