"""
utils/time_utils.py

Purpose: Time and bucketing helpers

- Analytics window start per timeframe
- Period keys for day/week/month/year buckets
- Date range checks for transaction history
- Timestamp utilities
"""

import math
from datetime import datetime, timedelta
from typing import Optional


def subtract_years(dt: datetime, years: int) -> datetime:
    """
    Moves a datetime back by whole calendar years.
    Feb 29 falls back to Feb 28 in non-leap target years.
    """
    try:
        return dt.replace(year=dt.year - years)
    except ValueError:
        return dt.replace(year=dt.year - years, day=28)


def get_timeframe_start(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """
    Returns the start of the analytics window for a timeframe.

    day -> last 30 days, week -> last 12 weeks, month -> last 12 months,
    year -> last 5 years. Unknown timeframes behave like month.
    """
    now = now or datetime.utcnow()

    if timeframe == "day":
        return now - timedelta(days=30)
    if timeframe == "week":
        return now - timedelta(weeks=12)
    if timeframe == "year":
        return subtract_years(now, 5)
    return subtract_years(now, 1)


def week_of_month(dt: datetime) -> int:
    """
    Week number within the month, counting weeks that start on Sunday.

    The first of the month's weekday offsets the day of month, so the
    first partial week is week 1.
    """
    first_weekday = (dt.replace(day=1).weekday() + 1) % 7  # Sunday = 0
    return math.ceil((dt.day + first_weekday) / 7)


def get_period_key(dt: datetime, timeframe: str) -> str:
    """
    Formats a timestamp into its bucket key.

    Examples:
        day   -> "2024-03-07"
        week  -> "2024-W2"
        month -> "2024-03"
        year  -> "2024"
    """
    if timeframe == "day":
        return dt.strftime("%Y-%m-%d")
    if timeframe == "week":
        return f"{dt.year}-W{week_of_month(dt)}"
    if timeframe == "year":
        return str(dt.year)
    return dt.strftime("%Y-%m")


def is_within_date_range(dt: Optional[datetime], date_range: str, now: Optional[datetime] = None) -> bool:
    """
    Checks a transaction timestamp against a history date filter.

    today -> same calendar day, week -> last 7 days,
    month -> since the same day last month, all -> always.
    """
    if date_range == "all":
        return True
    if dt is None:
        return False

    now = now or datetime.utcnow()

    if date_range == "today":
        return dt.date() == now.date()
    if date_range == "week":
        return dt >= now - timedelta(days=7)
    if date_range == "month":
        return dt >= subtract_months(now, 1)
    return True


def subtract_months(dt: datetime, months: int) -> datetime:
    """
    Moves a datetime back by calendar months, clamping the day
    to the end of the target month.
    """
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1

    day = dt.day
    while day > 28:
        try:
            return dt.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return dt.replace(year=year, month=month, day=day)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """
    Milliseconds since the epoch, used to make object paths unique.
    """
    dt = dt or datetime.utcnow()
    return int((dt - datetime(1970, 1, 1)).total_seconds() * 1000)

