"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

PERIODS = (
    "this-month",
    "this-quarter",
    "this-year",
    "last-month",
    "last-quarter",
    "last-year",
)


def _quarter_start(day: date) -> date:
    return day.replace(month=3 * ((day.month - 1) // 3) + 1, day=1)


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Accepts ISO and other absolute formats understood by dateutil, plus
    "today", "yesterday", "tomorrow", "start of month", "start of quarter",
    "start of year", "end of last month" and "end of last year".

    Args:
        date_str: Date string
        today: Reference date for relative names (defaults to date.today())

    Raises:
        ValueError: If the string cannot be parsed
    """
    text = " ".join(date_str.strip().lower().split())
    today = today or date.today()

    relative = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "start of month": today.replace(day=1),
        "start of quarter": _quarter_start(today),
        "start of year": today.replace(month=1, day=1),
        "end of last month": today.replace(day=1) - timedelta(days=1),
        "end of last year": today.replace(month=1, day=1) - timedelta(days=1),
    }
    if text in relative:
        return relative[text]

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get inclusive start and end dates for a named reporting period.

    Periods starting with "this-" end today; "last-" periods are complete.

    Raises:
        ValueError: If the period is not one of PERIODS
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "this-month":
        return today.replace(day=1), today
    if period == "this-quarter":
        return _quarter_start(today), today
    if period == "this-year":
        return today.replace(month=1, day=1), today
    if period == "last-month":
        start = today.replace(day=1) - relativedelta(months=1)
        return start, start + relativedelta(months=1) - timedelta(days=1)
    if period == "last-quarter":
        start = _quarter_start(today) - relativedelta(months=3)
        return start, start + relativedelta(months=3) - timedelta(days=1)
    if period == "last-year":
        start = today.replace(month=1, day=1) - relativedelta(years=1)
        return start, start.replace(month=12, day=31)

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")
