"""Date parsing utilities."""

from calendar import monthrange
from datetime import date, timedelta
import re

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from famledger.domain.errors import ValidationError, invalid_month, invalid_year

_MONTH_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})-(?P<month>\d{1,2})$"),
    re.compile(r"^(?P<month>\d{1,2})/(?P<year>\d{4})$"),
)


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024", ...) and the
    relative forms "today", "yesterday", "tomorrow", "this month",
    "last month" and "next month" (the latter three give the first day of
    the month).

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "next month": (today + relativedelta(months=1)).replace(day=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_month(month_str: str) -> tuple[int, int]:
    """Parse a billing month into a (month, year) pair.

    Accepts "YYYY-MM", "MM/YYYY" and the relative forms understood by
    parse_date ("this month", "next month", ...).

    Raises:
        ValueError: If the month cannot be parsed
    """
    text = month_str.strip().lower()
    for pattern in _MONTH_PATTERNS:
        match = pattern.match(text)
        if match:
            month = int(match.group("month"))
            if not 1 <= month <= 12:
                raise ValueError(f"Month must be between 1 and 12, got {month}")
            return month, int(match.group("year"))

    parsed = parse_date(text)
    return parsed.month, parsed.year


def validate_month(month: int, year: int) -> None:
    """Check a (month, year) pair coming from a caller.

    Raises:
        ValidationError: If month is not 1-12 or year is not four digits
    """
    if not 1 <= month <= 12:
        raise ValidationError(invalid_month(month))
    if not 1000 <= year <= 9999:
        raise ValidationError(invalid_year(year))


def add_months(month: int, year: int, count: int) -> tuple[int, int]:
    """Step a (month, year) pair by count months (negative steps back)."""
    shifted = date(year, month, 1) + relativedelta(months=count)
    return shifted.month, shifted.year


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date using day, clamped to the last day of the month."""
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day, last_day))
