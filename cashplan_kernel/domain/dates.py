"""Calendar helpers shared by the recurrence expander and both engines."""

import calendar
from collections.abc import Iterator
from datetime import date, timedelta


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the given month, clamped to the month's length."""
    return date(year, month, min(max(1, day), days_in_month(year, month)))


def add_months(value: date, months: int) -> date:
    """
    Shift ``value`` by whole calendar months, clamping the day.

    Jan 31 + 1 month is Feb 28 (or 29); the clamp is not carried forward.
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month0 = divmod(index, 12)
    return clamp_day(year, month0 + 1, value.day)


def add_years(value: date, years: int) -> date:
    """Shift by whole years; Feb 29 becomes Feb 28 in non-leap years."""
    return clamp_day(value.year + years, value.month, value.day)


def month_key(value: date) -> tuple[int, int]:
    return (value.year, value.month)


def month_label(value: date) -> str:
    """``YYYY-MM`` label used in warnings."""
    return f"{value.year:04d}-{value.month:02d}"


def calendar_month_diff(later: date, earlier: date) -> int:
    """Difference in calendar months, ignoring the day of month."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def extra_payment_day(year: int, month: int) -> int:
    """Day of month on which savings floor and extra debt payments run."""
    return min(28, days_in_month(year, month))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every date from ``start`` to ``end`` inclusive."""
    current = start
    one_day = timedelta(days=1)
    while current <= end:
        yield current
        current += one_day
