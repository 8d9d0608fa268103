"""Calendar month helpers shared by cohort, trend and cube analyses."""

from __future__ import annotations

from datetime import date, timedelta


def month_start(day: date) -> date:
    """Truncate a date to the first day of its calendar month."""
    return day.replace(day=1)


def next_month(day: date) -> date:
    """Return the first day of the month following ``day``."""
    return (month_start(day).replace(day=28) + timedelta(days=4)).replace(day=1)


def month_label(day: date) -> str:
    """Format a date as ``YYYY-MM``."""
    return f"{day.year:04d}-{day.month:02d}"


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month.

    >>> months_between(date(2023, 1, 1), date(2023, 3, 31))
    2
    >>> months_between(date(2023, 11, 1), date(2024, 2, 1))
    3
    """
    return (end.year - start.year) * 12 + (end.month - start.month)
