"""
Calendar Utilities

All month arithmetic used by the analytics engine lives here, so the engine
never depends on a particular calendar implementation.

Months are plain (month, year) integer pairs; month is 1-12.
"""

import calendar
from datetime import date


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")


def days_in_month(month: int, year: int) -> int:
    """Number of days in the given month, leap years included."""
    _check_month(month)
    return calendar.monthrange(year, month)[1]


def start_of_month(month: int, year: int) -> date:
    _check_month(month)
    return date(year, month, 1)


def end_of_month(month: int, year: int) -> date:
    return date(year, month, days_in_month(month, year))


def shift_month(month: int, year: int, delta: int) -> tuple[int, int]:
    """
    Move a (month, year) pair by delta months.

    shift_month(1, 2024, -1) == (12, 2023)
    """
    _check_month(month)
    index = year * 12 + (month - 1) + delta
    return index % 12 + 1, index // 12


def months_before(day: date, n: int) -> date:
    """
    The same day n months earlier.

    The day of month is clamped to the length of the target month,
    so 31 March minus one month is the last day of February.
    """
    month, year = shift_month(day.month, day.year, -n)
    return date(year, month, min(day.day, days_in_month(month, year)))


def iter_month_days(month: int, year: int):
    """Yield every date of the month, first to last."""
    for day in range(1, days_in_month(month, year) + 1):
        yield date(year, month, day)


def budget_key(month: int, year: int) -> str:
    """
    Persistence key of a monthly budget: zero-padded month, dash, year.

    budget_key(3, 2025) == "03-2025"
    """
    _check_month(month)
    return f"{month:02d}-{year}"


def parse_budget_key(key: str) -> tuple[int, int]:
    """
    Inverse of budget_key().

    Raises:
        ValueError: If key is not in "MM-YYYY" form
    """
    parts = key.split("-")
    if (
        len(parts) != 2
        or len(parts[0]) != 2
        or len(parts[1]) != 4
        or not parts[0].isdigit()
        or not parts[1].isdigit()
    ):
        raise ValueError(f"Budget key must look like 'MM-YYYY', got {key!r}")

    month, year = int(parts[0]), int(parts[1])
    _check_month(month)
    return month, year
