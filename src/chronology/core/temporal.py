"""Temporal utilities: partial-order comparison, durations and display.

Comparison
----------
Dates are reduced to a *scalar* (days since 1970-01-01) before comparing:

- a standard ``year`` gives a proleptic Gregorian day count, with the time
  of day as a fraction;
- otherwise a ``custom_year`` is approximated as ``custom_year * 365`` days;
- otherwise the date has no scalar.

Dates of ``unknown`` precision, and dates without a scalar (typically
relative dates never resolved to an anchor), cannot be placed on a line.
Comparing them yields :attr:`Ordering.INCOMPARABLE`. The relation is a
partial order, and callers decide explicitly what to do with the fourth
state: sorting keeps incomparable items in place, overlap detection
suppresses the finding.

Scalars within one day of each other compare as :attr:`Ordering.EQUAL`.

Calendar arithmetic is integer-only and valid for any year, including BCE
and far-future fictional years. Month and day overflow roll forward the way
a lenient calendar does, so "30 February 2024" is placed on 1 March.
"""

from __future__ import annotations

import calendar
from enum import Enum
from typing import NamedTuple

from .contracts.dates import DatePrecision, RelativeDate, TimelineDate

EQUAL_TOLERANCE_DAYS = 1.0
CUSTOM_YEAR_DAYS = 365

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class Ordering(Enum):
    """Result of comparing two dates: three orderings plus "cannot tell"."""

    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"
    INCOMPARABLE = "incomparable"

    @property
    def is_comparable(self) -> bool:
        """Return True for LESS, EQUAL and GREATER."""
        return self is not Ordering.INCOMPARABLE

    @property
    def at_most(self) -> bool:
        """Return True for LESS or EQUAL (``<=``); False when incomparable."""
        return self in (Ordering.LESS, Ordering.EQUAL)

    @property
    def at_least(self) -> bool:
        """Return True for GREATER or EQUAL (``>=``); False when incomparable."""
        return self in (Ordering.GREATER, Ordering.EQUAL)


class CalendarViolation(NamedTuple):
    """First out-of-range calendar component found on a date."""

    field: str
    value: int
    allowed: str


# --------------------------------------------------------------------------- #
# Calendar arithmetic
# --------------------------------------------------------------------------- #


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in ``month`` (1-12) of ``year``, leap-aware."""
    if month == 2:
        return 29 if calendar.isleap(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def _days_from_civil(year: int, month: int, day: int) -> int:
    """Days since 1970-01-01 of a proleptic Gregorian date.

    Month must be in 1-12; ``day`` may overflow in either direction and
    simply shifts the result.
    """
    y = year - 1 if month <= 2 else year
    era = y // 400
    yoe = y - era * 400
    mp = month - 3 if month > 2 else month + 9
    doy = (153 * mp + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


def date_to_days(date: TimelineDate) -> float | None:
    """Reduce ``date`` to its comparable scalar, or ``None`` if it has none."""
    if date.precision == DatePrecision.UNKNOWN:
        return None

    if date.year is not None:
        # A zero month or day counts as absent.
        total_months = date.year * 12 + ((date.month or 1) - 1)
        year, month_index = divmod(total_months, 12)
        days = _days_from_civil(year, month_index + 1, 1) + (date.day or 1) - 1
        return days + (date.hour or 0) / 24 + (date.minute or 0) / 1440

    if date.custom_year is not None:
        return float(date.custom_year * CUSTOM_YEAR_DAYS)

    return None


def is_placeable(date: TimelineDate) -> bool:
    """Return True if ``date`` can be ordered against other placeable dates."""
    return date_to_days(date) is not None


# --------------------------------------------------------------------------- #
# Comparison & durations
# --------------------------------------------------------------------------- #


def compare_dates(a: TimelineDate, b: TimelineDate) -> Ordering:
    """Compare two dates under the timeline's partial order."""
    if a.precision == DatePrecision.UNKNOWN or b.precision == DatePrecision.UNKNOWN:
        return Ordering.INCOMPARABLE

    days_a = date_to_days(a)
    days_b = date_to_days(b)
    if days_a is None or days_b is None:
        return Ordering.INCOMPARABLE

    if abs(days_a - days_b) < EQUAL_TOLERANCE_DAYS:
        return Ordering.EQUAL
    return Ordering.LESS if days_a < days_b else Ordering.GREATER


def calculate_duration(start: TimelineDate, end: TimelineDate) -> float | None:
    """Return the absolute distance in days, or ``None`` if incomparable."""
    if not compare_dates(start, end).is_comparable:
        return None
    days_start = date_to_days(start)
    days_end = date_to_days(end)
    if days_start is None or days_end is None:
        return None
    return abs(days_end - days_start)


# --------------------------------------------------------------------------- #
# Validity
# --------------------------------------------------------------------------- #


def find_calendar_violation(date: TimelineDate) -> CalendarViolation | None:
    """Return the first impossible standard-calendar component, if any.

    Only dates with a standard ``year`` are checked; invented calendars have
    no known month lengths.
    """
    if date.year is None:
        return None

    if date.month is not None and not 1 <= date.month <= 12:
        return CalendarViolation("month", date.month, "1-12")

    if date.day is not None:
        if date.month is not None:
            limit = days_in_month(date.year, date.month)
        else:
            limit = 31
        if not 1 <= date.day <= limit:
            return CalendarViolation("day", date.day, f"1-{limit}")

    if date.hour is not None and not 0 <= date.hour <= 23:
        return CalendarViolation("hour", date.hour, "0-23")

    if date.minute is not None and not 0 <= date.minute <= 59:
        return CalendarViolation("minute", date.minute, "0-59")

    return None


def is_valid_calendar_date(date: TimelineDate) -> bool:
    """Return True if ``date`` has no impossible calendar component."""
    return find_calendar_violation(date) is None


# --------------------------------------------------------------------------- #
# Display
# --------------------------------------------------------------------------- #


def month_name(month: int) -> str:
    """Return the English month name, or the number itself when out of range."""
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return str(month)


def _format_standard(date: TimelineDate, year: int) -> str:
    parts: list[str] = []
    if date.precision in (DatePrecision.EXACT, DatePrecision.DAY):
        if date.day:
            parts.append(str(date.day))
        if date.month:
            parts.append(month_name(date.month))
        parts.append(str(year))
        if date.precision == DatePrecision.EXACT and date.hour is not None:
            parts.append(f"{date.hour:02d}:{(date.minute or 0):02d}")
    elif date.precision == DatePrecision.MONTH:
        if date.month:
            parts.append(month_name(date.month))
        parts.append(str(year))
    else:
        parts.append(str(year))
    return " ".join(parts)


def _format_custom(date: TimelineDate, custom_year: int) -> str:
    parts: list[str] = []
    if date.custom_day:
        parts.append(date.custom_day)
    if date.custom_month:
        parts.append(date.custom_month)
    parts.append(f"Year {custom_year}")
    if date.custom_era:
        parts.append(f"of {date.custom_era}")
    return " ".join(parts)


def format_date(date: TimelineDate) -> str:
    """Render ``date`` for humans.

    >>> from chronology.core.contracts.dates import DayDate
    >>> format_date(DayDate(year=1920, month=4, day=3, is_approximate=True))
    '~3 April 1920'
    """
    if date.display_text:
        return date.display_text

    if date.year is not None:
        formatted = _format_standard(date, date.year)
    elif date.custom_year is not None:
        formatted = _format_custom(date, date.custom_year)
    elif isinstance(date, RelativeDate) and date.relative_description:
        formatted = date.relative_description
    else:
        return "Unknown date"

    return f"~{formatted}" if date.is_approximate else formatted


__all__ = [
    "CUSTOM_YEAR_DAYS",
    "CalendarViolation",
    "EQUAL_TOLERANCE_DAYS",
    "MONTH_NAMES",
    "Ordering",
    "calculate_duration",
    "compare_dates",
    "date_to_days",
    "days_in_month",
    "find_calendar_violation",
    "format_date",
    "is_placeable",
    "is_valid_calendar_date",
    "month_name",
]
