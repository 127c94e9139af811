"""Calendar arithmetic for leave ranges.

All ranges are inclusive: a leave from Monday to Wednesday is three days and
occupies Monday, Tuesday and Wednesday.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime]


def as_calendar_date(value: DateLike) -> date:
    """Drop the time-of-day component, if any."""
    if isinstance(value, datetime):
        return value.date()
    return value


def inclusive_day_span(start: DateLike, end: DateLike) -> int:
    """Number of calendar days in ``[start, end]``, counting both endpoints.

    Raises:
        ValueError: if *end* falls before *start*.
    """
    start_day = as_calendar_date(start)
    end_day = as_calendar_date(end)
    if end_day < start_day:
        raise ValueError(
            f"end date {end_day.isoformat()} is before start date {start_day.isoformat()}"
        )
    return (end_day - start_day).days + 1


def intervals_overlap(
    a_start: DateLike,
    a_end: DateLike,
    b_start: DateLike,
    b_end: DateLike,
) -> bool:
    """True if the inclusive ranges share at least one calendar day.

    Symmetric in its two ranges; ranges touching at an endpoint overlap.
    """
    return (
        as_calendar_date(a_start) <= as_calendar_date(b_end)
        and as_calendar_date(b_start) <= as_calendar_date(a_end)
    )
