"""
Hours and calendar helpers shared by the scheduling services.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Tuple


def shift_hours(start_time: time, end_time: time) -> float:
    """Length of a same-day shift in hours."""
    start = datetime.combine(date.min, start_time)
    end = datetime.combine(date.min, end_time)
    return (end - start).total_seconds() / 3600


def week_bounds(reference_date: date, week_start_day: int) -> Tuple[date, date]:
    """
    Return the inclusive (first, last) dates of the week containing
    ``reference_date``.

    Args:
        reference_date: Any date inside the week
        week_start_day: First day of the week in ``date.weekday()`` numbering
            (0=Monday ... 6=Sunday)
    """
    offset = (reference_date.weekday() - week_start_day) % 7
    week_start = reference_date - timedelta(days=offset)
    return week_start, week_start + timedelta(days=6)


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every date from start_date to end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def times_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap; touching intervals do not overlap."""
    return start_a < end_b and end_a > start_b
