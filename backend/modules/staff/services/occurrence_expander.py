"""
Expansion of recurring shift patterns into concrete occurrences.

The expander is pure: it reads nothing from the database beyond the pattern
row it is handed, and it never raises for a bad rule. A pattern whose rule
cannot be understood simply produces no occurrences (and a log warning).
"""

import logging
from datetime import date
from typing import Iterator, Optional

from ..models.scheduling_models import RecurringShiftPattern
from ..schemas.scheduling_schemas import VirtualOccurrence
from ..utils.hours_calculator import iter_dates
from ..utils.recurrence import RecurrenceRule, parse_rrule_lenient

logger = logging.getLogger(__name__)


def effective_range(
    pattern: RecurringShiftPattern, query_start: date, query_end: date
) -> Optional[tuple]:
    """
    Intersect the query window with the pattern's validity window.

    Returns:
        (start, end) inclusive, or None when the intersection is empty
    """
    start = max(query_start, pattern.pattern_start)
    end = min(query_end, pattern.pattern_end or query_end)
    if start > end:
        return None
    return start, end


def expand_dates(
    rule: RecurrenceRule, start_date: date, end_date: date
) -> Iterator[date]:
    """Yield the dates in [start_date, end_date] on which the rule fires."""
    if rule.is_inert:
        return
    for current in iter_dates(start_date, end_date):
        if rule.fires_on(current.weekday()):
            yield current


def expand_pattern(
    pattern: RecurringShiftPattern,
    query_start: date,
    query_end: date,
    staff_member_name: Optional[str] = None,
) -> Iterator[VirtualOccurrence]:
    """
    Lazily generate the virtual occurrences of a pattern inside a query window.

    Args:
        pattern: Pattern row; its is_active flag is the caller's concern
        query_start: First date of the window (inclusive)
        query_end: Last date of the window (inclusive)
        staff_member_name: Display name to stamp on each occurrence, looked
            up from the pattern's staff member when omitted

    Yields:
        VirtualOccurrence objects in date order
    """
    window = effective_range(pattern, query_start, query_end)
    if window is None:
        return

    rule = parse_rrule_lenient(pattern.rrule)
    if rule.frequency is None:
        logger.warning(
            f"Pattern {pattern.id} has an unsupported rule '{pattern.rrule}'; "
            f"no occurrences generated"
        )
        return

    if staff_member_name is None:
        staff_member_name = pattern.staff_member_name

    for occurrence_date in expand_dates(rule, window[0], window[1]):
        yield VirtualOccurrence(
            staff_member_id=pattern.staff_member_id,
            staff_member_name=staff_member_name,
            date=occurrence_date,
            start_time=pattern.start_time,
            end_time=pattern.end_time,
            shift_type=pattern.shift_type,
            location_id=pattern.location_id,
            notes=pattern.notes,
            pattern_id=pattern.id,
        )


def occurs_on(pattern: RecurringShiftPattern, target_date: date) -> bool:
    """Check whether a pattern fires on a single date."""
    return next(expand_dates_for(pattern, target_date, target_date), None) is not None


def expand_dates_for(
    pattern: RecurringShiftPattern, query_start: date, query_end: date
) -> Iterator[date]:
    """Dates only variant of expand_pattern."""
    window = effective_range(pattern, query_start, query_end)
    if window is None:
        return iter(())
    return expand_dates(parse_rrule_lenient(pattern.rrule), window[0], window[1])
