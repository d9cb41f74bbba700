"""
Recurrence rule parsing for recurring shift patterns.

Only the subset of RFC 5545 used for staff patterns is supported:

    FREQ=DAILY
    FREQ=WEEKLY;BYDAY=MO,WE,FR

Two entry points are provided. ``parse_rrule`` is strict and is used when a
pattern is created or edited, so bad rules are rejected at the boundary.
``parse_rrule_lenient`` never raises and returns an inert rule instead; the
occurrence expander uses it so that a malformed row already in the database
produces no occurrences rather than an error.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from ..enums.scheduling_enums import RecurrenceFrequency

logger = logging.getLogger(__name__)

# RFC 5545 day codes mapped to date.weekday() numbers
WEEKDAY_CODES = {
    "MO": 0,
    "TU": 1,
    "WE": 2,
    "TH": 3,
    "FR": 4,
    "SA": 5,
    "SU": 6,
}


class RecurrenceRuleError(ValueError):
    """Raised by the strict parser for an unsupported or malformed rule"""


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Optional[RecurrenceFrequency]
    weekdays: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_inert(self) -> bool:
        """An inert rule never fires on any date."""
        if self.frequency is None:
            return True
        return self.frequency == RecurrenceFrequency.WEEKLY and not self.weekdays

    def fires_on(self, weekday: int) -> bool:
        if self.frequency == RecurrenceFrequency.DAILY:
            return True
        if self.frequency == RecurrenceFrequency.WEEKLY:
            return weekday in self.weekdays
        return False

    def to_string(self) -> str:
        """Canonical form, BYDAY codes in Monday-first order."""
        if self.frequency is None:
            return ""
        if self.frequency == RecurrenceFrequency.DAILY:
            return "FREQ=DAILY"
        codes = [code for code, number in WEEKDAY_CODES.items() if number in self.weekdays]
        if not codes:
            return "FREQ=WEEKLY"
        return f"FREQ=WEEKLY;BYDAY={','.join(codes)}"


INERT_RULE = RecurrenceRule(frequency=None)


def _split_parts(rrule: str) -> dict:
    parts = {}
    for part in rrule.strip().split(";"):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise RecurrenceRuleError(f"Malformed rule segment '{part}'")
        parts[key.strip().upper()] = value.strip().upper()
    return parts


def parse_rrule(rrule: Optional[str]) -> RecurrenceRule:
    """
    Parse a recurrence rule string.

    Raises:
        RecurrenceRuleError: if FREQ is missing, the frequency is not DAILY
            or WEEKLY, or BYDAY contains an unknown day code
    """
    if not rrule or not rrule.strip():
        raise RecurrenceRuleError("Recurrence rule is required")

    parts = _split_parts(rrule)

    if "FREQ" not in parts:
        raise RecurrenceRuleError("Recurrence rule must contain FREQ=")

    try:
        frequency = RecurrenceFrequency(parts["FREQ"])
    except ValueError:
        raise RecurrenceRuleError(
            f"Unsupported frequency '{parts['FREQ']}' (expected DAILY or WEEKLY)"
        )

    weekdays = set()
    byday = parts.get("BYDAY", "")
    for code in byday.split(","):
        code = code.strip()
        if not code:
            continue
        if code not in WEEKDAY_CODES:
            raise RecurrenceRuleError(f"Unknown BYDAY code '{code}'")
        weekdays.add(WEEKDAY_CODES[code])

    return RecurrenceRule(frequency=frequency, weekdays=frozenset(weekdays))


def parse_rrule_lenient(rrule: Optional[str]) -> RecurrenceRule:
    """Parse a rule, returning an inert rule (and logging) when it is invalid."""
    try:
        return parse_rrule(rrule)
    except RecurrenceRuleError as e:
        logger.debug(f"Ignoring unparseable recurrence rule '{rrule}': {e}")
        return INERT_RULE
