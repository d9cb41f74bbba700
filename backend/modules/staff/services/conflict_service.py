from sqlalchemy.orm import Session
from sqlalchemy import and_
from datetime import date, time
from typing import Iterable, List, Optional, Sequence
import logging

from core.config import get_settings
from ..models.scheduling_models import Shift
from ..enums.scheduling_enums import ConflictType, ConflictSeverity
from ..schemas.scheduling_schemas import ShiftConflict
from ..exceptions.staff_exceptions import ShiftConflictException
from ..utils.hours_calculator import shift_hours, week_bounds


logger = logging.getLogger(__name__)

WEEKLY_HOURS_THRESHOLD = 40.0


class ConflictService:
    """
    Evaluates a candidate shift against a staff member's existing shifts.

    The service only reports; whether a conflict blocks a write is decided by
    ``enforce_conflict_policy``.
    """

    def __init__(self, db: Session, week_start_day: Optional[int] = None):
        self.db = db
        if week_start_day is None:
            week_start_day = get_settings().week_start_day
        self.week_start_day = week_start_day

    def check_conflicts(
        self,
        business_id: int,
        staff_member_id: int,
        shift_date: date,
        start_time: time,
        end_time: time,
        location_id: Optional[int] = None,
        exclude_shift_id: Optional[int] = None,
        pending: Sequence = (),
    ) -> List[ShiftConflict]:
        """
        Detect overlap, cross-location and weekly overtime conflicts.

        ``pending`` holds not-yet-saved candidates (same shape as the bulk
        candidates) that count as already scheduled.
        """
        conflicts: List[ShiftConflict] = []
        pending = [p for p in pending if p.staff_member_id == staff_member_id]

        # Half-open overlap: touching shifts are fine
        overlap_query = self.db.query(Shift).filter(
            and_(
                Shift.business_id == business_id,
                Shift.staff_member_id == staff_member_id,
                Shift.date == shift_date,
                Shift.start_time < end_time,
                Shift.end_time > start_time,
            )
        )
        if exclude_shift_id is not None:
            overlap_query = overlap_query.filter(Shift.id != exclude_shift_id)

        overlapping = overlap_query.all()
        overlapping.extend(
            p for p in pending
            if p.date == shift_date and p.start_time < end_time and p.end_time > start_time
        )
        if overlapping:
            conflicts.extend(self._classify_overlaps(overlapping, location_id))

        overtime = self._check_weekly_hours(
            business_id, staff_member_id, shift_date, start_time, end_time, exclude_shift_id, pending
        )
        if overtime:
            conflicts.append(overtime)

        if conflicts:
            logger.info(
                f"Staff member {staff_member_id} has {len(conflicts)} conflict(s) "
                f"for {shift_date} {start_time:%H:%M}-{end_time:%H:%M}"
            )
        return conflicts

    def check_bulk_conflicts(self, business_id: int, candidates: Iterable) -> List[ShiftConflict]:
        """
        Check many candidate shifts and return one de-duplicated list.

        Candidates are objects exposing staff_member_id, date, start_time,
        end_time and location_id (e.g. ShiftCreate). Each candidate is also
        checked against the candidates before it in the batch. Duplicates are
        judged by (type, message) and the first occurrence wins.
        """
        seen = set()
        merged: List[ShiftConflict] = []
        earlier: List = []
        for candidate in candidates:
            for conflict in self.check_conflicts(
                business_id,
                candidate.staff_member_id,
                candidate.date,
                candidate.start_time,
                candidate.end_time,
                candidate.location_id,
                pending=earlier,
            ):
                key = (conflict.type, conflict.message)
                if key in seen:
                    continue
                seen.add(key)
                merged.append(conflict)
            earlier.append(candidate)
        return merged

    def _classify_overlaps(
        self, overlapping: List[Shift], location_id: Optional[int]
    ) -> List[ShiftConflict]:
        if location_id is None:
            return [
                ShiftConflict(
                    type=ConflictType.OVERLAP,
                    message=f"Staff member has {len(overlapping)} overlapping shift(s) on this date",
                    severity=ConflictSeverity.ERROR,
                )
            ]

        conflicts = []
        same_location = [s for s in overlapping if s.location_id == location_id]
        other_location = [
            s for s in overlapping
            if s.location_id is not None and s.location_id != location_id
        ]
        no_location = [s for s in overlapping if s.location_id is None]

        if same_location:
            conflicts.append(ShiftConflict(
                type=ConflictType.OVERLAP,
                message=(
                    f"Staff member has {len(same_location)} overlapping shift(s) "
                    f"on this date at the same location"
                ),
                severity=ConflictSeverity.ERROR,
            ))

        if other_location:
            conflicts.append(ShiftConflict(
                type=ConflictType.LOCATION_CONFLICT,
                message=(
                    f"Staff member is already scheduled at another location during "
                    f"this time ({len(other_location)} conflicting shift(s))"
                ),
                severity=ConflictSeverity.WARNING,
            ))

        if no_location and not same_location:
            conflicts.append(ShiftConflict(
                type=ConflictType.OVERLAP,
                message=f"Staff member has {len(no_location)} overlapping shift(s) on this date",
                severity=ConflictSeverity.ERROR,
            ))

        return conflicts

    def _check_weekly_hours(
        self,
        business_id: int,
        staff_member_id: int,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_shift_id: Optional[int],
        pending: Sequence = (),
    ) -> Optional[ShiftConflict]:
        week_start, week_end = week_bounds(shift_date, self.week_start_day)

        query = self.db.query(Shift.start_time, Shift.end_time).filter(
            and_(
                Shift.business_id == business_id,
                Shift.staff_member_id == staff_member_id,
                Shift.date >= week_start,
                Shift.date <= week_end,
            )
        )
        if exclude_shift_id is not None:
            query = query.filter(Shift.id != exclude_shift_id)

        scheduled_hours = sum(shift_hours(start, end) for start, end in query.all())
        scheduled_hours += sum(
            shift_hours(p.start_time, p.end_time)
            for p in pending
            if week_start <= p.date <= week_end
        )
        total_hours = scheduled_hours + shift_hours(start_time, end_time)

        if total_hours > WEEKLY_HOURS_THRESHOLD:
            return ShiftConflict(
                type=ConflictType.OVERTIME,
                message=(
                    f"Weekly hours ({total_hours:.1f}h) would exceed "
                    f"{WEEKLY_HOURS_THRESHOLD:g}h threshold"
                ),
                severity=ConflictSeverity.WARNING,
            )
        return None


def has_errors(conflicts: List[ShiftConflict]) -> bool:
    return any(c.severity == ConflictSeverity.ERROR for c in conflicts)


def has_warnings(conflicts: List[ShiftConflict]) -> bool:
    return any(c.severity == ConflictSeverity.WARNING for c in conflicts)


def enforce_conflict_policy(conflicts: List[ShiftConflict], force: bool = False) -> None:
    """
    Apply the blocking policy to a conflict list.

    Errors always block. Warnings block unless ``force`` is set.

    Raises:
        ShiftConflictException: carrying the full conflict list
    """
    if has_errors(conflicts):
        raise ShiftConflictException(conflicts)
    if has_warnings(conflicts) and not force:
        raise ShiftConflictException(conflicts)
    if conflicts:
        logger.warning(
            f"Proceeding past {len(conflicts)} warning(s) with force flag: "
            f"{'; '.join(c.message for c in conflicts)}"
        )
