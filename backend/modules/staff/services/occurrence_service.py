from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, or_
from datetime import date
from typing import List, Optional, Set, Tuple
import logging

from core.config import get_settings
from ..models.scheduling_models import Shift, RecurringShiftPattern
from ..schemas.scheduling_schemas import PersistedOccurrence, ShiftOccurrence
from ..exceptions.staff_exceptions import OperationNotPermittedException
from .occurrence_expander import expand_pattern


logger = logging.getLogger(__name__)


def occurrence_sort_key(occurrence) -> tuple:
    # Persisted shifts sort ahead of virtual occurrences on ties
    return (
        occurrence.date,
        occurrence.start_time,
        0 if occurrence.source == "shift" else 1,
    )


def validate_date_range(start_date: date, end_date: date, limit_range: bool = True) -> None:
    """Reject inverted or oversized query windows."""
    if end_date < start_date:
        raise OperationNotPermittedException("Start date must be on or before end date")
    if not limit_range:
        return

    max_days = get_settings().max_query_range_days
    if (end_date - start_date).days + 1 > max_days:
        raise OperationNotPermittedException(
            f"Date range cannot exceed {max_days} days"
        )


class OccurrenceService:
    """Unified shift feed: one-off shifts plus expanded recurring patterns"""

    def __init__(self, db: Session):
        self.db = db

    def get_occurrences(
        self,
        business_id: int,
        start_date: date,
        end_date: date,
        staff_member_id: Optional[int] = None,
        location_id: Optional[int] = None,
        limit_range: bool = True,
    ) -> List[ShiftOccurrence]:
        """
        Merge persisted shifts and virtual pattern occurrences for a window.

        A persisted override shift suppresses its pattern's occurrence on the
        same date, even when the override was moved to another location.
        Nothing is written. Internal callers that pass ``limit_range=False``
        may ask for windows longer than ``max_query_range_days``.
        """
        validate_date_range(start_date, end_date, limit_range)

        occurrences: List[ShiftOccurrence] = [
            self._to_occurrence(shift)
            for shift in self._persisted_shifts(
                business_id, start_date, end_date, staff_member_id, location_id
            )
        ]

        overridden = self._override_keys(business_id, start_date, end_date, staff_member_id)

        patterns = self._active_patterns(
            business_id, start_date, end_date, staff_member_id, location_id
        )
        for pattern in patterns:
            for occurrence in expand_pattern(pattern, start_date, end_date):
                if (pattern.id, occurrence.date) in overridden:
                    continue
                occurrences.append(occurrence)

        occurrences.sort(key=occurrence_sort_key)

        logger.debug(
            f"Merged {len(occurrences)} occurrences for business {business_id} "
            f"({start_date} to {end_date}, {len(patterns)} patterns)"
        )
        return occurrences

    def _persisted_shifts(
        self,
        business_id: int,
        start_date: date,
        end_date: date,
        staff_member_id: Optional[int],
        location_id: Optional[int],
    ) -> List[Shift]:
        query = self.db.query(Shift).options(joinedload(Shift.staff_member)).filter(
            and_(
                Shift.business_id == business_id,
                Shift.date >= start_date,
                Shift.date <= end_date,
                or_(Shift.pattern_id.is_(None), Shift.is_override.is_(True)),
            )
        )
        if staff_member_id is not None:
            query = query.filter(Shift.staff_member_id == staff_member_id)
        if location_id is not None:
            query = query.filter(Shift.location_id == location_id)
        return query.all()

    def _override_keys(
        self,
        business_id: int,
        start_date: date,
        end_date: date,
        staff_member_id: Optional[int],
    ) -> Set[Tuple[int, date]]:
        # Not filtered by location: a moved override still hides the original day
        query = self.db.query(Shift.pattern_id, Shift.date).filter(
            and_(
                Shift.business_id == business_id,
                Shift.is_override.is_(True),
                Shift.pattern_id.isnot(None),
                Shift.date >= start_date,
                Shift.date <= end_date,
            )
        )
        if staff_member_id is not None:
            query = query.filter(Shift.staff_member_id == staff_member_id)
        return {(pattern_id, shift_date) for pattern_id, shift_date in query.all()}

    def _active_patterns(
        self,
        business_id: int,
        start_date: date,
        end_date: date,
        staff_member_id: Optional[int],
        location_id: Optional[int],
    ) -> List[RecurringShiftPattern]:
        query = self.db.query(RecurringShiftPattern).options(
            joinedload(RecurringShiftPattern.staff_member)
        ).filter(
            and_(
                RecurringShiftPattern.business_id == business_id,
                RecurringShiftPattern.is_active.is_(True),
                RecurringShiftPattern.pattern_start <= end_date,
                or_(
                    RecurringShiftPattern.pattern_end.is_(None),
                    RecurringShiftPattern.pattern_end >= start_date,
                ),
            )
        )
        if staff_member_id is not None:
            query = query.filter(RecurringShiftPattern.staff_member_id == staff_member_id)
        if location_id is not None:
            query = query.filter(RecurringShiftPattern.location_id == location_id)
        return query.order_by(RecurringShiftPattern.id).all()

    @staticmethod
    def _to_occurrence(shift: Shift) -> PersistedOccurrence:
        return PersistedOccurrence(
            staff_member_id=shift.staff_member_id,
            staff_member_name=shift.staff_member_name,
            date=shift.date,
            start_time=shift.start_time,
            end_time=shift.end_time,
            shift_type=shift.shift_type,
            location_id=shift.location_id,
            notes=shift.notes,
            shift_id=shift.id,
            status=shift.status,
            is_override=shift.is_override,
        )
