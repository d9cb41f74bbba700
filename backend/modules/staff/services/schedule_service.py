# backend/modules/staff/services/schedule_service.py

from typing import List, Optional
from datetime import date
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
import logging

from core.config import get_settings
from ..models.scheduling_models import Shift, RecurringShiftPattern
from ..models.staff_models import StaffMember
from ..enums.scheduling_enums import ShiftStatus
from ..schemas.scheduling_schemas import (
    ShiftCreate,
    ShiftUpdate,
    BulkShiftCreate,
    RecurringShiftPatternCreate,
    RecurringShiftPatternUpdate,
    OccurrenceOverrideCreate,
)
from ..exceptions.staff_exceptions import (
    ResourceNotFoundException,
    OperationNotPermittedException,
)
from .conflict_service import ConflictService, enforce_conflict_policy
from .occurrence_expander import occurs_on
from .occurrence_service import validate_date_range

logger = logging.getLogger(__name__)


class ScheduleService:
    """Shift and recurring pattern operations for a business"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.conflict_service = ConflictService(db, self.settings.week_start_day)

    # Shifts

    def list_shifts(
        self,
        business_id: int,
        start_date: date,
        end_date: date,
        staff_member_id: Optional[int] = None,
        location_id: Optional[int] = None,
    ) -> List[Shift]:
        """Persisted shifts in a date range, ordered by date and start time"""
        validate_date_range(start_date, end_date)

        query = self.db.query(Shift).options(joinedload(Shift.staff_member)).filter(
            and_(
                Shift.business_id == business_id,
                Shift.date >= start_date,
                Shift.date <= end_date,
            )
        )
        if staff_member_id is not None:
            query = query.filter(Shift.staff_member_id == staff_member_id)
        if location_id is not None:
            query = query.filter(Shift.location_id == location_id)

        return query.order_by(Shift.date, Shift.start_time, Shift.id).all()

    def get_shift(self, business_id: int, shift_id: int) -> Shift:
        shift = self.db.query(Shift).filter(
            and_(Shift.id == shift_id, Shift.business_id == business_id)
        ).first()
        if not shift:
            raise ResourceNotFoundException("Shift", shift_id)
        return shift

    def create_shift(self, business_id: int, shift_data: ShiftCreate, force: bool = False) -> Shift:
        """Create a one-off shift after the conflict policy has passed"""
        self._get_staff_member(business_id, shift_data.staff_member_id)

        try:
            self._serialize_writes_for(business_id, shift_data.staff_member_id)

            conflicts = self.conflict_service.check_conflicts(
                business_id,
                shift_data.staff_member_id,
                shift_data.date,
                shift_data.start_time,
                shift_data.end_time,
                shift_data.location_id,
            )
            enforce_conflict_policy(conflicts, force)

            shift = self._build_shift(business_id, shift_data)
            self.db.add(shift)
            self.db.commit()
            self.db.refresh(shift)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating shift for staff member {shift_data.staff_member_id}: {str(e)}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Created shift {shift.id} for staff member {shift.staff_member_id} on {shift.date}"
        )
        return shift

    def bulk_create_shifts(
        self, business_id: int, bulk_data: BulkShiftCreate, force: bool = False
    ) -> List[Shift]:
        """Create several shifts in one transaction; conflicts are pooled first"""
        for staff_member_id in {s.staff_member_id for s in bulk_data.shifts}:
            self._get_staff_member(business_id, staff_member_id)

        try:
            for staff_member_id in sorted({s.staff_member_id for s in bulk_data.shifts}):
                self._serialize_writes_for(business_id, staff_member_id)

            conflicts = self.conflict_service.check_bulk_conflicts(business_id, bulk_data.shifts)
            enforce_conflict_policy(conflicts, force)

            shifts = [self._build_shift(business_id, data) for data in bulk_data.shifts]
            self.db.add_all(shifts)
            self.db.commit()
            for shift in shifts:
                self.db.refresh(shift)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error bulk creating {len(bulk_data.shifts)} shifts: {str(e)}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Bulk created {len(shifts)} shifts for business {business_id}")
        return shifts

    def update_shift(
        self, business_id: int, shift_id: int, update_data: ShiftUpdate, force: bool = False
    ) -> Shift:
        """Update a shift, re-checking conflicts when its slot moves"""
        shift = self.get_shift(business_id, shift_id)
        changes = update_data.model_dump(exclude_unset=True)

        # Explicit nulls are only meaningful for the optional columns
        for field in ("date", "start_time", "end_time", "shift_type", "status"):
            if field in changes and changes[field] is None:
                del changes[field]

        new_date = changes.get("date", shift.date)
        new_start = changes.get("start_time", shift.start_time)
        new_end = changes.get("end_time", shift.end_time)
        new_location = changes.get("location_id", shift.location_id)

        if new_end <= new_start:
            raise OperationNotPermittedException("End time must be after start time")

        moved = (
            new_date != shift.date
            or new_start != shift.start_time
            or new_end != shift.end_time
            or new_location != shift.location_id
        )

        try:
            if moved:
                self._serialize_writes_for(business_id, shift.staff_member_id)
                conflicts = self.conflict_service.check_conflicts(
                    business_id,
                    shift.staff_member_id,
                    new_date,
                    new_start,
                    new_end,
                    new_location,
                    exclude_shift_id=shift.id,
                )
                enforce_conflict_policy(conflicts, force)

            for field, value in changes.items():
                setattr(shift, field, value)

            self.db.commit()
            self.db.refresh(shift)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating shift {shift_id}: {str(e)}")
            raise
        except Exception:
            self.db.rollback()
            raise

        return shift

    def delete_shift(self, business_id: int, shift_id: int) -> None:
        shift = self.get_shift(business_id, shift_id)

        if shift.status == ShiftStatus.COMPLETED:
            raise OperationNotPermittedException("Completed shifts cannot be deleted")

        try:
            self.db.delete(shift)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting shift {shift_id}: {str(e)}")
            raise

        logger.info(f"Deleted shift {shift_id} from business {business_id}")

    # Recurring patterns

    def list_patterns(
        self,
        business_id: int,
        staff_member_id: Optional[int] = None,
        active_only: bool = False,
    ) -> List[RecurringShiftPattern]:
        query = self.db.query(RecurringShiftPattern).options(
            joinedload(RecurringShiftPattern.staff_member)
        ).filter(RecurringShiftPattern.business_id == business_id)

        if staff_member_id is not None:
            query = query.filter(RecurringShiftPattern.staff_member_id == staff_member_id)
        if active_only:
            query = query.filter(RecurringShiftPattern.is_active.is_(True))

        return query.order_by(RecurringShiftPattern.pattern_start, RecurringShiftPattern.id).all()

    def get_pattern(self, business_id: int, pattern_id: int) -> RecurringShiftPattern:
        pattern = self.db.query(RecurringShiftPattern).filter(
            and_(
                RecurringShiftPattern.id == pattern_id,
                RecurringShiftPattern.business_id == business_id,
            )
        ).first()
        if not pattern:
            raise ResourceNotFoundException("Recurring shift pattern", pattern_id)
        return pattern

    def create_pattern(
        self, business_id: int, pattern_data: RecurringShiftPatternCreate
    ) -> RecurringShiftPattern:
        self._get_staff_member(business_id, pattern_data.staff_member_id)

        pattern = RecurringShiftPattern(
            business_id=business_id,
            is_active=True,
            **pattern_data.model_dump(),
        )

        try:
            self.db.add(pattern)
            self.db.commit()
            self.db.refresh(pattern)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating recurring pattern: {str(e)}")
            raise

        logger.info(
            f"Created recurring pattern {pattern.id} ({pattern.rrule}) "
            f"for staff member {pattern.staff_member_id}"
        )
        return pattern

    def update_pattern(
        self, business_id: int, pattern_id: int, update_data: RecurringShiftPatternUpdate
    ) -> RecurringShiftPattern:
        pattern = self.get_pattern(business_id, pattern_id)
        changes = update_data.model_dump(exclude_unset=True)

        for field in ("rrule", "start_time", "end_time", "shift_type", "is_active"):
            if field in changes and changes[field] is None:
                del changes[field]

        new_start = changes.get("start_time", pattern.start_time)
        new_end = changes.get("end_time", pattern.end_time)
        if new_end <= new_start:
            raise OperationNotPermittedException("End time must be after start time")

        new_pattern_end = changes.get("pattern_end", pattern.pattern_end)
        if new_pattern_end is not None and new_pattern_end < pattern.pattern_start:
            raise OperationNotPermittedException("Pattern end must be on or after pattern start")

        try:
            for field, value in changes.items():
                setattr(pattern, field, value)
            self.db.commit()
            self.db.refresh(pattern)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating recurring pattern {pattern_id}: {str(e)}")
            raise

        return pattern

    def delete_pattern(self, business_id: int, pattern_id: int) -> None:
        """Stop future generation; materialized shifts are kept as one-offs"""
        pattern = self.get_pattern(business_id, pattern_id)

        try:
            detached = self.db.query(Shift).filter(Shift.pattern_id == pattern.id).update(
                {Shift.pattern_id: None}, synchronize_session=False
            )
            self.db.delete(pattern)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting recurring pattern {pattern_id}: {str(e)}")
            raise

        logger.info(
            f"Deleted recurring pattern {pattern_id}; {detached} materialized shift(s) kept"
        )

    def materialize_occurrence(
        self,
        business_id: int,
        pattern_id: int,
        override_data: OccurrenceOverrideCreate,
        force: bool = False,
    ) -> Shift:
        """
        Persist one day of a pattern as an override shift.

        The override replaces the pattern's virtual occurrence on that date in
        the occurrence feed. Fields omitted from the request are copied from
        the pattern.
        """
        pattern = self.get_pattern(business_id, pattern_id)

        if not pattern.is_active:
            raise OperationNotPermittedException("Inactive patterns cannot be overridden")

        if not occurs_on(pattern, override_data.date):
            raise OperationNotPermittedException(
                f"Pattern {pattern_id} does not generate a shift on {override_data.date}"
            )

        existing = self.db.query(Shift.id).filter(
            and_(
                Shift.pattern_id == pattern.id,
                Shift.date == override_data.date,
                Shift.is_override.is_(True),
            )
        ).first()
        if existing:
            raise OperationNotPermittedException(
                f"An override already exists for pattern {pattern_id} on {override_data.date}"
            )

        fields = override_data.model_dump(exclude_unset=True)
        start_time = fields.get("start_time") or pattern.start_time
        end_time = fields.get("end_time") or pattern.end_time
        location_id = fields["location_id"] if "location_id" in fields else pattern.location_id

        if end_time <= start_time:
            raise OperationNotPermittedException("End time must be after start time")

        try:
            self._serialize_writes_for(business_id, pattern.staff_member_id)

            conflicts = self.conflict_service.check_conflicts(
                business_id,
                pattern.staff_member_id,
                override_data.date,
                start_time,
                end_time,
                location_id,
            )
            enforce_conflict_policy(conflicts, force)

            shift = Shift(
                business_id=business_id,
                staff_member_id=pattern.staff_member_id,
                date=override_data.date,
                start_time=start_time,
                end_time=end_time,
                shift_type=fields.get("shift_type") or pattern.shift_type,
                status=ShiftStatus.SCHEDULED,
                location_id=location_id,
                notes=fields["notes"] if "notes" in fields else pattern.notes,
                pattern_id=pattern.id,
                is_override=True,
            )
            self.db.add(shift)
            self.db.commit()
            self.db.refresh(shift)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error materializing pattern {pattern_id} on {override_data.date}: {str(e)}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Materialized pattern {pattern_id} on {override_data.date} as shift {shift.id}")
        return shift

    # Helpers

    def _get_staff_member(self, business_id: int, staff_member_id: int) -> StaffMember:
        staff = self.db.query(StaffMember).filter(
            and_(
                StaffMember.id == staff_member_id,
                StaffMember.business_id == business_id,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", staff_member_id)
        return staff

    def _serialize_writes_for(self, business_id: int, staff_member_id: int) -> None:
        """Lock the staff row so check-then-create runs serially (opt-in)"""
        if not self.settings.serialize_shift_writes:
            return
        self.db.query(StaffMember).filter(
            and_(StaffMember.id == staff_member_id, StaffMember.business_id == business_id)
        ).with_for_update().first()

    @staticmethod
    def _build_shift(business_id: int, shift_data: ShiftCreate) -> Shift:
        return Shift(
            business_id=business_id,
            staff_member_id=shift_data.staff_member_id,
            date=shift_data.date,
            start_time=shift_data.start_time,
            end_time=shift_data.end_time,
            shift_type=shift_data.shift_type,
            status=ShiftStatus.SCHEDULED,
            location_id=shift_data.location_id,
            notes=shift_data.notes,
            is_override=False,
        )
