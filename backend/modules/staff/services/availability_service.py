from sqlalchemy.orm import Session
from sqlalchemy import and_
from datetime import date, time
from typing import List
import logging

from ..models.staff_models import StaffMember
from ..models.time_off_models import TimeOffRequest
from ..enums.scheduling_enums import AvailabilityKind
from ..enums.time_off_enums import TimeOffStatus
from ..schemas.scheduling_schemas import AvailabilitySlot
from ..exceptions.staff_exceptions import ResourceNotFoundException
from ..utils.hours_calculator import iter_dates
from .occurrence_service import OccurrenceService, validate_date_range


logger = logging.getLogger(__name__)


def slot_sort_key(slot: AvailabilitySlot) -> tuple:
    # All-day slots first within a date, then by start time
    return (slot.date, not slot.all_day, slot.start_time or time.min)


class AvailabilityService:
    """Combines a staff member's shifts and approved time-off into one feed"""

    def __init__(self, db: Session):
        self.db = db
        self.occurrence_service = OccurrenceService(db)

    def get_availability(
        self,
        business_id: int,
        staff_member_id: int,
        start_date: date,
        end_date: date,
    ) -> List[AvailabilitySlot]:
        validate_date_range(start_date, end_date)

        staff = self.db.query(StaffMember).filter(
            StaffMember.id == staff_member_id,
            StaffMember.business_id == business_id,
            StaffMember.deleted_at.is_(None),
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", staff_member_id)

        slots: List[AvailabilitySlot] = []

        occurrences = self.occurrence_service.get_occurrences(
            business_id, start_date, end_date, staff_member_id=staff_member_id
        )
        for occurrence in occurrences:
            slots.append(AvailabilitySlot(
                date=occurrence.date,
                start_time=occurrence.start_time,
                end_time=occurrence.end_time,
                all_day=False,
                kind=AvailabilityKind.SHIFT,
                source_id=occurrence.shift_id if occurrence.source == "shift" else occurrence.pattern_id,
            ))

        for request in self._approved_time_off(business_id, staff_member_id, start_date, end_date):
            first_day = max(request.start_date, start_date)
            last_day = min(request.end_date, end_date)
            for day in iter_dates(first_day, last_day):
                if request.is_all_day:
                    slots.append(AvailabilitySlot(
                        date=day,
                        all_day=True,
                        kind=AvailabilityKind.TIME_OFF,
                        source_id=request.id,
                    ))
                else:
                    slots.append(AvailabilitySlot(
                        date=day,
                        start_time=request.start_time,
                        end_time=request.end_time,
                        all_day=False,
                        kind=AvailabilityKind.TIME_OFF,
                        source_id=request.id,
                    ))

        slots.sort(key=slot_sort_key)
        return slots

    def _approved_time_off(
        self, business_id: int, staff_member_id: int, start_date: date, end_date: date
    ) -> List[TimeOffRequest]:
        return self.db.query(TimeOffRequest).filter(
            and_(
                TimeOffRequest.business_id == business_id,
                TimeOffRequest.staff_member_id == staff_member_id,
                TimeOffRequest.status == TimeOffStatus.APPROVED,
                TimeOffRequest.start_date <= end_date,
                TimeOffRequest.end_date >= start_date,
            )
        ).order_by(TimeOffRequest.start_date).all()
