from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from ..models.staff_models import StaffMember
from ..models.time_off_models import TimeOffType, TimeOffRequest
from ..enums.time_off_enums import TimeOffStatus
from ..enums.scheduling_enums import ShiftStatus
from ..schemas.time_off_schemas import (
    TimeOffTypeCreate,
    TimeOffTypeUpdate,
    TimeOffRequestCreate,
    TimeOffDecision,
)
from ..schemas.scheduling_schemas import ShiftOccurrence
from ..exceptions.staff_exceptions import (
    ResourceNotFoundException,
    OperationNotPermittedException,
)
from ..utils.hours_calculator import times_overlap
from .occurrence_service import OccurrenceService


logger = logging.getLogger(__name__)

DEFAULT_TYPE_COLOR = "#9E9E9E"

DEFAULT_TIME_OFF_TYPES = [
    ("Vacation", "#4CAF50"),
    ("Sick", "#F44336"),
    ("Personal", "#2196F3"),
]

# Shift statuses that still represent work the staff member is expected at
_COMMITTED_SHIFT_STATUSES = {ShiftStatus.SCHEDULED, ShiftStatus.CONFIRMED}


class TimeOffService:
    """Time-off types and the request approval workflow"""

    def __init__(self, db: Session):
        self.db = db

    # Types

    def ensure_default_types(self, business_id: int) -> None:
        """Seed Vacation, Sick and Personal the first time a business is seen"""
        has_defaults = self.db.query(TimeOffType.id).filter(
            and_(TimeOffType.business_id == business_id, TimeOffType.is_default.is_(True))
        ).first()
        if has_defaults:
            return

        try:
            for name, color in DEFAULT_TIME_OFF_TYPES:
                self.db.add(TimeOffType(
                    business_id=business_id,
                    name=name,
                    color=color,
                    is_default=True,
                    is_active=True,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error seeding time-off types for business {business_id}: {str(e)}")
            raise

        logger.info(f"Seeded default time-off types for business {business_id}")

    def list_types(self, business_id: int, include_inactive: bool = False) -> List[TimeOffType]:
        self.ensure_default_types(business_id)

        query = self.db.query(TimeOffType).filter(TimeOffType.business_id == business_id)
        if not include_inactive:
            query = query.filter(TimeOffType.is_active.is_(True))
        return query.order_by(TimeOffType.name).all()

    def get_type(self, business_id: int, type_id: int) -> TimeOffType:
        time_off_type = self.db.query(TimeOffType).filter(
            and_(TimeOffType.id == type_id, TimeOffType.business_id == business_id)
        ).first()
        if not time_off_type:
            raise ResourceNotFoundException("Time-off type", type_id)
        return time_off_type

    def create_type(self, business_id: int, type_data: TimeOffTypeCreate) -> TimeOffType:
        self._ensure_unique_type_name(business_id, type_data.name)

        time_off_type = TimeOffType(
            business_id=business_id,
            name=type_data.name,
            color=type_data.color or DEFAULT_TYPE_COLOR,
            is_default=False,
            is_active=True,
        )
        try:
            self.db.add(time_off_type)
            self.db.commit()
            self.db.refresh(time_off_type)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating time-off type '{type_data.name}': {str(e)}")
            raise
        return time_off_type

    def update_type(
        self, business_id: int, type_id: int, type_data: TimeOffTypeUpdate
    ) -> TimeOffType:
        time_off_type = self.get_type(business_id, type_id)

        if type_data.name is not None and type_data.name.lower() != time_off_type.name.lower():
            self._ensure_unique_type_name(business_id, type_data.name, exclude_id=type_id)

        try:
            if type_data.name is not None:
                time_off_type.name = type_data.name
            if type_data.color is not None:
                time_off_type.color = type_data.color
            if type_data.is_active is not None:
                time_off_type.is_active = type_data.is_active
            self.db.commit()
            self.db.refresh(time_off_type)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating time-off type {type_id}: {str(e)}")
            raise
        return time_off_type

    def delete_type(self, business_id: int, type_id: int) -> bool:
        """
        Delete a time-off type.

        Types with approved requests cannot be deleted. Types still referenced
        by other requests are deactivated instead.

        Returns:
            True if the row was deleted, False if it was deactivated
        """
        time_off_type = self.get_type(business_id, type_id)

        approved = self.db.query(TimeOffRequest.id).filter(
            and_(
                TimeOffRequest.time_off_type_id == type_id,
                TimeOffRequest.status == TimeOffStatus.APPROVED,
            )
        ).first()
        if approved:
            raise OperationNotPermittedException(
                "Cannot delete time-off type that has active approved requests"
            )

        referenced = self.db.query(TimeOffRequest.id).filter(
            TimeOffRequest.time_off_type_id == type_id
        ).first()

        try:
            if referenced:
                time_off_type.is_active = False
            else:
                self.db.delete(time_off_type)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting time-off type {type_id}: {str(e)}")
            raise

        return not referenced

    def _ensure_unique_type_name(
        self, business_id: int, name: str, exclude_id: Optional[int] = None
    ) -> None:
        query = self.db.query(TimeOffType.id).filter(
            and_(
                TimeOffType.business_id == business_id,
                func.lower(TimeOffType.name) == name.lower(),
            )
        )
        if exclude_id is not None:
            query = query.filter(TimeOffType.id != exclude_id)
        if query.first():
            raise OperationNotPermittedException(f"A time-off type named '{name}' already exists")

    # Requests

    def list_requests(
        self,
        business_id: int,
        staff_member_id: Optional[int] = None,
        status: Optional[TimeOffStatus] = None,
    ) -> List[TimeOffRequest]:
        query = self.db.query(TimeOffRequest).options(
            joinedload(TimeOffRequest.staff_member),
            joinedload(TimeOffRequest.time_off_type),
            joinedload(TimeOffRequest.approved_by),
        ).filter(TimeOffRequest.business_id == business_id)

        if staff_member_id is not None:
            query = query.filter(TimeOffRequest.staff_member_id == staff_member_id)
        if status is not None:
            query = query.filter(TimeOffRequest.status == status)

        return query.order_by(TimeOffRequest.start_date.desc(), TimeOffRequest.id.desc()).all()

    def get_request(self, business_id: int, request_id: int) -> TimeOffRequest:
        request = self.db.query(TimeOffRequest).filter(
            and_(TimeOffRequest.id == request_id, TimeOffRequest.business_id == business_id)
        ).first()
        if not request:
            raise ResourceNotFoundException("Time-off request", request_id)
        return request

    def create_request(self, business_id: int, request_data: TimeOffRequestCreate) -> TimeOffRequest:
        staff = self.db.query(StaffMember).filter(
            and_(
                StaffMember.id == request_data.staff_member_id,
                StaffMember.business_id == business_id,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", request_data.staff_member_id)

        time_off_type = self.get_type(business_id, request_data.time_off_type_id)
        if not time_off_type.is_active:
            raise OperationNotPermittedException(f"Time-off type '{time_off_type.name}' is inactive")

        overlapping = self.db.query(TimeOffRequest.id).filter(
            and_(
                TimeOffRequest.business_id == business_id,
                TimeOffRequest.staff_member_id == request_data.staff_member_id,
                TimeOffRequest.status == TimeOffStatus.APPROVED,
                TimeOffRequest.start_date <= request_data.end_date,
                TimeOffRequest.end_date >= request_data.start_date,
            )
        ).first()
        if overlapping:
            raise OperationNotPermittedException(
                "This time-off request overlaps with an existing approved request"
            )

        request = TimeOffRequest(
            business_id=business_id,
            status=TimeOffStatus.PENDING,
            **request_data.model_dump(),
        )
        try:
            self.db.add(request)
            self.db.commit()
            self.db.refresh(request)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating time-off request: {str(e)}")
            raise

        logger.info(
            f"Time-off request {request.id} created for staff member {request.staff_member_id} "
            f"({request.start_date} to {request.end_date})"
        )
        return request

    def approve_request(
        self,
        business_id: int,
        request_id: int,
        approver_staff_id: int,
        decision: TimeOffDecision,
    ) -> Tuple[TimeOffRequest, List[ShiftOccurrence]]:
        """
        Approve a pending request.

        Approval is never blocked by scheduled work; the shifts and pattern
        occurrences that fall inside the approved period are returned so the
        caller can reassign them.
        """
        request = self.get_request(business_id, request_id)
        self._require_pending(request, "approve")

        conflicting = self.find_conflicting_occurrences(request)
        if conflicting:
            logger.warning(
                f"Approving time-off request {request_id} over {len(conflicting)} "
                f"scheduled occurrence(s) for staff member {request.staff_member_id}"
            )

        self._decide(request, TimeOffStatus.APPROVED, approver_staff_id, decision)
        return request, conflicting

    def deny_request(
        self,
        business_id: int,
        request_id: int,
        approver_staff_id: int,
        decision: TimeOffDecision,
    ) -> TimeOffRequest:
        request = self.get_request(business_id, request_id)
        self._require_pending(request, "deny")
        self._decide(request, TimeOffStatus.DENIED, approver_staff_id, decision)
        return request

    def cancel_request(self, business_id: int, request_id: int) -> TimeOffRequest:
        request = self.get_request(business_id, request_id)
        self._require_pending(request, "cancel")

        try:
            request.status = TimeOffStatus.CANCELLED
            self.db.commit()
            self.db.refresh(request)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cancelling time-off request {request_id}: {str(e)}")
            raise
        return request

    def get_pending_count(self, business_id: int) -> int:
        return self.db.query(func.count(TimeOffRequest.id)).filter(
            and_(
                TimeOffRequest.business_id == business_id,
                TimeOffRequest.status == TimeOffStatus.PENDING,
            )
        ).scalar() or 0

    def find_conflicting_occurrences(self, request: TimeOffRequest) -> List[ShiftOccurrence]:
        """Committed shifts and pattern occurrences inside a request's period"""
        occurrences = OccurrenceService(self.db).get_occurrences(
            request.business_id,
            request.start_date,
            request.end_date,
            staff_member_id=request.staff_member_id,
            limit_range=False,
        )

        conflicting = []
        for occurrence in occurrences:
            if occurrence.source == "shift" and occurrence.status not in _COMMITTED_SHIFT_STATUSES:
                continue
            if not request.is_all_day and not times_overlap(
                occurrence.start_time, occurrence.end_time, request.start_time, request.end_time
            ):
                continue
            conflicting.append(occurrence)
        return conflicting

    @staticmethod
    def _require_pending(request: TimeOffRequest, action: str) -> None:
        if request.status != TimeOffStatus.PENDING:
            raise OperationNotPermittedException(
                f"Cannot {action} a request with status '{request.status.value}'"
            )

    def _decide(
        self,
        request: TimeOffRequest,
        status: TimeOffStatus,
        approver_staff_id: int,
        decision: TimeOffDecision,
    ) -> None:
        try:
            request.status = status
            request.approval_notes = decision.approval_notes
            request.approved_by_staff_id = approver_staff_id
            request.approved_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(request)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording {status.value} decision on request {request.id}: {str(e)}")
            raise

        logger.info(
            f"Time-off request {request.id} {status.value} by staff member {approver_staff_id}"
        )
