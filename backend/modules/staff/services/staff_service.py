from sqlalchemy.orm import Session, selectinload
from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from typing import List, Optional
import logging

from ..models.staff_models import StaffMember, StaffLocation, StaffServiceAssignment, Role, Invitation
from ..enums.staff_enums import StaffStatus, InvitationStatus
from ..schemas.staff_schemas import (
    StaffMemberCreate,
    StaffMemberUpdate,
    StaffLocationAssign,
    StaffServiceAssign,
)
from ..exceptions.staff_exceptions import (
    ResourceNotFoundException,
    OperationNotPermittedException,
)


logger = logging.getLogger(__name__)


class StaffService:
    """Staff directory, location assignments and service assignments"""

    def __init__(self, db: Session):
        self.db = db

    def list_staff(
        self,
        business_id: int,
        status: Optional[StaffStatus] = None,
        location_id: Optional[int] = None,
    ) -> List[StaffMember]:
        query = self.db.query(StaffMember).options(
            selectinload(StaffMember.locations)
        ).filter(
            StaffMember.business_id == business_id,
            StaffMember.deleted_at.is_(None),
        )

        if status is not None:
            query = query.filter(StaffMember.status == status)
        if location_id is not None:
            query = query.filter(
                StaffMember.locations.any(StaffLocation.location_id == location_id)
            )

        return query.order_by(StaffMember.last_name, StaffMember.first_name, StaffMember.id).all()

    def get_staff_member(self, business_id: int, staff_id: int) -> StaffMember:
        staff = self.db.query(StaffMember).options(
            selectinload(StaffMember.locations)
        ).filter(
            and_(
                StaffMember.id == staff_id,
                StaffMember.business_id == business_id,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", staff_id)
        return staff

    def create_staff_member(self, business_id: int, staff_data: StaffMemberCreate) -> StaffMember:
        """Create a staff member; the first listed location becomes primary"""
        email = staff_data.email.lower()

        duplicate = self.db.query(StaffMember.id).filter(
            and_(
                StaffMember.business_id == business_id,
                func.lower(StaffMember.email) == email,
            )
        ).first()
        if duplicate:
            raise OperationNotPermittedException(
                "A staff member with this email already exists in this business"
            )

        if staff_data.role_id is not None:
            self._get_role(business_id, staff_data.role_id)

        staff = StaffMember(
            business_id=business_id,
            first_name=staff_data.first_name,
            last_name=staff_data.last_name,
            email=email,
            phone=staff_data.phone,
            job_title=staff_data.job_title,
            photo_url=staff_data.photo_url,
            role_id=staff_data.role_id,
            is_bookable=staff_data.is_bookable,
            status=StaffStatus.ACTIVE,
        )

        location_ids = list(dict.fromkeys(staff_data.location_ids or []))
        for index, location_id in enumerate(location_ids):
            staff.locations.append(
                StaffLocation(location_id=location_id, is_primary=index == 0)
            )

        try:
            self.db.add(staff)
            self.db.commit()
            self.db.refresh(staff)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating staff member {email}: {str(e)}")
            raise

        logger.info(f"Created staff member {staff.id} in business {business_id}")
        return staff

    def update_staff_member(
        self, business_id: int, staff_id: int, update_data: StaffMemberUpdate
    ) -> StaffMember:
        staff = self.get_staff_member(business_id, staff_id)
        changes = update_data.model_dump(exclude_unset=True)

        for field in ("first_name", "last_name", "is_bookable"):
            if field in changes and changes[field] is None:
                del changes[field]

        try:
            for field, value in changes.items():
                setattr(staff, field, value)
            self.db.commit()
            self.db.refresh(staff)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating staff member {staff_id}: {str(e)}")
            raise
        return staff

    def change_status(self, business_id: int, staff_id: int, new_status: StaffStatus) -> StaffMember:
        """Change employment status; terminated may only be archived and archived is final"""
        staff = self.get_staff_member(business_id, staff_id)

        if staff.status == StaffStatus.ARCHIVED and new_status != StaffStatus.ARCHIVED:
            raise OperationNotPermittedException("Archived staff members cannot be reactivated")
        if staff.status == StaffStatus.TERMINATED and new_status not in (
            StaffStatus.TERMINATED, StaffStatus.ARCHIVED
        ):
            raise OperationNotPermittedException("Terminated staff members cannot be reactivated")

        try:
            staff.status = new_status
            self.db.commit()
            self.db.refresh(staff)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error changing status of staff member {staff_id}: {str(e)}")
            raise

        logger.info(f"Staff member {staff_id} status changed to {new_status.value}")
        return staff

    def delete_staff_member(self, business_id: int, staff_id: int) -> None:
        """
        Soft-delete an archived staff member.

        The row stays but disappears from every lookup. Pending invitations
        are cancelled.
        """
        staff = self.get_staff_member(business_id, staff_id)

        if staff.status != StaffStatus.ARCHIVED:
            raise OperationNotPermittedException("Only archived staff members can be deleted")

        try:
            self.db.query(Invitation).filter(
                and_(
                    Invitation.staff_member_id == staff_id,
                    Invitation.status == InvitationStatus.PENDING,
                )
            ).update({Invitation.status: InvitationStatus.CANCELLED}, synchronize_session="fetch")
            staff.deleted_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting staff member {staff_id}: {str(e)}")
            raise

        logger.info(f"Staff member {staff_id} deleted from business {business_id}")

    # Locations

    def list_locations(self, business_id: int, staff_id: int) -> List[StaffLocation]:
        self.get_staff_member(business_id, staff_id)
        return self.db.query(StaffLocation).filter(
            StaffLocation.staff_member_id == staff_id
        ).order_by(StaffLocation.is_primary.desc(), StaffLocation.assigned_at, StaffLocation.id).all()

    def assign_location(
        self, business_id: int, staff_id: int, assignment: StaffLocationAssign
    ) -> StaffLocation:
        """Assign a staff member to a location, optionally as the new primary"""
        self.get_staff_member(business_id, staff_id)

        existing = self.db.query(StaffLocation).filter(
            StaffLocation.staff_member_id == staff_id
        ).all()
        if any(sl.location_id == assignment.location_id for sl in existing):
            raise OperationNotPermittedException("Staff member is already assigned to this location")

        if assignment.role_id is not None:
            self._get_role(business_id, assignment.role_id)

        make_primary = assignment.is_primary or not existing

        try:
            if make_primary:
                self._lock_staff_member(business_id, staff_id)
                self._clear_primary(staff_id)

            staff_location = StaffLocation(
                staff_member_id=staff_id,
                location_id=assignment.location_id,
                role_id=assignment.role_id,
                is_primary=make_primary,
            )
            self.db.add(staff_location)
            self.db.commit()
            self.db.refresh(staff_location)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error assigning staff member {staff_id} to location {assignment.location_id}: {str(e)}"
            )
            raise

        return staff_location

    def set_primary_location(self, business_id: int, staff_id: int, location_id: int) -> StaffLocation:
        """
        Move the primary flag to another assigned location.

        The old flag is cleared and flushed before the new one is set, inside
        one transaction holding the staff row lock, so the partial unique
        index never sees two primaries.
        """
        self.get_staff_member(business_id, staff_id)
        target = self._get_assignment(staff_id, location_id)

        if target.is_primary:
            return target

        try:
            self._lock_staff_member(business_id, staff_id)
            self._clear_primary(staff_id)
            target.is_primary = True
            self.db.commit()
            self.db.refresh(target)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error setting primary location for staff member {staff_id}: {str(e)}")
            raise

        logger.info(f"Staff member {staff_id} primary location set to {location_id}")
        return target

    def remove_location(self, business_id: int, staff_id: int, location_id: int) -> None:
        self.get_staff_member(business_id, staff_id)
        assignment = self._get_assignment(staff_id, location_id)

        if assignment.is_primary:
            raise OperationNotPermittedException(
                "Cannot remove primary location. Assign a different primary location first."
            )

        try:
            self.db.delete(assignment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error removing location {location_id} from staff member {staff_id}: {str(e)}")
            raise

    # Services

    def list_services(self, business_id: int, staff_id: int) -> List[StaffServiceAssignment]:
        self.get_staff_member(business_id, staff_id)
        return self.db.query(StaffServiceAssignment).filter(
            StaffServiceAssignment.staff_member_id == staff_id
        ).order_by(StaffServiceAssignment.assigned_at, StaffServiceAssignment.id).all()

    def assign_service(
        self, business_id: int, staff_id: int, assignment: StaffServiceAssign
    ) -> StaffServiceAssignment:
        self.get_staff_member(business_id, staff_id)

        existing = self.db.query(StaffServiceAssignment.id).filter(
            and_(
                StaffServiceAssignment.staff_member_id == staff_id,
                StaffServiceAssignment.service_id == assignment.service_id,
            )
        ).first()
        if existing:
            raise OperationNotPermittedException("Staff member is already assigned to this service")

        try:
            staff_service = StaffServiceAssignment(
                staff_member_id=staff_id,
                service_id=assignment.service_id,
            )
            self.db.add(staff_service)
            self.db.commit()
            self.db.refresh(staff_service)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error assigning staff member {staff_id} to service {assignment.service_id}: {str(e)}"
            )
            raise

        return staff_service

    def remove_service(self, business_id: int, staff_id: int, service_id: int) -> None:
        self.get_staff_member(business_id, staff_id)
        staff_service = self.db.query(StaffServiceAssignment).filter(
            and_(
                StaffServiceAssignment.staff_member_id == staff_id,
                StaffServiceAssignment.service_id == service_id,
            )
        ).first()
        if not staff_service:
            raise ResourceNotFoundException("Staff service", service_id)

        try:
            self.db.delete(staff_service)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error removing service {service_id} from staff member {staff_id}: {str(e)}")
            raise

    # Helpers

    def _get_assignment(self, staff_id: int, location_id: int) -> StaffLocation:
        assignment = self.db.query(StaffLocation).filter(
            and_(
                StaffLocation.staff_member_id == staff_id,
                StaffLocation.location_id == location_id,
            )
        ).first()
        if not assignment:
            raise ResourceNotFoundException("Staff location", location_id)
        return assignment

    def _get_role(self, business_id: int, role_id: int) -> Role:
        role = self.db.query(Role).filter(
            and_(Role.id == role_id, Role.business_id == business_id)
        ).first()
        if not role:
            raise ResourceNotFoundException("Role", role_id)
        return role

    def _lock_staff_member(self, business_id: int, staff_id: int) -> None:
        self.db.query(StaffMember.id).filter(
            and_(StaffMember.id == staff_id, StaffMember.business_id == business_id)
        ).with_for_update().first()

    def _clear_primary(self, staff_id: int) -> None:
        self.db.query(StaffLocation).filter(
            and_(
                StaffLocation.staff_member_id == staff_id,
                StaffLocation.is_primary.is_(True),
            )
        ).update({StaffLocation.is_primary: False}, synchronize_session="fetch")
        self.db.flush()
