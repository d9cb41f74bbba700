"""
Permission utilities for staff operations
"""

import logging
from typing import Dict, List, Optional, Set

from fastapi import Depends, Header, Path
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.exceptions import AuthenticationError, PermissionDeniedError
from ..enums.staff_enums import StaffStatus
from ..models.staff_models import StaffMember

logger = logging.getLogger(__name__)


class StaffPermissions:
    """Permission names ("Area.Action") and the default role grants"""

    VIEW_SCHEDULE = "Scheduling.View"
    MANAGE_SCHEDULE = "Scheduling.Manage"
    VIEW_TIME_OFF = "TimeOff.View"
    MANAGE_TIME_OFF = "TimeOff.Manage"
    APPROVE_TIME_OFF = "TimeOff.Approve"
    VIEW_STAFF = "Staff.View"
    MANAGE_STAFF = "Staff.Manage"
    VIEW_SERVICES = "Services.View"
    MANAGE_SERVICES = "Services.Manage"
    VIEW_CLIENTS = "Clients.View"
    MANAGE_CLIENTS = "Clients.Manage"
    VIEW_REPORTS = "Reports.View"
    MANAGE_BUSINESS_SETTINGS = "Settings.ManageBusiness"
    MANAGE_LOCATION_SETTINGS = "Settings.ManageLocation"
    VIEW_BOOKINGS = "Bookings.View"
    MANAGE_BOOKINGS = "Bookings.Manage"

    ALL: List[str] = [
        VIEW_SCHEDULE,
        MANAGE_SCHEDULE,
        VIEW_TIME_OFF,
        MANAGE_TIME_OFF,
        APPROVE_TIME_OFF,
        VIEW_STAFF,
        MANAGE_STAFF,
        VIEW_SERVICES,
        MANAGE_SERVICES,
        VIEW_CLIENTS,
        MANAGE_CLIENTS,
        VIEW_REPORTS,
        MANAGE_BUSINESS_SETTINGS,
        MANAGE_LOCATION_SETTINGS,
        VIEW_BOOKINGS,
        MANAGE_BOOKINGS,
    ]

    # Default roles seeded for every business: name -> (description, permissions)
    DEFAULT_ROLES: Dict[str, tuple] = {
        "Owner": ("Full access to all features and settings", ALL),
        "Manager": (
            "Can manage schedules, time-off, and bookings",
            [
                VIEW_SCHEDULE,
                MANAGE_SCHEDULE,
                VIEW_TIME_OFF,
                MANAGE_TIME_OFF,
                APPROVE_TIME_OFF,
                VIEW_STAFF,
                VIEW_SERVICES,
                VIEW_CLIENTS,
                VIEW_BOOKINGS,
                MANAGE_BOOKINGS,
            ],
        ),
        "Employee": (
            "Can view own schedule and bookings",
            [VIEW_SCHEDULE, VIEW_TIME_OFF, VIEW_BOOKINGS],
        ),
    }

    OWNER_ROLE = "Owner"

    @staticmethod
    def get_permissions(staff: StaffMember, location_id: Optional[int] = None) -> Set[str]:
        """
        Collect the permissions granted to a staff member.

        The business-wide role always applies. Location roles apply for the
        given location, or for every assigned location when none is given.
        """
        granted: Set[str] = set()
        if staff.role:
            granted.update(staff.role.permissions or [])

        for assignment in staff.locations:
            if location_id is not None and assignment.location_id != location_id:
                continue
            if assignment.role:
                granted.update(assignment.role.permissions or [])

        return granted

    @staticmethod
    def check_permission(
        staff: StaffMember, permission: str, location_id: Optional[int] = None
    ) -> bool:
        """Check if a staff member has a specific permission"""
        return permission in StaffPermissions.get_permissions(staff, location_id)


def get_current_staff(
    business_id: int = Path(..., gt=0),
    staff_member_id: Optional[int] = Header(None, alias=settings.identity_header),
    db: Session = Depends(get_db),
) -> StaffMember:
    """Resolve the acting staff member from the identity header"""
    if staff_member_id is None:
        raise AuthenticationError(detail=f"Missing {settings.identity_header} header")

    staff = db.query(StaffMember).filter(
        StaffMember.id == staff_member_id,
        StaffMember.business_id == business_id,
        StaffMember.deleted_at.is_(None),
    ).first()

    if not staff:
        raise PermissionDeniedError(detail="Caller is not a staff member of this business")

    if staff.status in (StaffStatus.TERMINATED, StaffStatus.ARCHIVED):
        raise PermissionDeniedError(
            detail=f"{staff.status.value.capitalize()} staff members cannot perform operations"
        )

    return staff


def require_permission(permission: str):
    """Build a dependency that requires the acting staff member to hold a permission"""

    def dependency(current_staff: StaffMember = Depends(get_current_staff)) -> StaffMember:
        if not StaffPermissions.check_permission(current_staff, permission):
            logger.info(
                f"Staff member {current_staff.id} denied '{permission}' "
                f"in business {current_staff.business_id}"
            )
            raise PermissionDeniedError(
                detail=f"Insufficient permissions: {permission} required"
            )
        return current_staff

    return dependency
