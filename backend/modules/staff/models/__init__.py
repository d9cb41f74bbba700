from .staff_models import StaffMember, Role, StaffLocation, StaffServiceAssignment, Invitation
from .scheduling_models import Shift, RecurringShiftPattern
from .time_off_models import TimeOffType, TimeOffRequest

__all__ = [
    "StaffMember",
    "Role",
    "StaffLocation",
    "StaffServiceAssignment",
    "Invitation",
    "Shift",
    "RecurringShiftPattern",
    "TimeOffType",
    "TimeOffRequest",
]
