# backend/tests/factories/__init__.py

"""
Shared test factories for the staff scheduling backend.
"""

from .base import BaseFactory, TestSession
from .staff import (
    BUSINESS_ID,
    RoleFactory,
    StaffMemberFactory,
    StaffLocationFactory,
    StaffServiceAssignmentFactory,
    InvitationFactory,
)
from .scheduling import ShiftFactory, RecurringShiftPatternFactory
from .time_off import TimeOffTypeFactory, TimeOffRequestFactory

__all__ = [
    # Base
    'BaseFactory',
    'TestSession',
    'BUSINESS_ID',

    # Staff
    'RoleFactory',
    'StaffMemberFactory',
    'StaffLocationFactory',
    'StaffServiceAssignmentFactory',
    'InvitationFactory',

    # Scheduling
    'ShiftFactory',
    'RecurringShiftPatternFactory',

    # Time off
    'TimeOffTypeFactory',
    'TimeOffRequestFactory',
]
