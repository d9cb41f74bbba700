from enum import Enum


class StaffStatus(str, Enum):
    """
    Employment status.

    TERMINATED can only move on to ARCHIVED; ARCHIVED is final and is the
    only status from which a staff member may be deleted.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    TERMINATED = "terminated"
    ARCHIVED = "archived"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
