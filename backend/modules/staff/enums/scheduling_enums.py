from enum import Enum


class ShiftStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ShiftType(str, Enum):
    OPENING = "opening"
    MID = "mid"
    CLOSING = "closing"
    CUSTOM = "custom"


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class ConflictType(str, Enum):
    OVERLAP = "overlap"
    LOCATION_CONFLICT = "location_conflict"
    OVERTIME = "overtime"


class ConflictSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class AvailabilityKind(str, Enum):
    SHIFT = "shift"
    TIME_OFF = "timeoff"
