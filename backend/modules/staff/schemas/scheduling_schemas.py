import datetime as dt
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..enums.scheduling_enums import (
    ShiftStatus, ShiftType, ConflictType, ConflictSeverity, AvailabilityKind
)
from ..utils.recurrence import parse_rrule
from .common_schemas import ClockTime


class ShiftConflict(BaseModel):
    type: ConflictType
    message: str
    severity: ConflictSeverity


class ShiftCreate(BaseModel):
    staff_member_id: int = Field(..., gt=0)
    date: dt.date
    start_time: ClockTime
    end_time: ClockTime
    shift_type: ShiftType = ShiftType.CUSTOM
    location_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class ShiftUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    shift_type: Optional[ShiftType] = None
    location_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[ShiftStatus] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class BulkShiftCreate(BaseModel):
    shifts: List[ShiftCreate] = Field(..., min_length=1, max_length=200)


class ShiftResponse(BaseModel):
    id: int
    business_id: int
    staff_member_id: int
    staff_member_name: str
    date: dt.date
    start_time: ClockTime
    end_time: ClockTime
    shift_type: ShiftType
    status: ShiftStatus
    location_id: Optional[int] = None
    notes: Optional[str] = None
    pattern_id: Optional[int] = None
    is_override: bool = False
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class ConflictCheckRequest(BaseModel):
    staff_member_id: int = Field(..., gt=0)
    date: dt.date
    start_time: ClockTime
    end_time: ClockTime
    location_id: Optional[int] = None
    exclude_shift_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class ConflictCheckResponse(BaseModel):
    conflicts: List[ShiftConflict]
    has_errors: bool
    has_warnings: bool


# Recurring patterns

def _normalize_rrule(value: str) -> str:
    # parse_rrule raises a ValueError subclass, reported by pydantic as a 422
    return parse_rrule(value).to_string()


class RecurringShiftPatternCreate(BaseModel):
    staff_member_id: int = Field(..., gt=0)
    location_id: Optional[int] = None
    rrule: str = Field(..., max_length=200)
    start_time: ClockTime
    end_time: ClockTime
    pattern_start: dt.date
    pattern_end: Optional[dt.date] = None
    shift_type: ShiftType = ShiftType.CUSTOM
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("rrule")
    @classmethod
    def validate_rrule(cls, v):
        return _normalize_rrule(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if self.pattern_end and self.pattern_end < self.pattern_start:
            raise ValueError("Pattern end must be on or after pattern start")
        return self


class RecurringShiftPatternUpdate(BaseModel):
    location_id: Optional[int] = None
    rrule: Optional[str] = Field(None, max_length=200)
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    pattern_end: Optional[dt.date] = None
    shift_type: Optional[ShiftType] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator("rrule")
    @classmethod
    def validate_rrule(cls, v):
        if v is None:
            return v
        return _normalize_rrule(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class RecurringShiftPatternResponse(BaseModel):
    id: int
    business_id: int
    staff_member_id: int
    staff_member_name: str
    location_id: Optional[int] = None
    rrule: str
    start_time: ClockTime
    end_time: ClockTime
    pattern_start: dt.date
    pattern_end: Optional[dt.date] = None
    shift_type: ShiftType
    notes: Optional[str] = None
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class OccurrenceOverrideCreate(BaseModel):
    """Replace one day of a pattern with a concrete shift.

    Omitted fields are copied from the pattern.
    """

    date: dt.date
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    location_id: Optional[int] = None
    shift_type: Optional[ShiftType] = None
    notes: Optional[str] = Field(None, max_length=500)


# Occurrence feed

class _OccurrenceBase(BaseModel):
    staff_member_id: int
    staff_member_name: str
    date: dt.date
    start_time: ClockTime
    end_time: ClockTime
    shift_type: ShiftType
    location_id: Optional[int] = None
    notes: Optional[str] = None


class PersistedOccurrence(_OccurrenceBase):
    source: Literal["shift"] = "shift"
    shift_id: int
    status: ShiftStatus
    is_override: bool = False


class VirtualOccurrence(_OccurrenceBase):
    source: Literal["pattern"] = "pattern"
    pattern_id: int


ShiftOccurrence = Annotated[
    Union[PersistedOccurrence, VirtualOccurrence],
    Field(discriminator="source"),
]


class AvailabilitySlot(BaseModel):
    date: dt.date
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    all_day: bool = False
    kind: AvailabilityKind
    source_id: int
