import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums.time_off_enums import TimeOffStatus
from .common_schemas import ClockTime, HEX_COLOR_PATTERN
from .scheduling_schemas import ShiftOccurrence


class TimeOffTypeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TimeOffTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    is_active: Optional[bool] = None


class TimeOffTypeResponse(BaseModel):
    id: int
    business_id: int
    name: str
    color: str
    is_default: bool
    is_active: bool
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class TimeOffRequestCreate(BaseModel):
    staff_member_id: int = Field(..., gt=0)
    time_off_type_id: int = Field(..., gt=0)
    start_date: dt.date
    end_date: dt.date
    is_all_day: bool = True
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_period(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        if self.is_all_day:
            self.start_time = None
            self.end_time = None
        else:
            if self.start_time is None or self.end_time is None:
                raise ValueError("Start and end time are required for partial-day requests")
            if self.end_time <= self.start_time:
                raise ValueError("End time must be after start time")
        return self


class TimeOffDecision(BaseModel):
    approval_notes: Optional[str] = Field(None, max_length=1000)


class TimeOffRequestResponse(BaseModel):
    id: int
    business_id: int
    staff_member_id: int
    staff_member_name: str
    time_off_type_id: int
    time_off_type_name: str
    time_off_type_color: str
    start_date: dt.date
    end_date: dt.date
    is_all_day: bool
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    status: TimeOffStatus
    notes: Optional[str] = None
    approval_notes: Optional[str] = None
    approved_by_staff_id: Optional[int] = None
    approved_by_staff_name: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class TimeOffApprovalResponse(TimeOffRequestResponse):
    # Scheduled work that falls inside the approved period
    conflicting_occurrences: List[ShiftOccurrence] = []


class PendingCountResponse(BaseModel):
    count: int
