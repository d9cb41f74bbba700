from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Enum, Boolean, Time, CheckConstraint, Index
from sqlalchemy.orm import relationship
from core.database import Base
from datetime import datetime
from ..enums.scheduling_enums import ShiftStatus, ShiftType


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(Integer)

    # Time details
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Shift details
    shift_type = Column(Enum(ShiftType, values_callable=lambda obj: [e.value for e in obj]), default=ShiftType.CUSTOM, nullable=False)
    status = Column(Enum(ShiftStatus, values_callable=lambda obj: [e.value for e in obj]), default=ShiftStatus.SCHEDULED, nullable=False)
    notes = Column(String(500))

    # Pattern reference; is_override marks a one-day replacement of the pattern
    pattern_id = Column(Integer, ForeignKey("recurring_shift_patterns.id", ondelete="SET NULL"))
    is_override = Column(Boolean, default=False, nullable=False)

    # Tracking
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    staff_member = relationship("StaffMember")
    pattern = relationship("RecurringShiftPattern", back_populates="shifts")

    @property
    def staff_member_name(self) -> str:
        return self.staff_member.display_name if self.staff_member else ""

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='check_shift_times'),
        Index("ix_shifts_business_staff_date", "business_id", "staff_member_id", "date"),
        Index("ix_shifts_business_date", "business_id", "date"),
        Index("ix_shifts_pattern_date", "pattern_id", "date"),
    )


class RecurringShiftPattern(Base):
    __tablename__ = "recurring_shift_patterns"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer)

    # Recurrence, e.g. FREQ=WEEKLY;BYDAY=MO,WE,FR
    rrule = Column(String(200), nullable=False)

    # Time pattern
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Valid period (inclusive)
    pattern_start = Column(Date, nullable=False)
    pattern_end = Column(Date)

    shift_type = Column(Enum(ShiftType, values_callable=lambda obj: [e.value for e in obj]), default=ShiftType.CUSTOM, nullable=False)
    notes = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    staff_member = relationship("StaffMember")
    shifts = relationship("Shift", back_populates="pattern", passive_deletes=True)

    @property
    def staff_member_name(self) -> str:
        return self.staff_member.display_name if self.staff_member else ""

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='check_pattern_times'),
        CheckConstraint('pattern_end IS NULL OR pattern_end >= pattern_start', name='check_pattern_window'),
    )
