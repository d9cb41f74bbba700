from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Enum, Boolean, Time, Text, CheckConstraint, Index
from sqlalchemy.orm import relationship
from core.database import Base
from datetime import datetime
from ..enums.time_off_enums import TimeOffStatus


class TimeOffType(Base):
    __tablename__ = "time_off_types"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False, default="#9E9E9E")
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    requests = relationship("TimeOffRequest", back_populates="time_off_type")


class TimeOffRequest(Base):
    __tablename__ = "time_off_requests"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False)
    time_off_type_id = Column(Integer, ForeignKey("time_off_types.id"), nullable=False)

    # Period (inclusive); times only for partial-day requests
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_all_day = Column(Boolean, default=True, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)

    status = Column(Enum(TimeOffStatus, values_callable=lambda obj: [e.value for e in obj]), default=TimeOffStatus.PENDING, nullable=False)
    notes = Column(Text)

    # Approval
    approval_notes = Column(Text)
    approved_by_staff_id = Column(Integer, ForeignKey("staff_members.id", ondelete="SET NULL"))
    approved_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    staff_member = relationship("StaffMember", foreign_keys=[staff_member_id])
    approved_by = relationship("StaffMember", foreign_keys=[approved_by_staff_id])
    time_off_type = relationship("TimeOffType", back_populates="requests")

    @property
    def staff_member_name(self) -> str:
        return self.staff_member.display_name if self.staff_member else ""

    @property
    def time_off_type_name(self) -> str:
        return self.time_off_type.name if self.time_off_type else ""

    @property
    def time_off_type_color(self) -> str:
        return self.time_off_type.color if self.time_off_type else ""

    @property
    def approved_by_staff_name(self):
        return self.approved_by.display_name if self.approved_by else None

    __table_args__ = (
        CheckConstraint('end_date >= start_date', name='check_time_off_dates'),
        Index("ix_time_off_requests_business_staff_status", "business_id", "staff_member_id", "status"),
    )
