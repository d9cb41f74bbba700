from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Enum, Boolean, JSON,
    Index, UniqueConstraint, text
)
from sqlalchemy.orm import relationship
from core.database import Base
from datetime import datetime
from ..enums.staff_enums import StaffStatus, InvitationStatus


class StaffMember(Base):
    __tablename__ = "staff_members"
    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50))
    job_title = Column(String(100))
    photo_url = Column(String(500))
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="SET NULL"))
    status = Column(Enum(StaffStatus, values_callable=lambda obj: [e.value for e in obj]), default=StaffStatus.ACTIVE, nullable=False)
    is_bookable = Column(Boolean, default=True, nullable=False)
    deleted_at = Column(DateTime, nullable=True)  # Soft delete

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    role = relationship("Role", back_populates="staff_members")
    locations = relationship("StaffLocation", back_populates="staff_member", cascade="all, delete-orphan")
    services = relationship("StaffServiceAssignment", back_populates="staff_member", cascade="all, delete-orphan")
    invitations = relationship("Invitation", back_populates="staff_member", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("business_id", "email", name="uq_staff_members_business_email"),
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    permissions = Column(JSON, default=list, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_immutable = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    staff_members = relationship("StaffMember", back_populates="role")

    __table_args__ = (
        UniqueConstraint("business_id", "name", name="uq_roles_business_name"),
    )


class StaffLocation(Base):
    __tablename__ = "staff_locations"
    id = Column(Integer, primary_key=True, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="SET NULL"))
    is_primary = Column(Boolean, default=False, nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    staff_member = relationship("StaffMember", back_populates="locations")
    role = relationship("Role")

    __table_args__ = (
        UniqueConstraint("staff_member_id", "location_id", name="uq_staff_locations_staff_location"),
        # At most one primary location per staff member
        Index(
            "uq_staff_locations_primary",
            "staff_member_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary = 1"),
        ),
    )


class StaffServiceAssignment(Base):
    """A bookable service the staff member performs; the catalogue lives elsewhere"""

    __tablename__ = "staff_services"
    id = Column(Integer, primary_key=True, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, nullable=False, index=True)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    staff_member = relationship("StaffMember", back_populates="services")

    __table_args__ = (
        UniqueConstraint("staff_member_id", "service_id", name="uq_staff_services_staff_service"),
    )


class Invitation(Base):
    __tablename__ = "staff_invitations"
    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    staff_member_id = Column(Integer, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True)
    # sha256 hex digest; the plaintext token is never stored
    token_hash = Column(String(128), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    status = Column(Enum(InvitationStatus, values_callable=lambda obj: [e.value for e in obj]), default=InvitationStatus.PENDING, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    staff_member = relationship("StaffMember", back_populates="invitations")

    @property
    def is_expired(self) -> bool:
        return self.status == InvitationStatus.PENDING and self.expires_at <= datetime.utcnow()
