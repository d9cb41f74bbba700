from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..enums.staff_enums import StaffStatus, InvitationStatus
from ..utils.permissions import StaffPermissions


class StaffLocationAssign(BaseModel):
    location_id: int = Field(..., gt=0)
    role_id: Optional[int] = None
    is_primary: bool = False


class StaffLocationResponse(BaseModel):
    id: int
    staff_member_id: int
    location_id: int
    role_id: Optional[int] = None
    is_primary: bool
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StaffServiceAssign(BaseModel):
    service_id: int = Field(..., gt=0)


class StaffServiceResponse(BaseModel):
    id: int
    staff_member_id: int
    service_id: int
    # Resolved by the service catalogue, which is not part of this API
    service_name: Optional[str] = None
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StaffMemberCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    job_title: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = Field(None, max_length=500)
    role_id: Optional[int] = None
    is_bookable: bool = True
    location_ids: Optional[List[int]] = None


class StaffMemberUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    job_title: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = Field(None, max_length=500)
    is_bookable: Optional[bool] = None


class StaffStatusUpdate(BaseModel):
    status: StaffStatus


class StaffMemberResponse(BaseModel):
    id: int
    business_id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    job_title: Optional[str] = None
    photo_url: Optional[str] = None
    role_id: Optional[int] = None
    status: StaffStatus
    is_bookable: bool
    created_at: datetime
    updated_at: datetime
    locations: List[StaffLocationResponse] = []

    model_config = ConfigDict(from_attributes=True)


def _validate_permission_names(permissions: List[str]) -> List[str]:
    unknown = [p for p in permissions if p not in StaffPermissions.ALL]
    if unknown:
        raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
    # De-duplicate, keeping the declared order
    return list(dict.fromkeys(permissions))


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: List[str] = []
    clone_from_role_id: Optional[int] = None

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v):
        return _validate_permission_names(v)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[List[str]] = None

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v):
        if v is None:
            return v
        return _validate_permission_names(v)


class RoleResponse(BaseModel):
    id: int
    business_id: int
    name: str
    description: Optional[str] = None
    permissions: List[str]
    is_default: bool
    is_immutable: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StaffRoleAssign(BaseModel):
    role_id: int = Field(..., gt=0)


class InvitationResponse(BaseModel):
    id: int
    staff_member_id: int
    email: str
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime
    accepted_at: Optional[datetime] = None
    is_expired: bool

    model_config = ConfigDict(from_attributes=True)


class InvitationIssued(InvitationResponse):
    """Returned once when an invitation is issued; only the token hash is stored"""

    token: Optional[str] = None


class InvitationAccept(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
