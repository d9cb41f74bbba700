from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from ..models.staff_models import StaffMember
from ..enums.staff_enums import StaffStatus
from ..schemas.staff_schemas import (
    StaffMemberCreate, StaffMemberUpdate, StaffMemberResponse, StaffStatusUpdate,
    StaffLocationAssign, StaffLocationResponse, StaffServiceAssign, StaffServiceResponse,
)
from ..services.staff_service import StaffService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import to_http_exception

router = APIRouter()


@router.get("/staff", response_model=List[StaffMemberResponse])
async def list_staff(
    business_id: int = Path(..., gt=0),
    staff_status: Optional[StaffStatus] = Query(None, alias="status"),
    location_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    return StaffService(db).list_staff(business_id, staff_status, location_id)


@router.post("/staff", response_model=StaffMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_staff_member(
    staff_data: StaffMemberCreate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return StaffService(db).create_staff_member(business_id, staff_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.get("/staff/{staff_id}", response_model=StaffMemberResponse)
async def get_staff_member(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    try:
        return StaffService(db).get_staff_member(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/staff/{staff_id}", response_model=StaffMemberResponse)
async def update_staff_member(
    staff_id: int,
    update_data: StaffMemberUpdate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return StaffService(db).update_staff_member(business_id, staff_id, update_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/staff/{staff_id}/status", response_model=StaffMemberResponse)
async def change_staff_status(
    staff_id: int,
    status_update: StaffStatusUpdate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return StaffService(db).change_status(business_id, staff_id, status_update.status)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/staff/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff_member(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    """Soft-delete a staff member; only archived staff can be deleted"""
    try:
        StaffService(db).delete_staff_member(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


# Location assignments
@router.get("/staff/{staff_id}/locations", response_model=List[StaffLocationResponse])
async def list_staff_locations(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    try:
        return StaffService(db).list_locations(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post(
    "/staff/{staff_id}/locations",
    response_model=StaffLocationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_staff_location(
    staff_id: int,
    assignment: StaffLocationAssign,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    """Assign a location; the first assignment always becomes primary"""
    try:
        return StaffService(db).assign_location(business_id, staff_id, assignment)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/staff/{staff_id}/locations/{location_id}/primary", response_model=StaffLocationResponse)
async def set_primary_location(
    staff_id: int,
    location_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return StaffService(db).set_primary_location(business_id, staff_id, location_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/staff/{staff_id}/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_staff_location(
    staff_id: int,
    location_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        StaffService(db).remove_location(business_id, staff_id, location_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


# Service assignments
@router.get("/staff/{staff_id}/services", response_model=List[StaffServiceResponse])
async def list_staff_services(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    try:
        return StaffService(db).list_services(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post(
    "/staff/{staff_id}/services",
    response_model=StaffServiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_staff_service(
    staff_id: int,
    assignment: StaffServiceAssign,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return StaffService(db).assign_service(business_id, staff_id, assignment)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/staff/{staff_id}/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_staff_service(
    staff_id: int,
    service_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        StaffService(db).remove_service(business_id, staff_id, service_id)
    except StaffOperationException as e:
        raise to_http_exception(e)
