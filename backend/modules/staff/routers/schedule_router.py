from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from core.database import get_db
from ..models.staff_models import StaffMember
from ..schemas.scheduling_schemas import (
    ShiftCreate, ShiftUpdate, ShiftResponse, BulkShiftCreate,
    ConflictCheckRequest, ConflictCheckResponse,
    ShiftOccurrence, AvailabilitySlot,
)
from ..services.schedule_service import ScheduleService
from ..services.conflict_service import ConflictService, has_errors, has_warnings
from ..services.occurrence_service import OccurrenceService
from ..services.availability_service import AvailabilityService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import force_flag, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter()


# Shift Endpoints
@router.get("/shifts", response_model=List[ShiftResponse])
async def list_shifts(
    business_id: int = Path(..., gt=0),
    start_date: date = Query(...),
    end_date: date = Query(...),
    staff_member_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    """List persisted shifts in a date range"""
    try:
        return ScheduleService(db).list_shifts(
            business_id, start_date, end_date, staff_member_id, location_id
        )
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post("/shifts", response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
async def create_shift(
    shift: ShiftCreate,
    business_id: int = Path(..., gt=0),
    force: bool = Depends(force_flag),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """
    Create a shift.

    Error-level conflicts always reject the request with 409. Warning-level
    conflicts (other location, weekly overtime) reject it unless the force
    header is sent.
    """
    try:
        return ScheduleService(db).create_shift(business_id, shift, force=force)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post("/shifts/bulk", response_model=List[ShiftResponse], status_code=status.HTTP_201_CREATED)
async def bulk_create_shifts(
    bulk: BulkShiftCreate,
    business_id: int = Path(..., gt=0),
    force: bool = Depends(force_flag),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Create several shifts at once; all or nothing"""
    try:
        return ScheduleService(db).bulk_create_shifts(business_id, bulk, force=force)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.get("/shifts/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    try:
        return ScheduleService(db).get_shift(business_id, shift_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/shifts/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: int,
    shift_update: ShiftUpdate,
    business_id: int = Path(..., gt=0),
    force: bool = Depends(force_flag),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Update a shift; moving it re-runs conflict detection"""
    try:
        return ScheduleService(db).update_shift(business_id, shift_id, shift_update, force=force)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/shifts/{shift_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shift(
    shift_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Delete a shift (completed shifts are kept)"""
    try:
        ScheduleService(db).delete_shift(business_id, shift_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


# Conflict Detection
@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    request: ConflictCheckRequest,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    """Preview the conflicts a shift would produce without saving anything"""
    conflicts = ConflictService(db).check_conflicts(
        business_id,
        request.staff_member_id,
        request.date,
        request.start_time,
        request.end_time,
        request.location_id,
        request.exclude_shift_id,
    )
    return ConflictCheckResponse(
        conflicts=conflicts,
        has_errors=has_errors(conflicts),
        has_warnings=has_warnings(conflicts),
    )


# Occurrence Feed
@router.get("/occurrences", response_model=List[ShiftOccurrence])
async def list_occurrences(
    business_id: int = Path(..., gt=0),
    start_date: date = Query(...),
    end_date: date = Query(...),
    staff_member_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    """One-off shifts merged with recurring pattern occurrences"""
    try:
        return OccurrenceService(db).get_occurrences(
            business_id, start_date, end_date, staff_member_id, location_id
        )
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.get("/availability/{staff_id}", response_model=List[AvailabilitySlot])
async def get_availability(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    """A staff member's shifts and approved time-off, in date order"""
    try:
        return AvailabilityService(db).get_availability(business_id, staff_id, start_date, end_date)
    except StaffOperationException as e:
        raise to_http_exception(e)
