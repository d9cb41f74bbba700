from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from ..models.staff_models import StaffMember
from ..schemas.scheduling_schemas import (
    RecurringShiftPatternCreate, RecurringShiftPatternUpdate, RecurringShiftPatternResponse,
    OccurrenceOverrideCreate, ShiftResponse,
)
from ..services.schedule_service import ScheduleService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import force_flag, to_http_exception

router = APIRouter()


@router.get("/patterns", response_model=List[RecurringShiftPatternResponse])
async def list_patterns(
    business_id: int = Path(..., gt=0),
    staff_member_id: Optional[int] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    return ScheduleService(db).list_patterns(business_id, staff_member_id, active_only)


@router.post("/patterns", response_model=RecurringShiftPatternResponse, status_code=status.HTTP_201_CREATED)
async def create_pattern(
    pattern: RecurringShiftPatternCreate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Create a recurring pattern, e.g. rrule FREQ=WEEKLY;BYDAY=MO,WE,FR"""
    try:
        return ScheduleService(db).create_pattern(business_id, pattern)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.get("/patterns/{pattern_id}", response_model=RecurringShiftPatternResponse)
async def get_pattern(
    pattern_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_SCHEDULE)),
):
    try:
        return ScheduleService(db).get_pattern(business_id, pattern_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/patterns/{pattern_id}", response_model=RecurringShiftPatternResponse)
async def update_pattern(
    pattern_id: int,
    pattern_update: RecurringShiftPatternUpdate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    try:
        return ScheduleService(db).update_pattern(business_id, pattern_id, pattern_update)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/patterns/{pattern_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pattern(
    pattern_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Delete a pattern; shifts already materialized from it are kept"""
    try:
        ScheduleService(db).delete_pattern(business_id, pattern_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post(
    "/patterns/{pattern_id}/overrides",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_override(
    pattern_id: int,
    override: OccurrenceOverrideCreate,
    business_id: int = Path(..., gt=0),
    force: bool = Depends(force_flag),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_SCHEDULE)),
):
    """Replace one day of a pattern with a concrete, editable shift"""
    try:
        return ScheduleService(db).materialize_occurrence(business_id, pattern_id, override, force=force)
    except StaffOperationException as e:
        raise to_http_exception(e)
