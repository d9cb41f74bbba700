from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from core.database import get_db
from ..models.staff_models import StaffMember
from ..enums.time_off_enums import TimeOffStatus
from ..schemas.time_off_schemas import (
    TimeOffTypeCreate, TimeOffTypeUpdate, TimeOffTypeResponse,
    TimeOffRequestCreate, TimeOffRequestResponse, TimeOffApprovalResponse,
    TimeOffDecision, PendingCountResponse,
)
from ..services.time_off_service import TimeOffService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter()


# Time-Off Types
@router.get("/types", response_model=List[TimeOffTypeResponse])
async def list_time_off_types(
    business_id: int = Path(..., gt=0),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    """List time-off types, seeding the defaults on first use"""
    return TimeOffService(db).list_types(business_id, include_inactive)


@router.post("/types", response_model=TimeOffTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_time_off_type(
    type_data: TimeOffTypeCreate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_TIME_OFF)),
):
    try:
        return TimeOffService(db).create_type(business_id, type_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/types/{type_id}", response_model=TimeOffTypeResponse)
async def update_time_off_type(
    type_id: int,
    type_data: TimeOffTypeUpdate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_TIME_OFF)),
):
    try:
        return TimeOffService(db).update_type(business_id, type_id, type_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/types/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_off_type(
    type_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_TIME_OFF)),
):
    """Delete a type; types still referenced by requests are deactivated"""
    try:
        TimeOffService(db).delete_type(business_id, type_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


# Time-Off Requests
@router.get("/requests", response_model=List[TimeOffRequestResponse])
async def list_time_off_requests(
    business_id: int = Path(..., gt=0),
    staff_member_id: Optional[int] = Query(None),
    request_status: Optional[TimeOffStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    return TimeOffService(db).list_requests(business_id, staff_member_id, request_status)


@router.get("/requests/pending-count", response_model=PendingCountResponse)
async def get_pending_count(
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    return PendingCountResponse(count=TimeOffService(db).get_pending_count(business_id))


@router.post("/requests", response_model=TimeOffRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_time_off_request(
    request_data: TimeOffRequestCreate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    """Submit a request; staff without TimeOff.Manage may only request for themselves"""
    if (
        request_data.staff_member_id != current_staff.id
        and not StaffPermissions.check_permission(current_staff, StaffPermissions.MANAGE_TIME_OFF)
    ):
        raise to_http_exception(
            StaffOperationException(
                f"Insufficient permissions: {StaffPermissions.MANAGE_TIME_OFF} required",
                status_code=status.HTTP_403_FORBIDDEN,
            )
        )

    try:
        return TimeOffService(db).create_request(business_id, request_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.get("/requests/{request_id}", response_model=TimeOffRequestResponse)
async def get_time_off_request(
    request_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    try:
        return TimeOffService(db).get_request(business_id, request_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post("/requests/{request_id}/approve", response_model=TimeOffApprovalResponse)
async def approve_time_off_request(
    request_id: int,
    decision: TimeOffDecision,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.APPROVE_TIME_OFF)),
):
    """
    Approve a pending request.

    The response lists the scheduled occurrences inside the approved period;
    they are not cancelled automatically.
    """
    try:
        request, conflicting = TimeOffService(db).approve_request(
            business_id, request_id, current_staff.id, decision
        )
    except StaffOperationException as e:
        raise to_http_exception(e)

    response = TimeOffApprovalResponse.model_validate(request)
    response.conflicting_occurrences = conflicting
    return response


@router.post("/requests/{request_id}/deny", response_model=TimeOffRequestResponse)
async def deny_time_off_request(
    request_id: int,
    decision: TimeOffDecision,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.APPROVE_TIME_OFF)),
):
    try:
        return TimeOffService(db).deny_request(business_id, request_id, current_staff.id, decision)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.post("/requests/{request_id}/cancel", response_model=TimeOffRequestResponse)
async def cancel_time_off_request(
    request_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_TIME_OFF)),
):
    """Cancel a pending request (own requests, or any with TimeOff.Manage)"""
    service = TimeOffService(db)
    try:
        request = service.get_request(business_id, request_id)
        if (
            request.staff_member_id != current_staff.id
            and not StaffPermissions.check_permission(current_staff, StaffPermissions.MANAGE_TIME_OFF)
        ):
            raise StaffOperationException(
                f"Insufficient permissions: {StaffPermissions.MANAGE_TIME_OFF} required",
                status_code=status.HTTP_403_FORBIDDEN,
            )
        return service.cancel_request(business_id, request_id)
    except StaffOperationException as e:
        raise to_http_exception(e)
