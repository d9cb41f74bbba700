from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session
from typing import List

from core.database import get_db
from ..models.staff_models import StaffMember
from ..schemas.staff_schemas import (
    RoleCreate, RoleUpdate, RoleResponse, StaffRoleAssign, StaffMemberResponse,
)
from ..services.role_service import RoleService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import to_http_exception

router = APIRouter()


@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    """List roles, default roles first"""
    return RoleService(db).list_roles(business_id)


@router.get("/roles/permissions", response_model=List[str])
async def list_permission_names(
    business_id: int = Path(..., gt=0),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    return StaffPermissions.ALL


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_BUSINESS_SETTINGS)),
):
    try:
        return RoleService(db).create_role(business_id, role_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    role_data: RoleUpdate,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_BUSINESS_SETTINGS)),
):
    try:
        return RoleService(db).update_role(business_id, role_id, role_data)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_BUSINESS_SETTINGS)),
):
    try:
        RoleService(db).delete_role(business_id, role_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@router.put("/staff/{staff_id}/role", response_model=StaffMemberResponse)
async def assign_staff_role(
    staff_id: int,
    assignment: StaffRoleAssign,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        return RoleService(db).assign_role(business_id, staff_id, assignment.role_id)
    except StaffOperationException as e:
        raise to_http_exception(e)
