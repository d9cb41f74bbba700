from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from core.database import get_db
from ..models.staff_models import StaffMember
from ..schemas.staff_schemas import InvitationAccept, InvitationIssued, InvitationResponse
from ..services.invitation_service import InvitationService
from ..exceptions.staff_exceptions import StaffOperationException
from ..utils.permissions import StaffPermissions, require_permission
from .common import to_http_exception

router = APIRouter()

# Accepting needs no staff identity; the token is the credential
public_router = APIRouter()


def _issued(invitation, token: str) -> InvitationIssued:
    response = InvitationIssued.model_validate(invitation)
    response.token = token
    return response


@router.post(
    "/staff/{staff_id}/invite",
    response_model=InvitationIssued,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    """
    Invite a staff member to claim their account.

    Any pending invitation for the same staff member is cancelled. The
    plaintext token is only ever returned here.
    """
    try:
        invitation, token = InvitationService(db).create_invitation(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)
    return _issued(invitation, token)


@router.post("/staff/{staff_id}/invite/resend", response_model=InvitationIssued)
async def resend_invitation(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.MANAGE_STAFF)),
):
    try:
        invitation, token = InvitationService(db).resend_invitation(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)
    return _issued(invitation, token)


@router.get("/staff/{staff_id}/invitation", response_model=InvitationResponse)
async def get_latest_invitation(
    staff_id: int,
    business_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_staff: StaffMember = Depends(require_permission(StaffPermissions.VIEW_STAFF)),
):
    try:
        return InvitationService(db).get_latest_invitation(business_id, staff_id)
    except StaffOperationException as e:
        raise to_http_exception(e)


@public_router.post("/invitations/accept", response_model=InvitationResponse)
async def accept_invitation(
    acceptance: InvitationAccept,
    db: Session = Depends(get_db),
):
    try:
        return InvitationService(db).accept_invitation(acceptance)
    except StaffOperationException as e:
        raise to_http_exception(e)
