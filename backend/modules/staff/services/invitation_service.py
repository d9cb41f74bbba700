from sqlalchemy.orm import Session
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timedelta
from typing import Tuple
import hashlib
import logging
import secrets

from core.config import get_settings
from ..models.staff_models import StaffMember, Invitation
from ..enums.staff_enums import StaffStatus, InvitationStatus
from ..schemas.staff_schemas import InvitationAccept
from ..exceptions.staff_exceptions import (
    ResourceNotFoundException,
    OperationNotPermittedException,
)


logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired invitation token"


def hash_token(token: str) -> str:
    """Hash an invitation token for storage and lookup."""
    return hashlib.sha256(token.encode()).hexdigest()


class InvitationService:
    """
    Staff onboarding invitations.

    A staff member has at most one pending invitation: issuing a new one
    cancels the previous ones. Tokens are handed back to the caller once and
    only their sha256 hash is persisted. Delivering the token by email is
    left to the caller.
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def create_invitation(self, business_id: int, staff_id: int) -> Tuple[Invitation, str]:
        staff = self._get_invitable_staff(business_id, staff_id)
        return self._issue(staff)

    def resend_invitation(self, business_id: int, staff_id: int) -> Tuple[Invitation, str]:
        """Replace the latest invitation with a fresh token and expiry"""
        staff = self._get_invitable_staff(business_id, staff_id)

        latest = self._latest(staff_id)
        if latest is None:
            raise ResourceNotFoundException("Invitation for staff member", staff_id)
        if latest.status == InvitationStatus.ACCEPTED:
            raise OperationNotPermittedException("Invitation has already been accepted")

        return self._issue(staff)

    def accept_invitation(self, acceptance: InvitationAccept) -> Invitation:
        """
        Accept a pending invitation by its plaintext token.

        An expired invitation is marked EXPIRED and rejected. Optional names
        overwrite the staff member's. The password belongs to the identity
        provider and is not stored here.

        Raises:
            OperationNotPermittedException: unknown, used or expired token
        """
        invitation = self.db.query(Invitation).join(Invitation.staff_member).filter(
            and_(
                Invitation.token_hash == hash_token(acceptance.token),
                Invitation.status == InvitationStatus.PENDING,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not invitation:
            raise OperationNotPermittedException(INVALID_TOKEN_MESSAGE)

        now = datetime.utcnow()
        if invitation.expires_at <= now:
            try:
                invitation.status = InvitationStatus.EXPIRED
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error expiring invitation {invitation.id}: {str(e)}")
                raise
            logger.info(f"Rejected expired invitation {invitation.id}")
            raise OperationNotPermittedException(INVALID_TOKEN_MESSAGE)

        staff = invitation.staff_member
        try:
            invitation.status = InvitationStatus.ACCEPTED
            invitation.accepted_at = now
            if acceptance.first_name:
                staff.first_name = acceptance.first_name
            if acceptance.last_name:
                staff.last_name = acceptance.last_name
            staff.updated_at = now
            self.db.commit()
            self.db.refresh(invitation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error accepting invitation {invitation.id}: {str(e)}")
            raise

        logger.info(f"Staff member {staff.id} accepted invitation {invitation.id}")
        return invitation

    def get_latest_invitation(self, business_id: int, staff_id: int) -> Invitation:
        self._get_staff(business_id, staff_id)
        latest = self._latest(staff_id)
        if latest is None:
            raise ResourceNotFoundException("Invitation for staff member", staff_id)
        return latest

    # Helpers

    def _issue(self, staff: StaffMember) -> Tuple[Invitation, str]:
        token = secrets.token_urlsafe(32)
        now = datetime.utcnow()

        try:
            cancelled = self.db.query(Invitation).filter(
                and_(
                    Invitation.staff_member_id == staff.id,
                    Invitation.status == InvitationStatus.PENDING,
                )
            ).update({Invitation.status: InvitationStatus.CANCELLED}, synchronize_session="fetch")

            invitation = Invitation(
                business_id=staff.business_id,
                staff_member_id=staff.id,
                token_hash=hash_token(token),
                email=staff.email,
                status=InvitationStatus.PENDING,
                expires_at=now + timedelta(days=self.settings.invitation_expiry_days),
                created_at=now,
            )
            self.db.add(invitation)
            self.db.commit()
            self.db.refresh(invitation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error issuing invitation for staff member {staff.id}: {str(e)}")
            raise

        if cancelled:
            logger.info(f"Cancelled {cancelled} pending invitation(s) for staff member {staff.id}")
        logger.info(f"Issued invitation {invitation.id} to {staff.email}; delivery is up to the caller")
        return invitation, token

    def _latest(self, staff_id: int):
        return self.db.query(Invitation).filter(
            Invitation.staff_member_id == staff_id
        ).order_by(Invitation.created_at.desc(), Invitation.id.desc()).first()

    def _get_staff(self, business_id: int, staff_id: int) -> StaffMember:
        staff = self.db.query(StaffMember).filter(
            and_(
                StaffMember.id == staff_id,
                StaffMember.business_id == business_id,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", staff_id)
        return staff

    def _get_invitable_staff(self, business_id: int, staff_id: int) -> StaffMember:
        staff = self._get_staff(business_id, staff_id)
        if staff.status in (StaffStatus.TERMINATED, StaffStatus.ARCHIVED):
            raise OperationNotPermittedException(
                f"Cannot invite a staff member with status '{staff.status.value}'"
            )
        return staff
