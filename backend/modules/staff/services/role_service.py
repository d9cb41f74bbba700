from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
import logging

from ..models.staff_models import Role, StaffMember, StaffLocation
from ..schemas.staff_schemas import RoleCreate, RoleUpdate
from ..exceptions.staff_exceptions import (
    ResourceNotFoundException,
    OperationNotPermittedException,
)
from ..utils.permissions import StaffPermissions


logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, db: Session):
        self.db = db

    def ensure_default_roles(self, business_id: int) -> None:
        """Create any missing Owner, Manager and Employee roles for a business"""
        existing = {
            name.lower()
            for (name,) in self.db.query(Role.name).filter(
                and_(Role.business_id == business_id, Role.is_default.is_(True))
            ).all()
        }

        missing = [
            (name, description, permissions)
            for name, (description, permissions) in StaffPermissions.DEFAULT_ROLES.items()
            if name.lower() not in existing
        ]
        if not missing:
            return

        try:
            for name, description, permissions in missing:
                self.db.add(Role(
                    business_id=business_id,
                    name=name,
                    description=description,
                    permissions=list(permissions),
                    is_default=True,
                    is_immutable=True,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error seeding default roles for business {business_id}: {str(e)}")
            raise

        logger.info(f"Seeded {len(missing)} default role(s) for business {business_id}")

    def list_roles(self, business_id: int) -> List[Role]:
        self.ensure_default_roles(business_id)
        return self.db.query(Role).filter(Role.business_id == business_id).order_by(
            Role.is_default.desc(), Role.name
        ).all()

    def get_role(self, business_id: int, role_id: int) -> Role:
        role = self.db.query(Role).filter(
            and_(Role.id == role_id, Role.business_id == business_id)
        ).first()
        if not role:
            raise ResourceNotFoundException("Role", role_id)
        return role

    def create_role(self, business_id: int, role_data: RoleCreate) -> Role:
        self._ensure_unique_name(business_id, role_data.name)

        permissions = role_data.permissions
        if role_data.clone_from_role_id is not None:
            source = self.get_role(business_id, role_data.clone_from_role_id)
            permissions = list(source.permissions or [])

        role = Role(
            business_id=business_id,
            name=role_data.name,
            description=role_data.description,
            permissions=permissions,
            is_default=False,
            is_immutable=False,
        )
        try:
            self.db.add(role)
            self.db.commit()
            self.db.refresh(role)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating role '{role_data.name}': {str(e)}")
            raise
        return role

    def update_role(self, business_id: int, role_id: int, role_data: RoleUpdate) -> Role:
        """
        Update a role.

        Immutable roles keep their name, and the Owner role always keeps every
        permission.
        """
        role = self.get_role(business_id, role_id)

        if role_data.name is not None and role_data.name.lower() != role.name.lower():
            if role.is_immutable:
                raise OperationNotPermittedException("Cannot rename a default role")
            self._ensure_unique_name(business_id, role_data.name, exclude_id=role_id)

        if role_data.permissions is not None and role.name.lower() == StaffPermissions.OWNER_ROLE.lower():
            raise OperationNotPermittedException(
                "Cannot modify Owner role permissions - all permissions are always enabled"
            )

        try:
            if role_data.name is not None:
                role.name = role_data.name
            if role_data.description is not None:
                role.description = role_data.description
            if role_data.permissions is not None:
                role.permissions = list(role_data.permissions)
            self.db.commit()
            self.db.refresh(role)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating role {role_id}: {str(e)}")
            raise
        return role

    def delete_role(self, business_id: int, role_id: int) -> None:
        role = self.get_role(business_id, role_id)

        if role.is_default:
            raise OperationNotPermittedException("Cannot delete default roles (Owner, Manager, Employee)")

        assigned_staff = self.db.query(StaffMember.id).filter(
            StaffMember.role_id == role_id, StaffMember.deleted_at.is_(None)
        ).first()
        assigned_locations = self.db.query(StaffLocation.id).filter(StaffLocation.role_id == role_id).first()
        if assigned_staff or assigned_locations:
            raise OperationNotPermittedException(
                "Cannot delete role that is assigned to staff members. Reassign staff first."
            )

        try:
            self.db.delete(role)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting role {role_id}: {str(e)}")
            raise

    def assign_role(self, business_id: int, staff_id: int, role_id: int) -> StaffMember:
        role = self.get_role(business_id, role_id)
        staff = self.db.query(StaffMember).filter(
            and_(
                StaffMember.id == staff_id,
                StaffMember.business_id == business_id,
                StaffMember.deleted_at.is_(None),
            )
        ).first()
        if not staff:
            raise ResourceNotFoundException("Staff member", staff_id)

        try:
            staff.role_id = role.id
            self.db.commit()
            self.db.refresh(staff)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error assigning role {role_id} to staff member {staff_id}: {str(e)}")
            raise

        logger.info(f"Staff member {staff_id} assigned role '{role.name}'")
        return staff

    def _ensure_unique_name(
        self, business_id: int, name: str, exclude_id: Optional[int] = None
    ) -> None:
        query = self.db.query(Role.id).filter(
            and_(Role.business_id == business_id, func.lower(Role.name) == name.lower())
        )
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first():
            raise OperationNotPermittedException("A role with this name already exists in this business")
