"""
Tests for the staff directory, location and service assignments and roles
"""
import pytest

from modules.staff.enums.staff_enums import InvitationStatus, StaffStatus
from modules.staff.exceptions.staff_exceptions import (
    OperationNotPermittedException,
    ResourceNotFoundException,
)
from modules.staff.models.staff_models import StaffLocation, StaffMember, StaffServiceAssignment, Role
from modules.staff.schemas.staff_schemas import (
    RoleCreate,
    RoleUpdate,
    StaffLocationAssign,
    StaffMemberCreate,
    StaffMemberUpdate,
    StaffServiceAssign,
)
from modules.staff.services.role_service import RoleService
from modules.staff.services.staff_service import StaffService
from modules.staff.utils.permissions import StaffPermissions
from tests.factories import (
    BUSINESS_ID,
    InvitationFactory,
    RoleFactory,
    StaffLocationFactory,
    StaffMemberFactory,
    StaffServiceAssignmentFactory,
)


@pytest.fixture
def staff_service(db_session):
    return StaffService(db_session)


@pytest.fixture
def role_service(db_session):
    return RoleService(db_session)


def primary_locations(db_session, staff_id):
    return [
        sl.location_id
        for sl in db_session.query(StaffLocation).filter(
            StaffLocation.staff_member_id == staff_id, StaffLocation.is_primary.is_(True)
        ).all()
    ]


class TestStaffDirectory:

    def test_create_staff_member_with_locations(self, staff_service, db_session):
        staff = staff_service.create_staff_member(BUSINESS_ID, StaffMemberCreate(
            first_name="Ana", last_name="Lopez", email="Ana.Lopez@Example.com",
            location_ids=[10, 20, 10],
        ))

        assert staff.email == "ana.lopez@example.com"
        assert staff.status == StaffStatus.ACTIVE
        assert sorted(sl.location_id for sl in staff.locations) == [10, 20]
        assert primary_locations(db_session, staff.id) == [10]

    def test_duplicate_email_rejected(self, staff_service):
        StaffMemberFactory(email="dup@example.com")

        with pytest.raises(OperationNotPermittedException):
            staff_service.create_staff_member(BUSINESS_ID, StaffMemberCreate(
                first_name="Dup", last_name="Licate", email="DUP@example.com",
            ))

    def test_same_email_allowed_in_other_business(self, staff_service):
        StaffMemberFactory(business_id=2, email="shared@example.com")

        staff = staff_service.create_staff_member(BUSINESS_ID, StaffMemberCreate(
            first_name="Sha", last_name="Red", email="shared@example.com",
        ))

        assert staff.business_id == BUSINESS_ID

    def test_invalid_email_rejected(self):
        with pytest.raises(ValueError):
            StaffMemberCreate(first_name="A", last_name="B", email="not-an-email")

    def test_update_ignores_null_required_fields(self, staff_service):
        staff = StaffMemberFactory(first_name="Keep")

        updated = staff_service.update_staff_member(
            BUSINESS_ID, staff.id, StaffMemberUpdate(first_name=None, job_title="Lead")
        )

        assert updated.first_name == "Keep"
        assert updated.job_title == "Lead"

    def test_terminated_is_final(self, staff_service):
        staff = StaffMemberFactory()
        staff_service.change_status(BUSINESS_ID, staff.id, StaffStatus.TERMINATED)

        with pytest.raises(OperationNotPermittedException):
            staff_service.change_status(BUSINESS_ID, staff.id, StaffStatus.ACTIVE)

    def test_list_staff_filters(self, staff_service):
        located = StaffMemberFactory()
        StaffLocationFactory(staff_member=located, location_id=5, is_primary=True)
        StaffMemberFactory(status=StaffStatus.INACTIVE)
        StaffMemberFactory(business_id=2)

        assert len(staff_service.list_staff(BUSINESS_ID)) == 2
        assert [s.id for s in staff_service.list_staff(BUSINESS_ID, location_id=5)] == [located.id]
        assert len(staff_service.list_staff(BUSINESS_ID, status=StaffStatus.INACTIVE)) == 1

    def test_staff_member_of_other_business_not_found(self, staff_service):
        outsider = StaffMemberFactory(business_id=2)

        with pytest.raises(ResourceNotFoundException):
            staff_service.get_staff_member(BUSINESS_ID, outsider.id)


class TestArchiveAndDelete:

    def test_terminated_staff_can_be_archived(self, staff_service):
        staff = StaffMemberFactory(status=StaffStatus.TERMINATED)

        archived = staff_service.change_status(BUSINESS_ID, staff.id, StaffStatus.ARCHIVED)

        assert archived.status == StaffStatus.ARCHIVED

    def test_archived_is_final(self, staff_service):
        staff = StaffMemberFactory(status=StaffStatus.ARCHIVED)

        with pytest.raises(OperationNotPermittedException, match="Archived"):
            staff_service.change_status(BUSINESS_ID, staff.id, StaffStatus.ACTIVE)

    @pytest.mark.parametrize("status", [
        StaffStatus.ACTIVE, StaffStatus.INACTIVE, StaffStatus.ON_LEAVE, StaffStatus.TERMINATED,
    ])
    def test_only_archived_staff_can_be_deleted(self, staff_service, status):
        staff = StaffMemberFactory(status=status)

        with pytest.raises(OperationNotPermittedException, match="Only archived"):
            staff_service.delete_staff_member(BUSINESS_ID, staff.id)

    def test_delete_is_soft(self, staff_service, db_session):
        staff = StaffMemberFactory(status=StaffStatus.ARCHIVED)
        StaffMemberFactory()

        staff_service.delete_staff_member(BUSINESS_ID, staff.id)

        row = db_session.get(StaffMember, staff.id)
        assert row is not None
        assert row.deleted_at is not None
        assert staff.id not in [s.id for s in staff_service.list_staff(BUSINESS_ID)]
        with pytest.raises(ResourceNotFoundException):
            staff_service.get_staff_member(BUSINESS_ID, staff.id)
        with pytest.raises(ResourceNotFoundException):
            staff_service.delete_staff_member(BUSINESS_ID, staff.id)

    def test_delete_cancels_pending_invitations(self, staff_service):
        staff = StaffMemberFactory(status=StaffStatus.ARCHIVED)
        pending = InvitationFactory(staff_member=staff)
        accepted = InvitationFactory(staff_member=staff, status=InvitationStatus.ACCEPTED)

        staff_service.delete_staff_member(BUSINESS_ID, staff.id)

        assert pending.status == InvitationStatus.CANCELLED
        assert accepted.status == InvitationStatus.ACCEPTED

    def test_deleted_staff_keep_their_email(self, staff_service):
        staff = StaffMemberFactory(status=StaffStatus.ARCHIVED, email="gone@example.com")
        staff_service.delete_staff_member(BUSINESS_ID, staff.id)

        with pytest.raises(OperationNotPermittedException):
            staff_service.create_staff_member(BUSINESS_ID, StaffMemberCreate(
                first_name="New", last_name="Hire", email="gone@example.com",
            ))


class TestServiceAssignments:

    def test_assign_and_list(self, staff_service):
        staff = StaffMemberFactory()

        first = staff_service.assign_service(BUSINESS_ID, staff.id, StaffServiceAssign(service_id=7))
        staff_service.assign_service(BUSINESS_ID, staff.id, StaffServiceAssign(service_id=3))

        assert first.staff_member_id == staff.id
        assert first.assigned_at is not None
        assert [s.service_id for s in staff_service.list_services(BUSINESS_ID, staff.id)] == [7, 3]

    def test_duplicate_assignment_rejected(self, staff_service):
        assignment = StaffServiceAssignmentFactory(service_id=9)

        with pytest.raises(OperationNotPermittedException, match="already assigned"):
            staff_service.assign_service(
                BUSINESS_ID, assignment.staff_member_id, StaffServiceAssign(service_id=9)
            )

    def test_same_service_for_different_staff(self, staff_service):
        StaffServiceAssignmentFactory(service_id=9)
        other = StaffMemberFactory()

        assignment = staff_service.assign_service(BUSINESS_ID, other.id, StaffServiceAssign(service_id=9))

        assert assignment.service_id == 9

    def test_remove(self, staff_service, db_session):
        assignment = StaffServiceAssignmentFactory(service_id=4)

        staff_service.remove_service(BUSINESS_ID, assignment.staff_member_id, 4)

        assert db_session.query(StaffServiceAssignment).count() == 0

    def test_remove_unknown_service(self, staff_service):
        staff = StaffMemberFactory()

        with pytest.raises(ResourceNotFoundException, match="Staff service"):
            staff_service.remove_service(BUSINESS_ID, staff.id, 4)

    def test_staff_of_other_business_is_not_found(self, staff_service):
        outsider = StaffMemberFactory(business_id=2)

        with pytest.raises(ResourceNotFoundException):
            staff_service.assign_service(BUSINESS_ID, outsider.id, StaffServiceAssign(service_id=1))
        with pytest.raises(ResourceNotFoundException):
            staff_service.list_services(BUSINESS_ID, outsider.id)


class TestLocationAssignments:

    def test_first_assignment_becomes_primary(self, staff_service, db_session):
        staff = StaffMemberFactory()

        assignment = staff_service.assign_location(
            BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1)
        )

        assert assignment.is_primary

    def test_new_primary_clears_old_one(self, staff_service, db_session):
        staff = StaffMemberFactory()
        staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1))

        staff_service.assign_location(
            BUSINESS_ID, staff.id, StaffLocationAssign(location_id=2, is_primary=True)
        )

        assert primary_locations(db_session, staff.id) == [2]

    def test_duplicate_assignment_rejected(self, staff_service):
        staff = StaffMemberFactory()
        staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1))

        with pytest.raises(OperationNotPermittedException):
            staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1))

    def test_set_primary_leaves_exactly_one(self, staff_service, db_session):
        staff = StaffMemberFactory()
        for location_id in (1, 2, 3):
            staff_service.assign_location(
                BUSINESS_ID, staff.id, StaffLocationAssign(location_id=location_id)
            )

        staff_service.set_primary_location(BUSINESS_ID, staff.id, 3)
        assert primary_locations(db_session, staff.id) == [3]

        staff_service.set_primary_location(BUSINESS_ID, staff.id, 2)
        assert primary_locations(db_session, staff.id) == [2]

    def test_set_primary_on_unassigned_location(self, staff_service):
        staff = StaffMemberFactory()

        with pytest.raises(ResourceNotFoundException):
            staff_service.set_primary_location(BUSINESS_ID, staff.id, 99)

    def test_primary_location_cannot_be_removed(self, staff_service):
        staff = StaffMemberFactory()
        staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1))

        with pytest.raises(OperationNotPermittedException, match="Cannot remove primary location"):
            staff_service.remove_location(BUSINESS_ID, staff.id, 1)

    def test_remove_secondary_location(self, staff_service):
        staff = StaffMemberFactory()
        staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=1))
        staff_service.assign_location(BUSINESS_ID, staff.id, StaffLocationAssign(location_id=2))

        staff_service.remove_location(BUSINESS_ID, staff.id, 2)

        assert [sl.location_id for sl in staff_service.list_locations(BUSINESS_ID, staff.id)] == [1]


class TestRoles:

    def test_default_roles_seeded(self, role_service):
        names = [r.name for r in role_service.list_roles(BUSINESS_ID)]

        assert set(StaffPermissions.DEFAULT_ROLES) <= set(names)

    def test_create_and_clone_role(self, role_service):
        source = role_service.create_role(BUSINESS_ID, RoleCreate(
            name="Front Desk", permissions=[StaffPermissions.VIEW_SCHEDULE, StaffPermissions.VIEW_BOOKINGS],
        ))

        clone = role_service.create_role(BUSINESS_ID, RoleCreate(
            name="Front Desk (Weekend)", clone_from_role_id=source.id,
        ))

        assert clone.permissions == source.permissions
        assert not clone.is_default

    def test_unknown_permission_rejected(self):
        with pytest.raises(ValueError):
            RoleCreate(name="Bad", permissions=["Everything.Everywhere"])

    def test_duplicate_role_name_rejected(self, role_service):
        RoleFactory(name="Senior")

        with pytest.raises(OperationNotPermittedException):
            role_service.create_role(BUSINESS_ID, RoleCreate(name="senior"))

    def test_default_role_cannot_be_renamed(self, role_service):
        role_service.ensure_default_roles(BUSINESS_ID)
        manager = next(r for r in role_service.list_roles(BUSINESS_ID) if r.name == "Manager")

        with pytest.raises(OperationNotPermittedException):
            role_service.update_role(BUSINESS_ID, manager.id, RoleUpdate(name="Boss"))

    def test_default_role_permissions_can_change(self, role_service):
        employee = next(r for r in role_service.list_roles(BUSINESS_ID) if r.name == "Employee")

        updated = role_service.update_role(
            BUSINESS_ID, employee.id, RoleUpdate(permissions=[StaffPermissions.VIEW_SCHEDULE])
        )

        assert updated.permissions == [StaffPermissions.VIEW_SCHEDULE]

    def test_owner_permissions_are_locked(self, role_service):
        owner = next(r for r in role_service.list_roles(BUSINESS_ID) if r.name == "Owner")

        with pytest.raises(OperationNotPermittedException):
            role_service.update_role(BUSINESS_ID, owner.id, RoleUpdate(permissions=[]))

    def test_default_role_cannot_be_deleted(self, role_service):
        owner = next(r for r in role_service.list_roles(BUSINESS_ID) if r.name == "Owner")

        with pytest.raises(OperationNotPermittedException):
            role_service.delete_role(BUSINESS_ID, owner.id)

    def test_assigned_role_cannot_be_deleted(self, role_service):
        role = RoleFactory()
        StaffMemberFactory(role=role)

        with pytest.raises(OperationNotPermittedException):
            role_service.delete_role(BUSINESS_ID, role.id)

    def test_location_assigned_role_cannot_be_deleted(self, role_service):
        role = RoleFactory()
        StaffLocationFactory(role_id=role.id)

        with pytest.raises(OperationNotPermittedException):
            role_service.delete_role(BUSINESS_ID, role.id)

    def test_delete_unused_role(self, role_service, db_session):
        role = RoleFactory()

        role_service.delete_role(BUSINESS_ID, role.id)

        assert db_session.get(Role, role.id) is None

    def test_assign_role(self, role_service):
        role = RoleFactory(permissions=[StaffPermissions.MANAGE_SCHEDULE])
        staff = StaffMemberFactory()

        updated = role_service.assign_role(BUSINESS_ID, staff.id, role.id)

        assert updated.role_id == role.id
        assert StaffPermissions.check_permission(updated, StaffPermissions.MANAGE_SCHEDULE)


class TestPermissions:

    def test_location_role_grants_add_to_business_role(self):
        base = RoleFactory.build(permissions=[StaffPermissions.VIEW_SCHEDULE])
        local = RoleFactory.build(permissions=[StaffPermissions.MANAGE_SCHEDULE])
        staff = StaffMemberFactory.build(role=base)
        staff.locations = [
            StaffLocationFactory.build(staff_member=None, location_id=7, role=local),
        ]

        assert StaffPermissions.get_permissions(staff) == {
            StaffPermissions.VIEW_SCHEDULE, StaffPermissions.MANAGE_SCHEDULE,
        }
        assert StaffPermissions.get_permissions(staff, location_id=8) == {
            StaffPermissions.VIEW_SCHEDULE,
        }

    def test_no_role_means_no_permissions(self):
        staff = StaffMemberFactory.build(role=None)

        assert not StaffPermissions.check_permission(staff, StaffPermissions.VIEW_SCHEDULE)
