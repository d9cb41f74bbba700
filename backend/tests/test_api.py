"""
HTTP tests for the staff scheduling API
"""
import pytest
from datetime import date, datetime, time

from modules.staff.enums.staff_enums import StaffStatus
from modules.staff.enums.time_off_enums import TimeOffStatus
from tests.factories import (
    BUSINESS_ID,
    RecurringShiftPatternFactory,
    RoleFactory,
    ShiftFactory,
    StaffMemberFactory,
    TimeOffRequestFactory,
    TimeOffTypeFactory,
)

BASE = f"/api/v1/businesses/{BUSINESS_ID}"


@pytest.fixture
def stylist(db_session):
    return StaffMemberFactory(first_name="Sam", last_name="Stylist")


class TestIdentity:

    def test_missing_identity_header_is_401(self, client):
        response = client.get(f"{BASE}/schedule/shifts", params={
            "start_date": "2025-01-06", "end_date": "2025-01-12",
        })

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTH_FAILED"

    def test_staff_of_other_business_is_403(self, client):
        outsider = StaffMemberFactory(business_id=2)

        response = client.get(
            f"{BASE}/schedule/shifts",
            params={"start_date": "2025-01-06", "end_date": "2025-01-12"},
            headers={"X-Staff-Member-Id": str(outsider.id)},
        )

        assert response.status_code == 403

    def test_employee_cannot_manage_schedule(self, client, employee_headers, stylist):
        response = client.post(f"{BASE}/schedule/shifts", headers=employee_headers, json={
            "staff_member_id": stylist.id, "date": "2025-01-06",
            "start_time": "09:00", "end_time": "17:00",
        })

        assert response.status_code == 403
        assert "Scheduling.Manage" in response.json()["detail"]

    def test_employee_can_view_schedule(self, client, employee_headers):
        response = client.get(
            f"{BASE}/schedule/shifts",
            params={"start_date": "2025-01-06", "end_date": "2025-01-12"},
            headers=employee_headers,
        )

        assert response.status_code == 200
        assert response.json() == []


class TestShiftEndpoints:

    def test_create_shift(self, client, owner_headers, stylist):
        response = client.post(f"{BASE}/schedule/shifts", headers=owner_headers, json={
            "staff_member_id": stylist.id, "date": "2025-01-06",
            "start_time": "09:00", "end_time": "17:00", "location_id": 1,
        })

        assert response.status_code == 201
        body = response.json()
        assert body["start_time"] == "09:00"
        assert body["end_time"] == "17:00"
        assert body["staff_member_name"] == "Sam Stylist"
        assert body["status"] == "scheduled"

    def test_end_before_start_is_422(self, client, owner_headers, stylist):
        response = client.post(f"{BASE}/schedule/shifts", headers=owner_headers, json={
            "staff_member_id": stylist.id, "date": "2025-01-06",
            "start_time": "17:00", "end_time": "09:00",
        })

        assert response.status_code == 422

    def test_same_location_overlap_is_409_even_when_forced(self, client, owner_headers, stylist):
        ShiftFactory(staff_member=stylist, date=date(2025, 1, 6), location_id=1)
        payload = {
            "staff_member_id": stylist.id, "date": "2025-01-06",
            "start_time": "16:00", "end_time": "20:00", "location_id": 1,
        }

        response = client.post(
            f"{BASE}/schedule/shifts", json=payload,
            headers={**owner_headers, "X-Force-Create": "true"},
        )

        assert response.status_code == 409
        assert response.json()["detail"] == [{
            "type": "overlap",
            "message": "Staff member has 1 overlapping shift(s) on this date at the same location",
            "severity": "error",
        }]

    def test_bulk_overlap_within_request_is_409(self, client, owner_headers, stylist):
        shift = {"staff_member_id": stylist.id, "date": "2025-01-06", "location_id": 1}

        response = client.post(
            f"{BASE}/schedule/shifts/bulk",
            json={"shifts": [
                {**shift, "start_time": "09:00", "end_time": "17:00"},
                {**shift, "start_time": "16:00", "end_time": "20:00"},
            ]},
            headers={**owner_headers, "X-Force-Create": "true"},
        )

        assert response.status_code == 409
        assert response.json()["detail"][0]["type"] == "overlap"
        listed = client.get(
            f"{BASE}/schedule/shifts",
            params={"start_date": "2025-01-06", "end_date": "2025-01-06"},
            headers=owner_headers,
        )
        assert listed.json() == []

    def test_overtime_warning_needs_force(self, client, owner_headers, stylist):
        for day in range(6, 11):
            ShiftFactory(
                staff_member=stylist, date=date(2025, 1, day),
                start_time=time(9, 0), end_time=time(16, 0),
            )
        payload = {
            "staff_member_id": stylist.id, "date": "2025-01-11",
            "start_time": "09:00", "end_time": "15:00",
        }

        blocked = client.post(f"{BASE}/schedule/shifts", headers=owner_headers, json=payload)
        assert blocked.status_code == 409
        assert blocked.json()["detail"][0]["type"] == "overtime"
        assert blocked.json()["detail"][0]["severity"] == "warning"

        forced = client.post(
            f"{BASE}/schedule/shifts", json=payload,
            headers={**owner_headers, "X-Force-Create": "true"},
        )
        assert forced.status_code == 201

    def test_conflict_preview_saves_nothing(self, client, owner_headers, stylist):
        ShiftFactory(staff_member=stylist, date=date(2025, 1, 6), location_id=2)

        response = client.post(f"{BASE}/schedule/conflicts", headers=owner_headers, json={
            "staff_member_id": stylist.id, "date": "2025-01-06",
            "start_time": "10:00", "end_time": "11:00", "location_id": 1,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["has_warnings"] is True
        assert body["has_errors"] is False
        assert body["conflicts"][0]["type"] == "location_conflict"

        listed = client.get(
            f"{BASE}/schedule/shifts",
            params={"start_date": "2025-01-06", "end_date": "2025-01-06"},
            headers=owner_headers,
        )
        assert len(listed.json()) == 1

    def test_update_and_delete_shift(self, client, owner_headers, stylist):
        shift = ShiftFactory(staff_member=stylist, date=date(2025, 1, 6))

        updated = client.put(
            f"{BASE}/schedule/shifts/{shift.id}", headers=owner_headers,
            json={"start_time": "10:00", "notes": "Late start"},
        )
        assert updated.status_code == 200
        assert updated.json()["start_time"] == "10:00"

        deleted = client.delete(f"{BASE}/schedule/shifts/{shift.id}", headers=owner_headers)
        assert deleted.status_code == 204

        missing = client.get(f"{BASE}/schedule/shifts/{shift.id}", headers=owner_headers)
        assert missing.status_code == 404


class TestOccurrenceFeed:

    def test_feed_mixes_shifts_and_pattern_occurrences(self, client, owner_headers, stylist):
        pattern = RecurringShiftPatternFactory(
            staff_member=stylist, rrule="FREQ=WEEKLY;BYDAY=MO,WE,FR", pattern_start=date(2025, 1, 1)
        )
        shift = ShiftFactory(
            staff_member=stylist, date=date(2025, 1, 14), start_time=time(12, 0), end_time=time(18, 0)
        )

        response = client.get(
            f"{BASE}/schedule/occurrences",
            params={"start_date": "2025-01-13", "end_date": "2025-01-17"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        feed = response.json()
        assert [(o["date"], o["source"]) for o in feed] == [
            ("2025-01-13", "pattern"),
            ("2025-01-14", "shift"),
            ("2025-01-15", "pattern"),
            ("2025-01-17", "pattern"),
        ]
        assert feed[0]["pattern_id"] == pattern.id
        assert feed[1]["shift_id"] == shift.id

    def test_inverted_range_is_rejected(self, client, owner_headers):
        response = client.get(
            f"{BASE}/schedule/occurrences",
            params={"start_date": "2025-01-17", "end_date": "2025-01-13"},
            headers=owner_headers,
        )

        assert response.status_code == 400

    def test_availability(self, client, owner_headers, stylist):
        ShiftFactory(staff_member=stylist, date=date(2025, 1, 7))
        TimeOffRequestFactory(
            staff_member=stylist, status=TimeOffStatus.APPROVED,
            start_date=date(2025, 1, 6), end_date=date(2025, 1, 6),
        )

        response = client.get(
            f"{BASE}/schedule/availability/{stylist.id}",
            params={"start_date": "2025-01-06", "end_date": "2025-01-07"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert [(s["date"], s["kind"], s["all_day"]) for s in response.json()] == [
            ("2025-01-06", "timeoff", True),
            ("2025-01-07", "shift", False),
        ]


class TestRecurringPatternEndpoints:

    def test_create_pattern_normalizes_rule(self, client, owner_headers, stylist):
        response = client.post(f"{BASE}/schedule/patterns", headers=owner_headers, json={
            "staff_member_id": stylist.id, "rrule": "freq=weekly; byday=mo,tu",
            "start_time": "08:00", "end_time": "12:00", "pattern_start": "2025-01-06",
        })

        assert response.status_code == 201
        assert response.json()["rrule"] == "FREQ=WEEKLY;BYDAY=MO,TU"

    def test_bad_rule_is_422(self, client, owner_headers, stylist):
        response = client.post(f"{BASE}/schedule/patterns", headers=owner_headers, json={
            "staff_member_id": stylist.id, "rrule": "FREQ=MONTHLY;BYMONTHDAY=1",
            "start_time": "08:00", "end_time": "12:00", "pattern_start": "2025-01-06",
        })

        assert response.status_code == 422

    def test_override_replaces_generated_occurrence(self, client, owner_headers, stylist):
        pattern = RecurringShiftPatternFactory(
            staff_member=stylist, rrule="FREQ=WEEKLY;BYDAY=MO", pattern_start=date(2025, 1, 6)
        )

        created = client.post(
            f"{BASE}/schedule/patterns/{pattern.id}/overrides", headers=owner_headers,
            json={"date": "2025-01-13", "start_time": "11:00", "end_time": "15:00"},
        )
        assert created.status_code == 201
        assert created.json()["is_override"] is True

        feed = client.get(
            f"{BASE}/schedule/occurrences",
            params={"start_date": "2025-01-13", "end_date": "2025-01-13"},
            headers=owner_headers,
        ).json()
        assert [(o["source"], o["start_time"]) for o in feed] == [("shift", "11:00")]


class TestTimeOffEndpoints:

    def test_employee_requests_and_owner_approves(
        self, client, owner_headers, employee, employee_headers
    ):
        vacation = TimeOffTypeFactory(name="Vacation")
        ShiftFactory(staff_member=employee, date=date(2025, 1, 6))

        created = client.post(f"{BASE}/time-off/requests", headers=employee_headers, json={
            "staff_member_id": employee.id, "time_off_type_id": vacation.id,
            "start_date": "2025-01-06", "end_date": "2025-01-07",
        })
        assert created.status_code == 201
        request_id = created.json()["id"]

        pending = client.get(f"{BASE}/time-off/requests/pending-count", headers=owner_headers)
        assert pending.json() == {"count": 1}

        employee_approval = client.post(
            f"{BASE}/time-off/requests/{request_id}/approve", headers=employee_headers, json={}
        )
        assert employee_approval.status_code == 403

        approved = client.post(
            f"{BASE}/time-off/requests/{request_id}/approve", headers=owner_headers, json={}
        )
        assert approved.status_code == 200
        body = approved.json()
        assert body["status"] == "approved"
        assert body["approved_by_staff_name"] == "Olivia Owner"
        assert [(o["source"], o["date"]) for o in body["conflicting_occurrences"]] == [
            ("shift", "2025-01-06"),
        ]

    def test_employee_cannot_request_for_someone_else(
        self, client, employee_headers, stylist
    ):
        vacation = TimeOffTypeFactory()

        response = client.post(f"{BASE}/time-off/requests", headers=employee_headers, json={
            "staff_member_id": stylist.id, "time_off_type_id": vacation.id,
            "start_date": "2025-01-06", "end_date": "2025-01-06",
        })

        assert response.status_code == 403

    def test_only_owner_of_request_or_manager_can_cancel(
        self, client, owner_headers, employee_headers, stylist
    ):
        request = TimeOffRequestFactory(staff_member=stylist)

        denied = client.post(
            f"{BASE}/time-off/requests/{request.id}/cancel", headers=employee_headers
        )
        assert denied.status_code == 403

        cancelled = client.post(
            f"{BASE}/time-off/requests/{request.id}/cancel", headers=owner_headers
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

    def test_types_are_seeded_on_first_list(self, client, employee_headers):
        response = client.get(f"{BASE}/time-off/types", headers=employee_headers)

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Personal", "Sick", "Vacation"]


class TestStaffAndRoleEndpoints:

    def test_create_and_list_staff(self, client, owner_headers):
        created = client.post(f"{BASE}/staff", headers=owner_headers, json={
            "first_name": "Nia", "last_name": "New", "email": "Nia@Example.com",
            "location_ids": [3],
        })
        assert created.status_code == 201
        assert created.json()["email"] == "nia@example.com"
        assert created.json()["locations"][0]["is_primary"] is True

        listed = client.get(f"{BASE}/staff", params={"location_id": 3}, headers=owner_headers)
        assert [s["id"] for s in listed.json()] == [created.json()["id"]]

    def test_remove_primary_location_is_rejected(self, client, owner_headers, stylist):
        client.post(
            f"{BASE}/staff/{stylist.id}/locations", headers=owner_headers, json={"location_id": 4}
        )

        response = client.delete(f"{BASE}/staff/{stylist.id}/locations/4", headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Cannot remove primary location. Assign a different primary location first."
        )

    def test_permission_catalog(self, client, employee_headers):
        response = client.get(f"{BASE}/roles/permissions", headers=employee_headers)

        # Employees lack Staff.View
        assert response.status_code == 403

    def test_role_management_requires_business_settings(self, client, owner_headers, employee_headers):
        denied = client.post(f"{BASE}/roles", headers=employee_headers, json={"name": "Lead"})
        assert denied.status_code == 403

        created = client.post(f"{BASE}/roles", headers=owner_headers, json={
            "name": "Lead", "permissions": ["Scheduling.View", "Scheduling.Manage"],
        })
        assert created.status_code == 201
        assert created.json()["permissions"] == ["Scheduling.View", "Scheduling.Manage"]

    def test_archive_then_delete_staff(self, client, owner_headers, stylist):
        refused = client.delete(f"{BASE}/staff/{stylist.id}", headers=owner_headers)
        assert refused.status_code == 400
        assert refused.json()["detail"] == "Only archived staff members can be deleted"

        archived = client.put(
            f"{BASE}/staff/{stylist.id}/status", headers=owner_headers, json={"status": "archived"}
        )
        assert archived.json()["status"] == "archived"

        deleted = client.delete(f"{BASE}/staff/{stylist.id}", headers=owner_headers)
        assert deleted.status_code == 204

        assert client.get(f"{BASE}/staff/{stylist.id}", headers=owner_headers).status_code == 404
        listed = client.get(f"{BASE}/staff", headers=owner_headers)
        assert stylist.id not in [s["id"] for s in listed.json()]

    def test_deleted_staff_lose_access(self, client):
        gone = StaffMemberFactory(
            role=RoleFactory(owner=True), status=StaffStatus.ARCHIVED, deleted_at=datetime.utcnow()
        )

        response = client.get(f"{BASE}/staff", headers={"X-Staff-Member-Id": str(gone.id)})

        assert response.status_code == 403

    def test_archived_staff_cannot_act(self, client):
        archived = StaffMemberFactory(role=RoleFactory(owner=True), status=StaffStatus.ARCHIVED)

        response = client.get(f"{BASE}/staff", headers={"X-Staff-Member-Id": str(archived.id)})

        assert response.status_code == 403
        assert response.json()["detail"] == "Archived staff members cannot perform operations"

    def test_service_assignments(self, client, owner_headers, stylist):
        created = client.post(
            f"{BASE}/staff/{stylist.id}/services", headers=owner_headers, json={"service_id": 12}
        )
        assert created.status_code == 201
        assert created.json()["service_id"] == 12
        assert created.json()["service_name"] is None

        duplicate = client.post(
            f"{BASE}/staff/{stylist.id}/services", headers=owner_headers, json={"service_id": 12}
        )
        assert duplicate.status_code == 400

        listed = client.get(f"{BASE}/staff/{stylist.id}/services", headers=owner_headers)
        assert [s["service_id"] for s in listed.json()] == [12]

        removed = client.delete(f"{BASE}/staff/{stylist.id}/services/12", headers=owner_headers)
        assert removed.status_code == 204
        missing = client.delete(f"{BASE}/staff/{stylist.id}/services/12", headers=owner_headers)
        assert missing.status_code == 404

    def test_employee_cannot_assign_services(self, client, employee_headers, stylist):
        response = client.post(
            f"{BASE}/staff/{stylist.id}/services", headers=employee_headers, json={"service_id": 1}
        )

        assert response.status_code == 403


class TestInvitationEndpoints:

    def test_invite_accept_and_check_status(self, client, owner_headers, stylist):
        issued = client.post(f"{BASE}/staff/{stylist.id}/invite", headers=owner_headers)
        assert issued.status_code == 201
        body = issued.json()
        assert body["status"] == "pending"
        assert body["is_expired"] is False
        assert body["token"]

        accepted = client.post("/api/v1/invitations/accept", json={
            "token": body["token"], "password": "correct-horse", "last_name": "Styles",
        })
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        latest = client.get(f"{BASE}/staff/{stylist.id}/invitation", headers=owner_headers)
        assert latest.json()["id"] == body["id"]
        assert latest.json()["status"] == "accepted"
        assert "token" not in latest.json()

        staff = client.get(f"{BASE}/staff/{stylist.id}", headers=owner_headers)
        assert staff.json()["last_name"] == "Styles"

    def test_resend_returns_a_new_token(self, client, owner_headers, stylist):
        first = client.post(f"{BASE}/staff/{stylist.id}/invite", headers=owner_headers).json()

        resent = client.post(f"{BASE}/staff/{stylist.id}/invite/resend", headers=owner_headers)

        assert resent.status_code == 200
        assert resent.json()["token"] != first["token"]
        stale = client.post("/api/v1/invitations/accept", json={
            "token": first["token"], "password": "correct-horse",
        })
        assert stale.status_code == 400
        assert stale.json()["detail"] == "Invalid or expired invitation token"

    def test_resend_without_invitation_is_404(self, client, owner_headers, stylist):
        response = client.post(f"{BASE}/staff/{stylist.id}/invite/resend", headers=owner_headers)

        assert response.status_code == 404

    def test_latest_without_invitation_is_404(self, client, owner_headers, stylist):
        response = client.get(f"{BASE}/staff/{stylist.id}/invitation", headers=owner_headers)

        assert response.status_code == 404

    def test_short_password_is_422(self, client):
        response = client.post("/api/v1/invitations/accept", json={
            "token": "anything", "password": "short",
        })

        assert response.status_code == 422

    def test_employee_cannot_invite(self, client, employee_headers, stylist):
        response = client.post(f"{BASE}/staff/{stylist.id}/invite", headers=employee_headers)

        assert response.status_code == 403
