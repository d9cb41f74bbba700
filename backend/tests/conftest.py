# backend/tests/conftest.py

import pytest
from fastapi.testclient import TestClient

from core.database import Base, build_engine, get_db
import modules.staff.models  # noqa: F401
from app.main import app

from tests.factories import TestSession, BUSINESS_ID, RoleFactory, StaffMemberFactory


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    test_engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(engine):
    TestSession.configure(bind=engine)
    session = TestSession()
    yield session
    session.rollback()
    TestSession.remove()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def business_id():
    return BUSINESS_ID


@pytest.fixture
def owner(db_session):
    """Staff member holding the Owner role (every permission)"""
    return StaffMemberFactory(role=RoleFactory(owner=True), first_name="Olivia", last_name="Owner")


@pytest.fixture
def owner_headers(owner):
    return {"X-Staff-Member-Id": str(owner.id)}


@pytest.fixture
def employee(db_session):
    """Staff member with the default Employee grants"""
    role = RoleFactory(
        name="Employee",
        permissions=["Scheduling.View", "TimeOff.View", "Bookings.View"],
        is_default=True,
        is_immutable=True,
    )
    return StaffMemberFactory(role=role, first_name="Eli", last_name="Employee")


@pytest.fixture
def employee_headers(employee):
    return {"X-Staff-Member-Id": str(employee.id)}


