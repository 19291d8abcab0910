from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from carelog.api.core.dependencies.auth import get_current_user
from carelog.api.db.database import create_tables, get_db

# Import all models to ensure they are registered with SQLAlchemy before creating tables
from carelog.api.modules.v1.hardware.models.hardware_model import Hardware
from carelog.api.modules.v1.notifications.models.notification_model import Notification  # noqa: F401
from carelog.api.modules.v1.organization.models.organization_model import Location, Organization
from carelog.api.modules.v1.tickets.models import Ticket  # noqa: F401
from carelog.api.modules.v1.users.models.users_model import MembershipRole, OrgMembership, Profile
from carelog.api.modules.v1.users.schemas.actor_schema import Actor

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def test_session():
    """In-memory SQLite session with every table created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await create_tables(engine)

    async with async_session_maker() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def seed(test_session):
    """
    One organization with a location and a device, two platform staff members,
    an org admin and an ordinary employee who submits tickets.
    """
    org = Organization(name="Acme Dental")
    other_org = Organization(name="Northwind Clinic")
    test_session.add_all([org, other_org])

    location = Location(org_id=org.id, name="Main Office")
    other_location = Location(org_id=other_org.id, name="Downtown")
    test_session.add_all([location, other_location])

    hardware = Hardware(
        org_id=org.id, location_id=location.id, name="Front Desk Printer", hardware_type="Printer"
    )
    test_session.add(hardware)

    staff = Profile(
        email="tech@carelog.test", first_name="Tara", last_name="Tech", is_platform_admin=True
    )
    other_staff = Profile(
        email="lead@carelog.test", first_name="Liam", last_name="Lead", is_platform_admin=True
    )
    submitter = Profile(email="jane@acme.test", first_name="Jane", last_name="Doe")
    org_admin = Profile(email="owner@acme.test", first_name="Olivia", last_name="Owner")
    outsider = Profile(email="someone@northwind.test", first_name="Sam", last_name="Smith")
    test_session.add_all([staff, other_staff, submitter, org_admin, outsider])

    test_session.add_all(
        [
            OrgMembership(org_id=org.id, user_id=submitter.id, role=MembershipRole.EMPLOYEE),
            OrgMembership(org_id=org.id, user_id=org_admin.id, role=MembershipRole.ORG_ADMIN),
            OrgMembership(org_id=other_org.id, user_id=outsider.id, role=MembershipRole.EMPLOYEE),
        ]
    )
    await test_session.commit()

    return SimpleNamespace(
        org=org,
        other_org=other_org,
        location=location,
        other_location=other_location,
        hardware=hardware,
        staff=staff,
        other_staff=other_staff,
        submitter=submitter,
        org_admin=org_admin,
        outsider=outsider,
        staff_actor=Actor.from_profile(staff),
        other_staff_actor=Actor.from_profile(other_staff),
        submitter_actor=Actor.from_profile(submitter),
        org_admin_actor=Actor.from_profile(org_admin),
        outsider_actor=Actor.from_profile(outsider),
    )


@pytest_asyncio.fixture
async def client(test_session):
    """Async API client bound to the in-memory database."""
    from main import app

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    """Authenticate subsequent requests as the given profile."""
    from main import app

    def _act_as(profile):
        app.dependency_overrides[get_current_user] = lambda: profile

    return _act_as
