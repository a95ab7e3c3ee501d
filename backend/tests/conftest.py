"""
Test configuration and fixtures for MemberHub backend tests.
"""
import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

from memberhub.main import app  # noqa: E402
from memberhub.db.base import Base, get_db  # noqa: E402
from memberhub.core.security import get_password_hash, create_access_token  # noqa: E402
from memberhub.models.organization import Organization  # noqa: E402
from memberhub.models.user import User, UserRole, UserStatus  # noqa: E402
from memberhub.models.membership_type import MembershipType  # noqa: E402
from memberhub.models.membership import Membership, MembershipStatus, PaymentStatus  # noqa: E402
from memberhub.models.workflow import Workflow  # noqa: E402

TEST_PASSWORD = "TestPass123"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs (audit writes) nest correctly
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# TENANTS AND USERS
# ============================================================================

@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession) -> Organization:
    """Create a test organization."""
    org = Organization(name="Test Organization", slug="test-org", settings={})
    db_session.add(org)
    await db_session.flush()
    return org


@pytest_asyncio.fixture
async def other_org(db_session: AsyncSession) -> Organization:
    """A second tenant, for isolation checks."""
    org = Organization(name="Other Organization", slug="other-org", settings={})
    db_session.add(org)
    await db_session.flush()
    return org


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory creating users in an organization."""
    async def _make_user(
        org: Organization,
        email: str,
        role: UserRole = UserRole.MEMBER,
        status: UserStatus = UserStatus.ACTIVE,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> User:
        user = User(
            organization_id=org.id,
            email=email,
            password_hash=get_password_hash(TEST_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=status,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest_asyncio.fixture
async def admin_user(make_user, test_org: Organization) -> User:
    return await make_user(test_org, "admin@example.com", role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest_asyncio.fixture
async def super_admin_user(make_user, test_org: Organization) -> User:
    return await make_user(test_org, "root@example.com", role=UserRole.SUPER_ADMIN, first_name="Sam", last_name="Super")


@pytest_asyncio.fixture
async def member_user(make_user, test_org: Organization) -> User:
    return await make_user(test_org, "member@example.com", first_name="John", last_name="Doe")


@pytest_asyncio.fixture
async def pending_user(make_user, test_org: Organization) -> User:
    return await make_user(
        test_org, "applicant@example.com", status=UserStatus.PENDING, first_name="Jane", last_name="Applicant"
    )


def _bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}


@pytest.fixture
def headers_for():
    """Build authorization headers for any user."""
    return _bearer


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _bearer(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user: User) -> dict:
    return _bearer(super_admin_user)


@pytest.fixture
def member_headers(member_user: User) -> dict:
    return _bearer(member_user)


# ============================================================================
# MEMBERSHIP DATA
# ============================================================================

@pytest_asyncio.fixture
async def membership_type(db_session: AsyncSession, test_org: Organization) -> MembershipType:
    """Annual individual tier."""
    membership_type = MembershipType(
        organization_id=test_org.id,
        name="Individual",
        slug="individual",
        description="Single adult membership",
        price=Decimal("50.00"),
        duration_months=12,
        max_members=1,
        requires_approval=True,
        is_active=True,
        settings={},
    )
    db_session.add(membership_type)
    await db_session.flush()
    return membership_type


@pytest_asyncio.fixture
async def pending_membership(
    db_session: AsyncSession, test_org: Organization, pending_user: User, membership_type: MembershipType
) -> Membership:
    membership = Membership(
        organization_id=test_org.id,
        user_id=pending_user.id,
        membership_type_id=membership_type.id,
        status=MembershipStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        custom_data={"referral": "friend"},
    )
    db_session.add(membership)
    await db_session.flush()
    return membership


@pytest_asyncio.fixture
async def active_membership(
    db_session: AsyncSession,
    test_org: Organization,
    member_user: User,
    admin_user: User,
    membership_type: MembershipType,
) -> Membership:
    membership = Membership(
        organization_id=test_org.id,
        user_id=member_user.id,
        membership_type_id=membership_type.id,
        status=MembershipStatus.ACTIVE,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        payment_status=PaymentStatus.PAID,
        amount_paid=Decimal("50.00"),
        custom_data={"newsletter": True},
        approved_by=admin_user.id,
    )
    db_session.add(membership)
    await db_session.flush()
    return membership


@pytest_asyncio.fixture
async def approval_workflow(db_session: AsyncSession, test_org: Organization) -> Workflow:
    workflow = Workflow(
        organization_id=test_org.id,
        name="Welcome email",
        trigger_type="membership_approved",
        trigger_config={},
        actions=[{"type": "send_email", "template": "welcome"}],
        is_active=True,
    )
    db_session.add(workflow)
    await db_session.flush()
    return workflow
