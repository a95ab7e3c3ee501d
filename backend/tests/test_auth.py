"""
Tests for registration, login and token handling.
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from memberhub.core.config import settings
from memberhub.core.security import create_access_token
from memberhub.models.audit_log import AuditLog
from memberhub.models.membership import Membership, MembershipStatus, PaymentStatus
from memberhub.models.user import User, UserRole, UserStatus
from memberhub.models.workflow import Workflow, WorkflowExecution


def registration(membership_type, org, **overrides) -> dict:
    payload = {
        "email": "newbie@example.com",
        "password": "s3cret-pass",
        "first_name": "Nina",
        "last_name": "Newbie",
        "phone": "555-0100",
        "membership_type_id": membership_type.id,
        "custom_data": {"how_heard": "website"},
        "organization_id": org.id,
    }
    payload.update(overrides)
    return payload


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_creates_pending_user_and_application(
        self, client: AsyncClient, db_session, test_org, membership_type
    ):
        response = await client.post("/api/auth/register", json=registration(membership_type, test_org))
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Registration successful. Your application is pending approval."
        assert data["user"]["role"] == "member"
        assert data["user"]["status"] == "pending"

        user = await db_session.get(User, data["user"]["id"])
        assert user.role == UserRole.MEMBER
        assert user.status == UserStatus.PENDING

        result = await db_session.execute(select(Membership).where(Membership.user_id == user.id))
        membership = result.scalar_one()
        assert membership.status == MembershipStatus.PENDING
        assert membership.payment_status == PaymentStatus.UNPAID
        assert membership.start_date is None
        assert membership.end_date is None
        assert membership.custom_data == {"how_heard": "website"}

        result = await db_session.execute(select(AuditLog).where(AuditLog.entity_id == user.id))
        entry = result.scalar_one()
        assert entry.action == "user_registered"
        assert entry.entity_type == "user"

    @pytest.mark.asyncio
    async def test_register_enqueues_matching_workflows(
        self, client: AsyncClient, db_session, test_org, membership_type
    ):
        onboarding = Workflow(
            organization_id=test_org.id, name="Onboarding", trigger_type="user_registered", actions=[]
        )
        paused = Workflow(
            organization_id=test_org.id, name="Paused", trigger_type="user_registered", actions=[], is_active=False
        )
        db_session.add_all([onboarding, paused])
        await db_session.flush()

        response = await client.post("/api/auth/register", json=registration(membership_type, test_org))
        assert response.status_code == 201
        user_id = response.json()["user"]["id"]

        result = await db_session.execute(select(WorkflowExecution))
        executions = result.scalars().all()
        assert [e.workflow_id for e in executions] == [onboarding.id]
        assert executions[0].trigger_data == {"user_id": user_id}

    @pytest.mark.asyncio
    async def test_register_uses_default_organization(
        self, client: AsyncClient, test_org, membership_type, monkeypatch
    ):
        monkeypatch.setattr(settings, "DEFAULT_ORGANIZATION_ID", test_org.id)
        payload = registration(membership_type, test_org)
        del payload["organization_id"]

        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 201
        assert response.json()["user"]["organization_id"] == test_org.id

    @pytest.mark.asyncio
    async def test_register_without_organization(self, client: AsyncClient, test_org, membership_type):
        payload = registration(membership_type, test_org)
        del payload["organization_id"]

        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No organization configured"

    @pytest.mark.asyncio
    async def test_register_unknown_organization(self, client: AsyncClient, test_org, membership_type):
        response = await client.post(
            "/api/auth/register",
            json=registration(membership_type, test_org, organization_id="nope"),
        )
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Organization not found"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(
        self, client: AsyncClient, test_org, membership_type, member_user
    ):
        response = await client.post(
            "/api/auth/register",
            json=registration(membership_type, test_org, email="Member@Example.com"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_register_type_from_other_org(
        self, client: AsyncClient, other_org, membership_type
    ):
        response = await client.post(
            "/api/auth/register",
            json=registration(membership_type, other_org),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid membership type"

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient, test_org, membership_type):
        response = await client.post(
            "/api/auth/register",
            json=registration(membership_type, test_org, password="short"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Validation failed"


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_active_user(self, client: AsyncClient, member_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": "member@example.com", "password": "TestPass123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["id"] == member_user.id

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "member@example.com"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, member_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": "member@example.com", "password": "WrongPass"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/login",
            json={"email": "ghost@example.com", "password": "whatever"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_pending_user(self, client: AsyncClient, pending_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": "applicant@example.com", "password": "TestPass123"},
        )
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Account is not active"


class TestTokens:

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "No token provided"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, member_user):
        token = create_access_token(subject=member_user.id, expires_delta=timedelta(minutes=-5))
        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_suspended_user_token(self, client: AsyncClient, db_session, member_user, member_headers):
        member_user.status = UserStatus.SUSPENDED
        await db_session.flush()

        response = await client.get("/api/auth/me", headers=member_headers)
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Account is not active"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"code": 200, "message": "API is healthy."}
