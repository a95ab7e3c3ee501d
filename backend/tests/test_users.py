"""
Tests for the user administration endpoints.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from memberhub.models.audit_log import AuditLog
from memberhub.models.membership import Membership
from memberhub.models.user import User, UserRole, UserStatus


class TestListUsers:

    @pytest.mark.asyncio
    async def test_list_with_membership_counts(
        self, client: AsyncClient, admin_headers: dict, admin_user, member_user, active_membership
    ):
        response = await client.get("/api/users", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"page": 1, "limit": 50, "total": 2, "pages": 1}
        counts = {u["email"]: u["membership_count"] for u in data["users"]}
        assert counts == {"admin@example.com": 0, "member@example.com": 1}

    @pytest.mark.asyncio
    async def test_filters(
        self, client: AsyncClient, admin_headers: dict, member_user, pending_user
    ):
        response = await client.get("/api/users?status=pending", headers=admin_headers)
        assert [u["email"] for u in response.json()["users"]] == ["applicant@example.com"]
        assert response.json()["pagination"]["total"] == 1

        response = await client.get("/api/users?role=admin", headers=admin_headers)
        assert [u["email"] for u in response.json()["users"]] == ["admin@example.com"]

        response = await client.get("/api/users?search=DOE", headers=admin_headers)
        assert [u["email"] for u in response.json()["users"]] == ["member@example.com"]

    @pytest.mark.asyncio
    async def test_other_org_users_hidden(
        self, client: AsyncClient, admin_headers: dict, make_user, other_org
    ):
        await make_user(other_org, "elsewhere@example.com")
        response = await client.get("/api/users", headers=admin_headers)
        assert "elsewhere@example.com" not in [u["email"] for u in response.json()["users"]]

    @pytest.mark.asyncio
    async def test_member_forbidden(self, client: AsyncClient, member_headers: dict):
        response = await client.get("/api/users", headers=member_headers)
        assert response.status_code == 403


class TestGetUser:

    @pytest.mark.asyncio
    async def test_member_reads_self_with_memberships(
        self, client: AsyncClient, member_headers: dict, member_user, active_membership
    ):
        response = await client.get(f"/api/users/{member_user.id}", headers=member_headers)
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "member@example.com"
        assert [m["id"] for m in user["memberships"]] == [active_membership.id]
        assert user["memberships"][0]["membership_type_name"] == "Individual"
        assert user["memberships"][0]["status"] == "active"

    @pytest.mark.asyncio
    async def test_member_cannot_read_others(
        self, client: AsyncClient, member_headers: dict, admin_user
    ):
        response = await client.get(f"/api/users/{admin_user.id}", headers=member_headers)
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access denied"

    @pytest.mark.asyncio
    async def test_admin_reads_unknown(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/users/missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found"


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_member_edits_own_profile(
        self, client: AsyncClient, db_session, member_headers: dict, member_user
    ):
        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"first_name": " Johnny ", "phone": "555-0100"},
            headers=member_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "User updated successfully"
        assert response.json()["user"]["first_name"] == "Johnny"
        assert response.json()["user"]["phone"] == "555-0100"

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.entity_id == member_user.id, AuditLog.action == "user_updated")
        )
        assert result.scalar_one().changes == {"first_name": "Johnny", "phone": "555-0100"}

    @pytest.mark.asyncio
    async def test_member_cannot_change_own_status(
        self, client: AsyncClient, member_headers: dict, member_user
    ):
        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"role": "admin"},
            headers=member_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Cannot change role or status"

    @pytest.mark.asyncio
    async def test_member_cannot_edit_others(
        self, client: AsyncClient, member_headers: dict, admin_user
    ):
        response = await client.put(
            f"/api/users/{admin_user.id}",
            json={"first_name": "Mallory"},
            headers=member_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access denied"

    @pytest.mark.asyncio
    async def test_admin_suspends_and_reactivates(
        self, client: AsyncClient, admin_headers: dict, member_headers: dict, member_user
    ):
        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"status": "suspended"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["user"]["status"] == "suspended"

        blocked = await client.get("/api/auth/me", headers=member_headers)
        assert blocked.status_code == 403

        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"status": "active"},
            headers=admin_headers,
        )
        assert response.json()["user"]["status"] == "active"

        allowed = await client.get("/api/auth/me", headers=member_headers)
        assert allowed.status_code == 200

    @pytest.mark.asyncio
    async def test_admin_changes_role(
        self, client: AsyncClient, admin_headers: dict, member_user
    ):
        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"role": "admin"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert member_user.role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_empty_update(self, client: AsyncClient, member_headers: dict, member_user):
        response = await client.put(f"/api/users/{member_user.id}", json={}, headers=member_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No updates provided"

    @pytest.mark.asyncio
    async def test_invalid_status(self, client: AsyncClient, admin_headers: dict, member_user):
        response = await client.put(
            f"/api/users/{member_user.id}",
            json={"status": "banished"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_org_user_not_found(
        self, client: AsyncClient, admin_headers: dict, make_user, other_org
    ):
        outsider = await make_user(other_org, "outsider@example.com")
        response = await client.put(
            f"/api/users/{outsider.id}",
            json={"status": UserStatus.SUSPENDED.value},
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_super_admin_deletes_user_and_memberships(
        self, client: AsyncClient, db_session, super_admin_headers: dict, member_user, active_membership
    ):
        user_id = member_user.id
        response = await client.delete(f"/api/users/{user_id}", headers=super_admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"

        users = await db_session.execute(select(User).where(User.id == user_id))
        assert users.scalar_one_or_none() is None
        memberships = await db_session.execute(select(Membership).where(Membership.user_id == user_id))
        assert memberships.scalars().all() == []

        audit = await db_session.execute(select(AuditLog).where(AuditLog.action == "user_deleted"))
        assert audit.scalar_one().entity_id == user_id

    @pytest.mark.asyncio
    async def test_cannot_delete_self(
        self, client: AsyncClient, super_admin_headers: dict, super_admin_user
    ):
        response = await client.delete(f"/api/users/{super_admin_user.id}", headers=super_admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete yourself"

    @pytest.mark.asyncio
    async def test_admin_cannot_delete(self, client: AsyncClient, admin_headers: dict, member_user):
        response = await client.delete(f"/api/users/{member_user.id}", headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, super_admin_headers: dict):
        response = await client.delete("/api/users/missing", headers=super_admin_headers)
        assert response.status_code == 404
