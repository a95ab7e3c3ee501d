"""
Tests for workflow definitions and the trigger enqueuer.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from memberhub.models.workflow import Workflow, WorkflowExecution, WorkflowExecutionStatus
from memberhub.services.workflows import enqueue_workflows


class TestWorkflowEndpoints:

    @pytest.mark.asyncio
    async def test_crud(self, client: AsyncClient, admin_headers: dict, test_org):
        created = await client.post(
            "/api/workflows",
            json={
                "name": "Welcome",
                "trigger_type": "membership_approved",
                "actions": [{"type": "send_email", "template": "welcome"}],
            },
            headers=admin_headers,
        )
        assert created.status_code == 201
        workflow = created.json()["workflow"]
        assert workflow["organization_id"] == test_org.id
        assert workflow["is_active"] is True
        assert workflow["trigger_config"] == {}

        listed = await client.get("/api/workflows", headers=admin_headers)
        assert [w["id"] for w in listed.json()["workflows"]] == [workflow["id"]]

        updated = await client.put(
            f"/api/workflows/{workflow['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["workflow"]["is_active"] is False
        assert updated.json()["workflow"]["name"] == "Welcome"

        fetched = await client.get(f"/api/workflows/{workflow['id']}", headers=admin_headers)
        assert fetched.json()["workflow"]["is_active"] is False

        deleted = await client.delete(f"/api/workflows/{workflow['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Workflow deleted successfully"

        missing = await client.get(f"/api/workflows/{workflow['id']}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["message"] == "Workflow not found"

    @pytest.mark.asyncio
    async def test_empty_update(self, client: AsyncClient, admin_headers: dict, approval_workflow):
        response = await client.put(
            f"/api/workflows/{approval_workflow.id}",
            json={},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No updates provided"

    @pytest.mark.asyncio
    async def test_member_forbidden(self, client: AsyncClient, member_headers: dict):
        response = await client.get("/api/workflows", headers=member_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_org_workflow_hidden(
        self, client: AsyncClient, db_session, admin_headers: dict, other_org
    ):
        foreign = Workflow(organization_id=other_org.id, name="Foreign", trigger_type="user_registered")
        db_session.add(foreign)
        await db_session.flush()

        response = await client.get(f"/api/workflows/{foreign.id}", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_executions_listed_after_approval(
        self, client: AsyncClient, admin_headers: dict, approval_workflow, pending_membership
    ):
        approve = await client.post(
            f"/api/memberships/{pending_membership.id}/approve",
            headers=admin_headers,
        )
        assert approve.status_code == 200

        response = await client.get(
            f"/api/workflows/{approval_workflow.id}/executions",
            headers=admin_headers,
        )
        assert response.status_code == 200
        executions = response.json()["executions"]
        assert len(executions) == 1
        assert executions[0]["status"] == "pending"
        assert executions[0]["trigger_data"]["membership_id"] == pending_membership.id

    @pytest.mark.asyncio
    async def test_delete_removes_executions(
        self, client: AsyncClient, db_session, admin_headers: dict, approval_workflow, pending_membership
    ):
        await client.post(f"/api/memberships/{pending_membership.id}/approve", headers=admin_headers)

        response = await client.delete(f"/api/workflows/{approval_workflow.id}", headers=admin_headers)
        assert response.status_code == 200

        result = await db_session.execute(select(WorkflowExecution))
        assert result.scalars().all() == []


class TestEnqueue:

    @pytest.mark.asyncio
    async def test_only_active_matching_workflows_in_org(
        self, db_session, test_org, other_org, member_user, approval_workflow
    ):
        db_session.add_all([
            Workflow(organization_id=test_org.id, name="Inactive", trigger_type="membership_approved",
                     is_active=False),
            Workflow(organization_id=test_org.id, name="Other trigger", trigger_type="user_registered"),
            Workflow(organization_id=other_org.id, name="Other org", trigger_type="membership_approved"),
        ])
        await db_session.flush()

        executions = await enqueue_workflows(
            db_session,
            organization_id=test_org.id,
            trigger_type="membership_approved",
            user_id=member_user.id,
            trigger_data={"membership_id": "m1", "user_id": member_user.id},
        )
        assert [e.workflow_id for e in executions] == [approval_workflow.id]
        assert executions[0].status == WorkflowExecutionStatus.PENDING
        assert executions[0].id is not None

    @pytest.mark.asyncio
    async def test_no_matching_workflows(self, db_session, test_org, member_user):
        executions = await enqueue_workflows(
            db_session,
            organization_id=test_org.id,
            trigger_type="membership_approved",
            user_id=member_user.id,
        )
        assert executions == []
