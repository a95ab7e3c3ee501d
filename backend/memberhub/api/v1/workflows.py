"""
Workflow definition endpoints (admin only).

Endpoints:
- GET    /workflows                   - List definitions
- POST   /workflows                   - Create
- GET    /workflows/{id}              - Get
- PUT    /workflows/{id}              - Partial update
- DELETE /workflows/{id}              - Delete with its executions
- GET    /workflows/{id}/executions   - Enqueued executions, newest first
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from memberhub.core.exceptions import NotFoundError, ValidationError
from memberhub.core.permissions import Capability, require_capability
from memberhub.db.base import get_db
from memberhub.models.user import User
from memberhub.models.workflow import Workflow, WorkflowExecution
from memberhub.schemas.common import MessageResponse
from memberhub.schemas.workflow import (
    WorkflowCreate, WorkflowUpdate, WorkflowResponse, WorkflowEnvelope,
    WorkflowListEnvelope, WorkflowExecutionResponse, WorkflowExecutionListEnvelope
)

router = APIRouter()

require_workflow_admin = require_capability(Capability.MANAGE_WORKFLOWS)


def execution_to_response(execution: WorkflowExecution) -> WorkflowExecutionResponse:
    return WorkflowExecutionResponse(
        id=execution.id,
        workflow_id=execution.workflow_id,
        user_id=execution.user_id,
        status=execution.status.value,
        trigger_data=execution.trigger_data,
        error=execution.error,
        created=execution.created,
    )


async def get_workflow_or_404(db: AsyncSession, workflow_id: str, organization_id: str) -> Workflow:
    result = await db.execute(
        select(Workflow).where(
            Workflow.id == workflow_id,
            Workflow.organization_id == organization_id
        )
    )
    workflow = result.scalar_one_or_none()
    if workflow is None:
        raise NotFoundError("Workflow not found")
    return workflow


@router.get("/workflows", response_model=WorkflowListEnvelope)
async def list_workflows(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    result = await db.execute(
        select(Workflow)
        .where(Workflow.organization_id == current_user.organization_id)
        .order_by(Workflow.name.asc())
    )
    return WorkflowListEnvelope(
        workflows=[WorkflowResponse.model_validate(w) for w in result.scalars().all()]
    )


@router.post("/workflows", response_model=WorkflowEnvelope, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    data: WorkflowCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    workflow = Workflow(
        organization_id=current_user.organization_id,
        name=data.name,
        trigger_type=data.trigger_type,
        trigger_config=data.trigger_config or {},
        actions=data.actions,
        is_active=data.is_active,
    )
    db.add(workflow)
    await db.flush()
    return WorkflowEnvelope(workflow=WorkflowResponse.model_validate(workflow))


@router.get("/workflows/{workflow_id}", response_model=WorkflowEnvelope)
async def get_workflow(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    workflow = await get_workflow_or_404(db, workflow_id, current_user.organization_id)
    return WorkflowEnvelope(workflow=WorkflowResponse.model_validate(workflow))


@router.put("/workflows/{workflow_id}", response_model=WorkflowEnvelope)
async def update_workflow(
    workflow_id: str,
    data: WorkflowUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No updates provided")

    workflow = await get_workflow_or_404(db, workflow_id, current_user.organization_id)
    for field, value in updates.items():
        setattr(workflow, field, value)
    workflow.updated = datetime.now(timezone.utc)
    await db.flush()

    return WorkflowEnvelope(workflow=WorkflowResponse.model_validate(workflow))


@router.delete("/workflows/{workflow_id}", response_model=MessageResponse)
async def delete_workflow(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    """Delete a workflow; its executions are removed first."""
    workflow = await get_workflow_or_404(db, workflow_id, current_user.organization_id)

    await db.execute(delete(WorkflowExecution).where(WorkflowExecution.workflow_id == workflow.id))
    await db.delete(workflow)
    await db.flush()

    return MessageResponse(message="Workflow deleted successfully")


@router.get("/workflows/{workflow_id}/executions", response_model=WorkflowExecutionListEnvelope)
async def list_workflow_executions(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_workflow_admin),
):
    workflow = await get_workflow_or_404(db, workflow_id, current_user.organization_id)
    result = await db.execute(
        select(WorkflowExecution)
        .where(WorkflowExecution.workflow_id == workflow.id)
        .order_by(WorkflowExecution.created.desc())
    )
    return WorkflowExecutionListEnvelope(
        executions=[execution_to_response(e) for e in result.scalars().all()]
    )
