"""
Workflow trigger enqueuer.

Lifecycle events call enqueue_workflows(); it inserts one pending
WorkflowExecution per active workflow in the organization whose
trigger_type matches. Processing the queue is the job of an external worker.
"""
import logging
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.workflow import (
    Workflow,
    WorkflowExecution,
    WorkflowExecutionStatus,
)

logger = logging.getLogger(__name__)


async def enqueue_workflows(
    db: AsyncSession,
    *,
    organization_id: str,
    trigger_type: str,
    user_id: Optional[str],
    trigger_data: Optional[dict[str, Any]] = None,
) -> list[WorkflowExecution]:
    """Create pending executions for every matching active workflow."""
    result = await db.execute(
        select(Workflow).where(
            Workflow.organization_id == organization_id,
            Workflow.trigger_type == trigger_type,
            Workflow.is_active == True,  # noqa: E712
        )
    )
    workflows = result.scalars().all()

    executions = [
        WorkflowExecution(
            workflow_id=workflow.id,
            user_id=user_id,
            status=WorkflowExecutionStatus.PENDING,
            trigger_data=jsonable_encoder(trigger_data or {}),
        )
        for workflow in workflows
    ]
    if executions:
        db.add_all(executions)
        await db.flush()
        logger.info(
            "Enqueued %d workflow execution(s) for trigger=%s org=%s",
            len(executions), trigger_type, organization_id,
        )

    return executions
