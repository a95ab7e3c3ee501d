"""
Workflow definition and execution models.

A workflow matches a trigger_type (e.g. "user_registered",
"membership_approved") to a list of actions. Lifecycle events enqueue one
pending WorkflowExecution per matching active workflow; an external worker
consumes the queue.
"""
from typing import Optional, TYPE_CHECKING
from enum import Enum
from sqlalchemy import String, ForeignKey, Boolean, JSON, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from memberhub.models.base import BaseModel

if TYPE_CHECKING:
    from memberhub.models.user import User


class WorkflowTrigger(str, Enum):
    """Trigger types fired by the membership lifecycle."""
    USER_REGISTERED = "user_registered"
    MEMBERSHIP_APPROVED = "membership_approved"


class WorkflowExecutionStatus(str, Enum):
    """Processing state of an enqueued execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Workflow(BaseModel):
    """Workflow definition."""
    __tablename__ = "workflows"

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Free-form so organizations can define triggers beyond WorkflowTrigger
    trigger_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    trigger_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    actions: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    executions: Mapped[list["WorkflowExecution"]] = relationship(
        "WorkflowExecution",
        back_populates="workflow",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Workflow {self.name} on {self.trigger_type}>"


class WorkflowExecution(BaseModel):
    """An enqueued unit of workflow work."""
    __tablename__ = "workflow_executions"

    workflow_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    status: Mapped[WorkflowExecutionStatus] = mapped_column(
        SQLEnum(
            WorkflowExecutionStatus,
            name="workflowexecutionstatus",
            values_callable=lambda x: [e.value for e in x]
        ),
        default=WorkflowExecutionStatus.PENDING,
        nullable=False,
        index=True
    )
    trigger_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    workflow: Mapped["Workflow"] = relationship(
        "Workflow",
        back_populates="executions"
    )
    user: Mapped[Optional["User"]] = relationship("User")

    def __repr__(self) -> str:
        return f"<WorkflowExecution {self.workflow_id} ({self.status.value})>"
