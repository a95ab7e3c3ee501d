"""
Pydantic schemas for Workflow endpoints.
"""
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator


class WorkflowCreate(BaseModel):
    """Create a workflow definition."""
    name: str = Field(..., min_length=1, max_length=200)
    trigger_type: str = Field(..., min_length=1, max_length=100)
    trigger_config: Optional[dict[str, Any]] = None
    actions: list[dict[str, Any]] = Field(default_factory=list)
    is_active: bool = True


class WorkflowUpdate(BaseModel):
    """Partial update of a workflow definition."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    trigger_type: Optional[str] = Field(None, min_length=1, max_length=100)
    trigger_config: Optional[dict[str, Any]] = None
    actions: Optional[list[dict[str, Any]]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def reject_null_required(self):
        """Explicit nulls are not allowed on NOT NULL columns."""
        for field in ("name", "trigger_type", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    name: str
    trigger_type: str
    trigger_config: Optional[dict[str, Any]] = None
    actions: Optional[list[Any]] = None
    is_active: bool
    created: datetime
    updated: datetime


class WorkflowExecutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    user_id: Optional[str] = None
    status: str
    trigger_data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    created: datetime


class WorkflowEnvelope(BaseModel):
    workflow: WorkflowResponse


class WorkflowListEnvelope(BaseModel):
    workflows: list[WorkflowResponse]


class WorkflowExecutionListEnvelope(BaseModel):
    executions: list[WorkflowExecutionResponse]
