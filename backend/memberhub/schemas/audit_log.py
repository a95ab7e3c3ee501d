"""
Pydantic schemas for the audit log endpoint.
"""
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    user_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    changes: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created: datetime


class AuditLogListEnvelope(BaseModel):
    audit_log: list[AuditLogResponse]
