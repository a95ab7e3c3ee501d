"""
Audit log read endpoint (admin only).
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from memberhub.core.permissions import Capability, require_capability
from memberhub.db.base import get_db
from memberhub.models.audit_log import AuditLog
from memberhub.models.user import User
from memberhub.schemas.audit_log import AuditLogResponse, AuditLogListEnvelope

router = APIRouter()


@router.get("/audit-log", response_model=AuditLogListEnvelope)
async def list_audit_log(
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.VIEW_AUDIT_LOG)),
):
    """List audit entries of the caller's organization, newest first."""
    query = select(AuditLog).where(AuditLog.organization_id == current_user.organization_id)

    if action:
        query = query.where(AuditLog.action == action)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if user_id:
        query = query.where(AuditLog.user_id == user_id)

    query = query.order_by(AuditLog.created.desc()).offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)

    return AuditLogListEnvelope(
        audit_log=[AuditLogResponse.model_validate(entry) for entry in result.scalars().all()]
    )
