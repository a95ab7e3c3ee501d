"""
Audit logging service.

Audit writes are best-effort: each entry is inserted inside a SAVEPOINT so a
failed insert rolls back on its own and never aborts the business operation
that triggered it.
"""
import logging
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_audit(
    db: AsyncSession,
    *,
    organization_id: str,
    user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    changes: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Append an audit entry.

    Returns the entry, or None when the write failed. Failures are logged
    and swallowed.
    """
    try:
        async with db.begin_nested():
            entry = AuditLog(
                organization_id=organization_id,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                changes=jsonable_encoder(changes) if changes is not None else None,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.add(entry)
        return entry
    except Exception:
        logger.exception(
            "Audit log write failed: action=%s entity=%s:%s",
            action, entity_type, entity_id,
        )
        return None
