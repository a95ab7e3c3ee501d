"""
User administration.

Admins list, suspend, reactivate and re-role the users of their organization;
members may only read and edit their own profile. Deleting a user removes
their memberships with them.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from memberhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from memberhub.core.permissions import Capability, ensure_owner_or_capability, has_capability
from memberhub.models.membership import Membership
from memberhub.models.user import User, UserRole, UserStatus
from memberhub.schemas.user import UserUpdate
from memberhub.services.audit import log_audit

logger = logging.getLogger(__name__)


async def _get_scoped(db: AsyncSession, user_id: str, organization_id: str) -> User:
    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.organization_id == organization_id,
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(
    db: AsyncSession,
    organization_id: str,
    *,
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[tuple[User, int]], int]:
    """Filtered, paginated users with their membership counts, newest first."""
    filters = [User.organization_id == organization_id]
    if role is not None:
        filters.append(User.role == role)
    if status is not None:
        filters.append(User.status == status)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(User).where(*filters))
    ).scalar() or 0

    membership_count = (
        select(func.count(Membership.id))
        .where(Membership.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    result = await db.execute(
        select(User, membership_count.label("membership_count"))
        .where(*filters)
        .order_by(User.created.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [(row[0], row[1]) for row in result.all()], total


async def get_user(
    db: AsyncSession,
    user_id: str,
    actor: User,
) -> tuple[User, list[Membership]]:
    """A user and their memberships; members may only see themselves."""
    ensure_owner_or_capability(actor, user_id, Capability.MANAGE_USERS)
    user = await _get_scoped(db, user_id, actor.organization_id)

    result = await db.execute(
        select(Membership)
        .options(selectinload(Membership.membership_type))
        .where(
            Membership.user_id == user.id,
            Membership.organization_id == actor.organization_id,
        )
        .order_by(Membership.created.desc())
    )
    return user, list(result.scalars().all())


async def update_user(
    db: AsyncSession,
    user_id: str,
    actor: User,
    data: UserUpdate,
    meta: Optional[dict[str, Any]] = None,
) -> User:
    """
    Patch a user's profile.

    Anyone may edit their own names and phone. Changing role or status
    requires MANAGE_USERS, which is how accounts are suspended or reactivated.
    """
    ensure_owner_or_capability(actor, user_id, Capability.MANAGE_USERS)

    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No updates provided")

    if ("role" in updates or "status" in updates) and not has_capability(actor, Capability.MANAGE_USERS):
        raise AuthorizationError("Cannot change role or status")

    user = await _get_scoped(db, user_id, actor.organization_id)
    previous_status = user.status

    for field, value in updates.items():
        setattr(user, field, value)
    user.updated = datetime.now(timezone.utc)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="user_updated",
        entity_type="user",
        entity_id=user.id,
        changes=updates,
        **(meta or {}),
    )
    if user.status != previous_status:
        logger.info(
            "User %s status %s -> %s by %s",
            user.id, previous_status.value, user.status.value, actor.id,
        )
    return user


async def delete_user(
    db: AsyncSession,
    user_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> None:
    """Delete a user of the organization together with their memberships."""
    if user_id == actor.id:
        raise ValidationError("Cannot delete yourself")

    user = await _get_scoped(db, user_id, actor.organization_id)

    result = await db.execute(
        select(Membership)
        .options(selectinload(Membership.linked_members))
        .where(Membership.user_id == user.id)
    )
    for membership in result.scalars().all():
        await db.delete(membership)
    await db.delete(user)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="user_deleted",
        entity_type="user",
        entity_id=user_id,
        **(meta or {}),
    )
    logger.info("User %s deleted from org %s by %s", user_id, actor.organization_id, actor.id)
