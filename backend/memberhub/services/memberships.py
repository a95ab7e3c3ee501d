"""
Membership lifecycle engine.

States and the operations that move between them:

- apply:   (new)   -> pending
- approve: pending -> active      (also activates the owning user)
- reject:  pending -> rejected
- expire:  active  -> expired
- renew:   inserts a new pending membership starting the day after the
           source ends; the source row is left untouched
- update:  administrative patch, unrestricted; status writes that skip the
           lifecycle are audited as forced

Every operation runs inside the request's session, so the membership change,
user change, audit entry and workflow executions commit together.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from memberhub.core.config import settings
from memberhub.core.exceptions import (
    ConflictError, NotFoundError, ValidationError
)
from memberhub.core.permissions import Capability, ensure_owner_or_capability
from memberhub.models.membership import (
    Membership, MembershipStatus, PaymentStatus, LinkedMember
)
from memberhub.models.membership_type import MembershipType
from memberhub.models.user import User, UserRole, UserStatus
from memberhub.models.workflow import WorkflowTrigger
from memberhub.schemas.membership import (
    LinkedMemberCreate, MembershipApprove, MembershipUpdate
)
from memberhub.services.audit import log_audit
from memberhub.services.workflows import enqueue_workflows

logger = logging.getLogger(__name__)


def today() -> date:
    return date.today()


def add_months(start: date, months: int) -> date:
    """Whole-month arithmetic; Jan 31 + 1 month is the last day of February."""
    return start + relativedelta(months=months)


def _with_details(query):
    return query.options(
        selectinload(Membership.user),
        selectinload(Membership.membership_type),
        selectinload(Membership.linked_members),
    )


async def _get_scoped(
    db: AsyncSession,
    membership_id: str,
    organization_id: str,
    for_update: bool = False,
) -> Membership:
    """Load a membership of the organization or raise NotFoundError."""
    query = _with_details(
        select(Membership).where(
            Membership.id == membership_id,
            Membership.organization_id == organization_id,
        )
    )
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFoundError("Membership not found")
    return membership


def _require_pending(membership: Membership) -> None:
    if membership.status != MembershipStatus.PENDING:
        raise ConflictError("Membership is not pending")


# ============================================================================
# APPLICATION
# ============================================================================

async def apply_for_membership(
    db: AsyncSession,
    *,
    organization_id: str,
    user_id: str,
    membership_type_id: str,
    custom_data: Optional[dict[str, Any]] = None,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """
    Create a pending, unpaid membership application.

    Called from self-registration, so the audit entry and the workflow
    trigger are both named "user_registered".
    """
    type_result = await db.execute(
        select(MembershipType).where(
            MembershipType.id == membership_type_id,
            MembershipType.organization_id == organization_id,
        )
    )
    if type_result.scalar_one_or_none() is None:
        raise ValidationError("Invalid membership type")

    membership = Membership(
        organization_id=organization_id,
        user_id=user_id,
        membership_type_id=membership_type_id,
        status=MembershipStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        custom_data=custom_data or {},
    )
    db.add(membership)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=user_id,
        action="user_registered",
        entity_type="user",
        entity_id=user_id,
        **(meta or {}),
    )
    await enqueue_workflows(
        db,
        organization_id=organization_id,
        trigger_type=WorkflowTrigger.USER_REGISTERED.value,
        user_id=user_id,
        trigger_data={"user_id": user_id},
    )
    return membership


# ============================================================================
# READS
# ============================================================================

async def list_memberships(
    db: AsyncSession,
    organization_id: str,
    *,
    status: Optional[MembershipStatus] = None,
    membership_type_id: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Membership], int]:
    """Filtered, paginated list, newest first. Returns (items, total)."""
    query = (
        select(Membership)
        .join(User, Membership.user_id == User.id)
        .where(Membership.organization_id == organization_id)
    )

    if status is not None:
        query = query.where(Membership.status == status)
    if membership_type_id:
        query = query.where(Membership.membership_type_id == membership_type_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = _with_details(query).order_by(Membership.created.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
) -> Membership:
    """Fetch one membership; members may only see their own."""
    membership = await _get_scoped(db, membership_id, actor.organization_id)
    ensure_owner_or_capability(actor, membership.user_id, Capability.VIEW_ALL_MEMBERSHIPS)
    return membership


async def get_current_membership(db: AsyncSession, actor: User) -> Membership:
    """The caller's most recently created membership."""
    result = await db.execute(
        _with_details(
            select(Membership).where(
                Membership.user_id == actor.id,
                Membership.organization_id == actor.organization_id,
            )
        )
        .order_by(Membership.created.desc())
        .limit(1)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFoundError("No membership found")
    return membership


async def list_expiring_memberships(
    db: AsyncSession,
    organization_id: str,
    days: int = 30,
) -> list[Membership]:
    """Active memberships whose end_date falls within [today, today + days]."""
    start = today()
    end = start + timedelta(days=days)
    result = await db.execute(
        _with_details(
            select(Membership).where(
                Membership.organization_id == organization_id,
                Membership.status == MembershipStatus.ACTIVE,
                Membership.end_date >= start,
                Membership.end_date <= end,
            )
        ).order_by(Membership.end_date.asc())
    )
    return list(result.scalars().all())


async def membership_statistics(
    db: AsyncSession,
    organization_id: str,
    days: int = 30,
) -> dict[str, int]:
    """Member and membership counts; expiring_soon uses the same window as the report."""
    async def count(query) -> int:
        return (await db.execute(query)).scalar() or 0

    membership_count = select(func.count(Membership.id)).where(
        Membership.organization_id == organization_id
    )
    start = today()

    return {
        "total_members": await count(
            select(func.count(User.id)).where(
                User.organization_id == organization_id,
                User.role == UserRole.MEMBER,
            )
        ),
        "active_memberships": await count(
            membership_count.where(Membership.status == MembershipStatus.ACTIVE)
        ),
        "pending_memberships": await count(
            membership_count.where(Membership.status == MembershipStatus.PENDING)
        ),
        "expiring_soon": await count(
            membership_count.where(
                Membership.status == MembershipStatus.ACTIVE,
                Membership.end_date >= start,
                Membership.end_date <= start + timedelta(days=days),
            )
        ),
    }


# ============================================================================
# TRANSITIONS
# ============================================================================

async def approve_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    data: MembershipApprove,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """
    pending -> active.

    start_date defaults to today; end_date defaults to start_date plus the
    type's duration in months. The owning user becomes active.
    """
    membership = await _get_scoped(db, membership_id, actor.organization_id, for_update=True)
    _require_pending(membership)

    start_date = data.start_date or today()
    end_date = data.end_date or add_months(start_date, membership.membership_type.duration_months)

    membership.status = MembershipStatus.ACTIVE
    membership.start_date = start_date
    membership.end_date = end_date
    membership.approved_by = actor.id
    membership.approved_at = datetime.now(timezone.utc)
    membership.notes = data.notes
    membership.updated = datetime.now(timezone.utc)

    membership.user.status = UserStatus.ACTIVE
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="membership_approved",
        entity_type="membership",
        entity_id=membership.id,
        changes={"status": "active", "start_date": start_date, "end_date": end_date},
        **(meta or {}),
    )
    await enqueue_workflows(
        db,
        organization_id=actor.organization_id,
        trigger_type=WorkflowTrigger.MEMBERSHIP_APPROVED.value,
        user_id=membership.user_id,
        trigger_data={"membership_id": membership.id, "user_id": membership.user_id},
    )
    logger.info("Membership %s approved by %s", membership.id, actor.id)
    return membership


async def reject_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    reason: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """pending -> rejected. No workflow is triggered."""
    membership = await _get_scoped(db, membership_id, actor.organization_id, for_update=True)
    _require_pending(membership)

    membership.status = MembershipStatus.REJECTED
    membership.notes = reason
    membership.updated = datetime.now(timezone.utc)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="membership_rejected",
        entity_type="membership",
        entity_id=membership.id,
        changes={"status": "rejected", "reason": reason},
        **(meta or {}),
    )
    logger.info("Membership %s rejected by %s", membership.id, actor.id)
    return membership


async def expire_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """active -> expired."""
    membership = await _get_scoped(db, membership_id, actor.organization_id, for_update=True)
    if not membership.can_transition_to(MembershipStatus.EXPIRED):
        raise ConflictError("Membership is not active")

    membership.status = MembershipStatus.EXPIRED
    membership.updated = datetime.now(timezone.utc)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="membership_expired",
        entity_type="membership",
        entity_id=membership.id,
        changes={"status": "expired"},
        **(meta or {}),
    )
    logger.info("Membership %s expired by %s", membership.id, actor.id)
    return membership


async def renew_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """
    Create the next-period membership as a new pending row.

    The renewal starts the day after the source ends and runs for the type's
    current duration, priced at the type's current price. The source
    membership is not modified.
    """
    membership = await _get_scoped(db, membership_id, actor.organization_id)
    ensure_owner_or_capability(actor, membership.user_id, Capability.VIEW_ALL_MEMBERSHIPS)

    if membership.end_date is None:
        raise ValidationError("Membership has no end date to renew from")

    membership_type = membership.membership_type
    new_start = membership.end_date + timedelta(days=1)
    new_end = add_months(new_start, membership_type.duration_months)

    renewal = Membership(
        organization_id=actor.organization_id,
        user_id=membership.user_id,
        membership_type_id=membership.membership_type_id,
        status=MembershipStatus.PENDING,
        start_date=new_start,
        end_date=new_end,
        payment_status=PaymentStatus.UNPAID,
        amount_paid=membership_type.price,
        custom_data=dict(membership.custom_data or {}),
    )
    db.add(renewal)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="membership_renewed",
        entity_type="membership",
        entity_id=renewal.id,
        changes={"renewed_from": membership.id, "start_date": new_start, "end_date": new_end},
        **(meta or {}),
    )
    logger.info("Membership %s renewed as %s", membership.id, renewal.id)
    return renewal


async def update_membership(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    data: MembershipUpdate,
    meta: Optional[dict[str, Any]] = None,
) -> Membership:
    """
    Administrative patch of any membership field.

    Status is written as given. A status change that the lifecycle does not
    allow is audited as "membership_status_forced" together with the previous
    status.
    """
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No updates provided")

    membership = await _get_scoped(db, membership_id, actor.organization_id)
    previous_status = membership.status

    new_status = updates.get("status")
    forced = (
        new_status is not None
        and new_status != previous_status
        and not membership.can_transition_to(new_status)
    )

    for field, value in updates.items():
        setattr(membership, field, value)
    membership.updated = datetime.now(timezone.utc)
    await db.flush()

    changes = dict(updates)
    action = "membership_updated"
    if forced:
        action = "membership_status_forced"
        changes["previous_status"] = previous_status.value
        logger.warning(
            "Membership %s status forced %s -> %s by %s",
            membership.id, previous_status.value, new_status.value, actor.id,
        )

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action=action,
        entity_type="membership",
        entity_id=membership.id,
        changes=changes,
        **(meta or {}),
    )
    return membership


# ============================================================================
# LINKED MEMBERS
# ============================================================================

async def add_linked_member(
    db: AsyncSession,
    membership_id: str,
    actor: User,
    data: LinkedMemberCreate,
    meta: Optional[dict[str, Any]] = None,
) -> LinkedMember:
    """Attach a dependent. The owner or an administrator may do this."""
    membership = await _get_scoped(db, membership_id, actor.organization_id)
    ensure_owner_or_capability(actor, membership.user_id, Capability.VIEW_ALL_MEMBERSHIPS)

    if settings.ENFORCE_LINKED_MEMBER_CAP:
        cap = membership.membership_type.max_members
        if len(membership.linked_members) >= cap:
            raise ConflictError(
                f"Membership type allows at most {cap} linked member(s)"
            )

    linked = LinkedMember(
        first_name=data.first_name,
        last_name=data.last_name,
        date_of_birth=data.date_of_birth,
        relationship_type=data.relationship,
        email=data.email,
        custom_data=data.custom_data or {},
    )
    membership.linked_members.append(linked)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="linked_member_added",
        entity_type="linked_member",
        entity_id=linked.id,
        changes={"membership_id": membership.id},
        **(meta or {}),
    )
    return linked


async def remove_linked_member(
    db: AsyncSession,
    membership_id: str,
    linked_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> None:
    """Remove a dependent. Removing an unknown id is a no-op."""
    membership = await _get_scoped(db, membership_id, actor.organization_id)
    ensure_owner_or_capability(actor, membership.user_id, Capability.VIEW_ALL_MEMBERSHIPS)

    linked = next((lm for lm in membership.linked_members if lm.id == linked_id), None)
    if linked is None:
        return

    membership.linked_members.remove(linked)
    await db.flush()

    await log_audit(
        db,
        organization_id=actor.organization_id,
        user_id=actor.id,
        action="linked_member_removed",
        entity_type="linked_member",
        entity_id=linked_id,
        changes={"membership_id": membership.id},
        **(meta or {}),
    )
