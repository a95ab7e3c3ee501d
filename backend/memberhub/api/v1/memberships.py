"""
Membership endpoints.

Endpoints:
- GET    /memberships                                  - Paginated list (admin)
- GET    /memberships/my/current                       - Caller's latest membership
- GET    /memberships/reports/expiring                 - Active, expiring within N days (admin)
- GET    /memberships/reports/statistics               - Member and membership counts (admin)
- GET    /memberships/{id}                             - One membership (owner or admin)
- POST   /memberships/{id}/approve                     - pending -> active (admin)
- POST   /memberships/{id}/reject                      - pending -> rejected (admin)
- POST   /memberships/{id}/expire                      - active -> expired (admin)
- POST   /memberships/{id}/renew                       - New pending period (owner or admin)
- PUT    /memberships/{id}                             - Administrative patch (admin)
- POST   /memberships/{id}/linked-members              - Add dependent (owner or admin)
- DELETE /memberships/{id}/linked-members/{linked_id}  - Remove dependent (owner or admin)
"""
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.deps import get_current_user, request_meta
from memberhub.core.permissions import Capability, require_capability
from memberhub.db.base import get_db
from memberhub.models.membership import LinkedMember, Membership, MembershipStatus
from memberhub.models.user import User
from memberhub.schemas.common import MessageResponse, Pagination
from memberhub.schemas.membership import (
    LinkedMemberCreate,
    LinkedMemberEnvelope,
    LinkedMemberResponse,
    MembershipActionResponse,
    MembershipApprove,
    MembershipEnvelope,
    MembershipListEnvelope,
    MembershipPageEnvelope,
    MembershipReject,
    MembershipResponse,
    MembershipStatistics,
    MembershipUpdate,
    RenewalResponse,
    StatisticsEnvelope,
)
from memberhub.services import memberships as lifecycle

router = APIRouter()


def linked_member_to_response(linked: LinkedMember) -> LinkedMemberResponse:
    """Convert LinkedMember model to LinkedMemberResponse schema."""
    return LinkedMemberResponse(
        id=linked.id,
        membership_id=linked.membership_id,
        first_name=linked.first_name,
        last_name=linked.last_name,
        date_of_birth=linked.date_of_birth,
        relationship=linked.relationship_type,
        email=linked.email,
        custom_data=linked.custom_data,
        created=linked.created,
        updated=linked.updated,
    )


def membership_to_response(
    membership: Membership,
    include_linked: bool = False,
) -> MembershipResponse:
    """Convert Membership model (loaded with user, type and linked members) to MembershipResponse."""
    user = membership.user
    membership_type = membership.membership_type
    return MembershipResponse(
        id=membership.id,
        organization_id=membership.organization_id,
        user_id=membership.user_id,
        membership_type_id=membership.membership_type_id,
        membership_type_name=membership_type.name if membership_type else None,
        status=membership.status.value if isinstance(membership.status, MembershipStatus) else membership.status,
        start_date=membership.start_date,
        end_date=membership.end_date,
        payment_status=membership.payment_status.value,
        amount_paid=membership.amount_paid,
        notes=membership.notes,
        custom_data=membership.custom_data,
        approved_by=membership.approved_by,
        approved_at=membership.approved_at,
        email=user.email if user else None,
        first_name=user.first_name if user else None,
        last_name=user.last_name if user else None,
        linked_members=(
            [linked_member_to_response(lm) for lm in membership.linked_members]
            if include_linked else None
        ),
        created=membership.created,
        updated=membership.updated,
    )


@router.get("/memberships", response_model=MembershipPageEnvelope)
async def list_memberships(
    status_filter: Optional[MembershipStatus] = Query(None, alias="status"),
    membership_type_id: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.VIEW_ALL_MEMBERSHIPS)),
):
    """
    List memberships of the caller's organization, newest first.
    Filterable by status, membership type and a name/email search.
    """
    items, total = await lifecycle.list_memberships(
        db,
        current_user.organization_id,
        status=status_filter,
        membership_type_id=membership_type_id,
        search=search,
        page=page,
        limit=limit,
    )
    return MembershipPageEnvelope(
        memberships=[membership_to_response(m) for m in items],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=ceil(total / limit),
        ),
    )


@router.get("/memberships/my/current", response_model=MembershipEnvelope)
async def get_my_membership(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get the caller's most recently created membership."""
    membership = await lifecycle.get_current_membership(db, current_user)
    return MembershipEnvelope(membership=membership_to_response(membership, include_linked=True))


@router.get("/memberships/reports/expiring", response_model=MembershipListEnvelope)
async def get_expiring_memberships(
    days: Optional[int] = Query(None, ge=0, le=3650),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.VIEW_ALL_MEMBERSHIPS)),
):
    """Active memberships ending between today and today + days."""
    window = days if days is not None else settings.DEFAULT_EXPIRING_DAYS
    items = await lifecycle.list_expiring_memberships(db, current_user.organization_id, window)
    return MembershipListEnvelope(memberships=[membership_to_response(m) for m in items])


@router.get("/memberships/reports/statistics", response_model=StatisticsEnvelope)
async def get_membership_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.VIEW_ALL_MEMBERSHIPS)),
):
    """Member, active, pending and expiring-soon counts for the caller's organization."""
    stats = await lifecycle.membership_statistics(
        db, current_user.organization_id, settings.DEFAULT_EXPIRING_DAYS
    )
    return StatisticsEnvelope(statistics=MembershipStatistics(**stats))


@router.get("/memberships/{membership_id}", response_model=MembershipEnvelope)
async def get_membership(
    membership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a membership with its linked members. Members may only read their own."""
    membership = await lifecycle.get_membership(db, membership_id, current_user)
    return MembershipEnvelope(membership=membership_to_response(membership, include_linked=True))


@router.post("/memberships/{membership_id}/approve", response_model=MembershipActionResponse)
async def approve_membership(
    membership_id: str,
    data: Optional[MembershipApprove] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIPS)),
    meta: dict = Depends(request_meta),
):
    """Approve a pending membership."""
    membership = await lifecycle.approve_membership(
        db, membership_id, current_user, data or MembershipApprove(), meta
    )
    return MembershipActionResponse(
        message="Membership approved successfully",
        membership=membership_to_response(membership),
    )


@router.post("/memberships/{membership_id}/reject", response_model=MembershipActionResponse)
async def reject_membership(
    membership_id: str,
    data: Optional[MembershipReject] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIPS)),
    meta: dict = Depends(request_meta),
):
    """Reject a pending membership."""
    reason = data.reason if data else None
    membership = await lifecycle.reject_membership(db, membership_id, current_user, reason, meta)
    return MembershipActionResponse(
        message="Membership rejected",
        membership=membership_to_response(membership),
    )


@router.post("/memberships/{membership_id}/expire", response_model=MembershipActionResponse)
async def expire_membership(
    membership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIPS)),
    meta: dict = Depends(request_meta),
):
    membership = await lifecycle.expire_membership(db, membership_id, current_user, meta)
    return MembershipActionResponse(
        message="Membership expired",
        membership=membership_to_response(membership),
    )


@router.post("/memberships/{membership_id}/renew", response_model=RenewalResponse)
async def renew_membership(
    membership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    meta: dict = Depends(request_meta),
):
    """Create the next period as a new pending membership."""
    renewal = await lifecycle.renew_membership(db, membership_id, current_user, meta)
    return RenewalResponse(message="Membership renewal created", renewal_id=renewal.id)


@router.put("/memberships/{membership_id}", response_model=MembershipActionResponse)
async def update_membership(
    membership_id: str,
    data: MembershipUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIPS)),
    meta: dict = Depends(request_meta),
):
    """
    Patch membership fields.
    Status may be set to any value; out-of-lifecycle changes are audited as forced.
    """
    membership = await lifecycle.update_membership(db, membership_id, current_user, data, meta)
    return MembershipActionResponse(
        message="Membership updated successfully",
        membership=membership_to_response(membership),
    )


@router.post(
    "/memberships/{membership_id}/linked-members",
    response_model=LinkedMemberEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_linked_member(
    membership_id: str,
    data: LinkedMemberCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    meta: dict = Depends(request_meta),
):
    linked = await lifecycle.add_linked_member(db, membership_id, current_user, data, meta)
    return LinkedMemberEnvelope(linked_member=linked_member_to_response(linked))


@router.delete(
    "/memberships/{membership_id}/linked-members/{linked_id}",
    response_model=MessageResponse,
)
async def remove_linked_member(
    membership_id: str,
    linked_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    meta: dict = Depends(request_meta),
):
    await lifecycle.remove_linked_member(db, membership_id, linked_id, current_user, meta)
    return MessageResponse(message="Linked member removed")
