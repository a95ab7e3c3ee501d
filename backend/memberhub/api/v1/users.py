"""
User administration endpoints.

Endpoints:
- GET    /users       - Paginated list with membership counts (admin)
- GET    /users/{id}  - User with memberships (self or admin)
- PUT    /users/{id}  - Profile update; role/status admin only
- DELETE /users/{id}  - Delete user and memberships (super admin)
"""
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.api.v1.auth import user_to_response
from memberhub.core.deps import get_current_user, request_meta
from memberhub.core.permissions import Capability, require_capability
from memberhub.db.base import get_db
from memberhub.models.membership import Membership
from memberhub.models.user import User, UserRole, UserStatus
from memberhub.schemas.common import MessageResponse, Pagination
from memberhub.schemas.user import (
    UserActionResponse,
    UserDetail,
    UserDetailEnvelope,
    UserListItem,
    UserMembershipSummary,
    UserPageEnvelope,
    UserUpdate,
)
from memberhub.services import users as user_service

router = APIRouter()


def membership_to_summary(membership: Membership) -> UserMembershipSummary:
    return UserMembershipSummary(
        id=membership.id,
        membership_type_id=membership.membership_type_id,
        membership_type_name=membership.membership_type.name if membership.membership_type else None,
        status=membership.status.value,
        start_date=membership.start_date,
        end_date=membership.end_date,
        payment_status=membership.payment_status.value,
        created=membership.created,
    )


@router.get("/users", response_model=UserPageEnvelope)
async def list_users(
    role: Optional[UserRole] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    """List users of the caller's organization, newest first."""
    rows, total = await user_service.list_users(
        db,
        current_user.organization_id,
        role=role,
        status=status_filter,
        search=search,
        page=page,
        limit=limit,
    )
    return UserPageEnvelope(
        users=[
            UserListItem(**user_to_response(user).model_dump(), membership_count=count)
            for user, count in rows
        ],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=ceil(total / limit),
        ),
    )


@router.get("/users/{user_id}", response_model=UserDetailEnvelope)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user, memberships = await user_service.get_user(db, user_id, current_user)
    return UserDetailEnvelope(
        user=UserDetail(
            **user_to_response(user).model_dump(),
            memberships=[membership_to_summary(m) for m in memberships],
        )
    )


@router.put("/users/{user_id}", response_model=UserActionResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    meta: dict = Depends(request_meta),
):
    """Update a profile. Suspending or reactivating an account is a status change."""
    user = await user_service.update_user(db, user_id, current_user, data, meta)
    return UserActionResponse(message="User updated successfully", user=user_to_response(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.DELETE_USERS)),
    meta: dict = Depends(request_meta),
):
    await user_service.delete_user(db, user_id, current_user, meta)
    return MessageResponse(message="User deleted successfully")
