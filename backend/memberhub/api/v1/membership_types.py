"""
Membership type endpoints.

Endpoints:
- GET    /membership-types                              - List types (any caller)
- GET    /membership-types/{id}                         - Get a type (any caller)
- POST   /membership-types                              - Create (admin)
- PUT    /membership-types/{id}                         - Partial update (admin)
- DELETE /membership-types/{id}                         - Delete if unused (super admin)
- POST   /membership-types/{id}/custom-fields           - Append custom field (admin)
- DELETE /membership-types/{id}/custom-fields/{field_id} - Delete custom field (admin)
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.deps import get_current_user_optional, request_meta
from memberhub.core.exceptions import ValidationError
from memberhub.core.permissions import Capability, require_capability
from memberhub.db.base import get_db
from memberhub.models.user import User
from memberhub.schemas.common import MessageResponse
from memberhub.schemas.membership_type import (
    CustomFieldCreate,
    CustomFieldEnvelope,
    CustomFieldResponse,
    MembershipTypeCreate,
    MembershipTypeEnvelope,
    MembershipTypeListEnvelope,
    MembershipTypeResponse,
    MembershipTypeUpdate,
)
from memberhub.services import membership_types as registry

router = APIRouter()


def resolve_organization_id(
    current_user: Optional[User],
    organization_id: Optional[str],
) -> str:
    """Session organization first, then the query parameter, then the configured default."""
    if current_user is not None:
        return current_user.organization_id
    org_id = organization_id or settings.DEFAULT_ORGANIZATION_ID
    if not org_id:
        raise ValidationError("organization_id is required")
    return org_id


@router.get("/membership-types", response_model=MembershipTypeListEnvelope)
async def list_membership_types(
    is_active: Optional[bool] = None,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """List membership types with their custom fields, ordered by name."""
    org_id = resolve_organization_id(current_user, organization_id)
    types = await registry.list_membership_types(db, org_id, is_active)
    return MembershipTypeListEnvelope(
        membership_types=[MembershipTypeResponse.model_validate(t) for t in types]
    )


@router.get("/membership-types/{type_id}", response_model=MembershipTypeEnvelope)
async def get_membership_type(
    type_id: str,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Get a membership type by id.

    Signed-in callers only see their own organization's types. Anonymous
    callers are scoped by organization_id or the configured default when
    either is present, otherwise the type is looked up by id alone.
    """
    if current_user is not None:
        org_id = current_user.organization_id
    else:
        org_id = organization_id or settings.DEFAULT_ORGANIZATION_ID
    membership_type = await registry.get_membership_type(db, type_id, org_id)
    return MembershipTypeEnvelope(
        membership_type=MembershipTypeResponse.model_validate(membership_type)
    )


@router.post("/membership-types", response_model=MembershipTypeEnvelope, status_code=status.HTTP_201_CREATED)
async def create_membership_type(
    data: MembershipTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIP_TYPES)),
    meta: dict = Depends(request_meta),
):
    """
    Create a membership type.

    Nested custom_fields are stored in the order given. Fails with 400 if
    the slug already exists in the organization.
    """
    membership_type = await registry.create_membership_type(
        db, current_user.organization_id, data, current_user, meta
    )
    return MembershipTypeEnvelope(
        membership_type=MembershipTypeResponse.model_validate(membership_type)
    )


@router.put("/membership-types/{type_id}", response_model=MembershipTypeEnvelope)
async def update_membership_type(
    type_id: str,
    data: MembershipTypeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIP_TYPES)),
    meta: dict = Depends(request_meta),
):
    membership_type = await registry.update_membership_type(
        db, type_id, current_user.organization_id, data, current_user, meta
    )
    return MembershipTypeEnvelope(
        membership_type=MembershipTypeResponse.model_validate(membership_type)
    )


@router.delete("/membership-types/{type_id}", response_model=MessageResponse)
async def delete_membership_type(
    type_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.DELETE_MEMBERSHIP_TYPES)),
    meta: dict = Depends(request_meta),
):
    """Delete a membership type. Types in use must be deactivated instead."""
    await registry.delete_membership_type(
        db, type_id, current_user.organization_id, current_user, meta
    )
    return MessageResponse(message="Membership type deleted successfully")


@router.post(
    "/membership-types/{type_id}/custom-fields",
    response_model=CustomFieldEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_custom_field(
    type_id: str,
    data: CustomFieldCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIP_TYPES)),
    meta: dict = Depends(request_meta),
):
    field = await registry.add_custom_field(
        db, type_id, current_user.organization_id, data, current_user, meta
    )
    return CustomFieldEnvelope(custom_field=CustomFieldResponse.model_validate(field))


@router.delete("/membership-types/{type_id}/custom-fields/{field_id}", response_model=MessageResponse)
async def delete_custom_field(
    type_id: str,
    field_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.MANAGE_MEMBERSHIP_TYPES)),
    meta: dict = Depends(request_meta),
):
    await registry.delete_custom_field(
        db, type_id, field_id, current_user.organization_id, current_user, meta
    )
    return MessageResponse(message="Custom field deleted successfully")
