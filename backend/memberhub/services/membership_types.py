"""
Membership type registry.

Tier definitions (price, duration, approval rules) and their custom fields.
All lookups are scoped to an organization.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from memberhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from memberhub.models.membership import Membership
from memberhub.models.membership_type import MembershipType, CustomField
from memberhub.models.user import User
from memberhub.schemas.membership_type import (
    CustomFieldCreate, MembershipTypeCreate, MembershipTypeUpdate
)
from memberhub.services.audit import log_audit

logger = logging.getLogger(__name__)


async def list_membership_types(
    db: AsyncSession,
    organization_id: str,
    is_active: Optional[bool] = None,
) -> list[MembershipType]:
    """List an organization's membership types with their custom fields."""
    query = (
        select(MembershipType)
        .options(selectinload(MembershipType.custom_fields))
        .where(MembershipType.organization_id == organization_id)
    )
    if is_active is not None:
        query = query.where(MembershipType.is_active == is_active)
    query = query.order_by(MembershipType.name.asc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_membership_type(
    db: AsyncSession,
    type_id: str,
    organization_id: Optional[str] = None,
) -> MembershipType:
    query = (
        select(MembershipType)
        .options(selectinload(MembershipType.custom_fields))
        .where(MembershipType.id == type_id)
    )
    if organization_id is not None:
        query = query.where(MembershipType.organization_id == organization_id)

    result = await db.execute(query)
    membership_type = result.scalar_one_or_none()
    if membership_type is None:
        raise NotFoundError("Membership type not found")
    return membership_type


async def create_membership_type(
    db: AsyncSession,
    organization_id: str,
    data: MembershipTypeCreate,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> MembershipType:
    """
    Create a membership type and its nested custom fields.

    Slugs are unique per organization. Nested custom fields keep the order
    they were supplied in (display_order = position).
    """
    existing = await db.execute(
        select(MembershipType.id).where(
            MembershipType.organization_id == organization_id,
            MembershipType.slug == data.slug,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Slug already exists")

    membership_type = MembershipType(
        organization_id=organization_id,
        name=data.name,
        slug=data.slug,
        description=data.description,
        price=data.price,
        duration_months=data.duration_months,
        max_members=data.max_members,
        requires_approval=data.requires_approval,
        is_active=data.is_active,
        settings=data.settings or {},
        custom_fields=[
            CustomField(
                organization_id=organization_id,
                field_name=field.field_name,
                field_label=field.field_label,
                field_type=field.field_type,
                field_options=field.field_options,
                is_required=field.is_required,
                display_order=index,
                validation_rules=field.validation_rules,
            )
            for index, field in enumerate(data.custom_fields)
        ],
    )
    db.add(membership_type)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=actor.id,
        action="membership_type_created",
        entity_type="membership_type",
        entity_id=membership_type.id,
        **(meta or {}),
    )
    logger.info("Membership type %s created in org %s", membership_type.slug, organization_id)
    return membership_type


async def update_membership_type(
    db: AsyncSession,
    type_id: str,
    organization_id: str,
    data: MembershipTypeUpdate,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> MembershipType:
    """Apply a partial update. Only supplied fields change."""
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No updates provided")

    membership_type = await get_membership_type(db, type_id, organization_id)

    for field, value in updates.items():
        setattr(membership_type, field, value)
    membership_type.updated = datetime.now(timezone.utc)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=actor.id,
        action="membership_type_updated",
        entity_type="membership_type",
        entity_id=membership_type.id,
        changes=updates,
        **(meta or {}),
    )
    return membership_type


async def count_memberships_of_type(db: AsyncSession, type_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Membership).where(
            Membership.membership_type_id == type_id
        )
    )
    return result.scalar() or 0


async def delete_membership_type(
    db: AsyncSession,
    type_id: str,
    organization_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> None:
    """Hard-delete a type that no membership references."""
    membership_type = await get_membership_type(db, type_id, organization_id)

    if await count_memberships_of_type(db, type_id) > 0:
        raise ConflictError(
            "Cannot delete membership type that is in use. Deactivate it instead."
        )

    await db.delete(membership_type)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=actor.id,
        action="membership_type_deleted",
        entity_type="membership_type",
        entity_id=type_id,
        **(meta or {}),
    )
    logger.info("Membership type %s deleted from org %s", type_id, organization_id)


async def add_custom_field(
    db: AsyncSession,
    type_id: str,
    organization_id: str,
    data: CustomFieldCreate,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> CustomField:
    """Append a custom field after the type's current last field."""
    membership_type = await get_membership_type(db, type_id, organization_id)

    order_result = await db.execute(
        select(func.coalesce(func.max(CustomField.display_order), -1) + 1).where(
            CustomField.membership_type_id == type_id
        )
    )
    display_order = order_result.scalar()

    field = CustomField(
        organization_id=organization_id,
        field_name=data.field_name,
        field_label=data.field_label,
        field_type=data.field_type,
        field_options=data.field_options,
        is_required=data.is_required,
        display_order=display_order,
        validation_rules=data.validation_rules,
    )
    membership_type.custom_fields.append(field)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=actor.id,
        action="custom_field_added",
        entity_type="custom_field",
        entity_id=field.id,
        changes={"membership_type_id": type_id, "field_name": field.field_name},
        **(meta or {}),
    )
    return field


async def delete_custom_field(
    db: AsyncSession,
    type_id: str,
    field_id: str,
    organization_id: str,
    actor: User,
    meta: Optional[dict[str, Any]] = None,
) -> None:
    """Delete a custom field. Deleting an unknown field id is a no-op."""
    membership_type = await get_membership_type(db, type_id, organization_id)

    field = next((f for f in membership_type.custom_fields if f.id == field_id), None)
    if field is None:
        return

    membership_type.custom_fields.remove(field)
    await db.flush()

    await log_audit(
        db,
        organization_id=organization_id,
        user_id=actor.id,
        action="custom_field_deleted",
        entity_type="custom_field",
        entity_id=field_id,
        changes={"membership_type_id": type_id, "field_name": field.field_name},
        **(meta or {}),
    )
