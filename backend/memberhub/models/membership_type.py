"""
Membership type (tier) and custom field models.

A membership type defines price, duration and approval rules for a tier.
Custom fields are extra attributes an organization collects when a user
applies for that tier; their ordering is kept dense via display_order.
"""
from typing import Optional, TYPE_CHECKING
from decimal import Decimal
from sqlalchemy import (
    String, Text, ForeignKey, Boolean, Integer, Numeric, JSON, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from memberhub.models.base import BaseModel

if TYPE_CHECKING:
    from memberhub.models.organization import Organization


class MembershipType(BaseModel):
    """Tenant-scoped membership tier."""
    __tablename__ = "membership_types"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_membership_types_org_slug"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    duration_months: Mapped[int] = mapped_column(Integer, nullable=False, default=12)

    # Number of people (holder + dependents) the tier covers
    max_members: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="membership_types"
    )
    custom_fields: Mapped[list["CustomField"]] = relationship(
        "CustomField",
        back_populates="membership_type",
        cascade="all, delete-orphan",
        order_by="CustomField.display_order"
    )

    def __repr__(self) -> str:
        return f"<MembershipType {self.slug}>"


class CustomField(BaseModel):
    """Extra attribute collected at application time for a membership type."""
    __tablename__ = "custom_fields"

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    membership_type_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("membership_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    field_label: Mapped[str] = mapped_column(String(200), nullable=False)
    # text, textarea, select, checkbox, date, number ... interpreted by the frontend
    field_type: Mapped[str] = mapped_column(String(50), nullable=False, default="text")
    field_options: Mapped[Optional[dict | list]] = mapped_column(JSON, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    validation_rules: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    membership_type: Mapped["MembershipType"] = relationship(
        "MembershipType",
        back_populates="custom_fields"
    )

    def __repr__(self) -> str:
        return f"<CustomField {self.field_name} #{self.display_order}>"
