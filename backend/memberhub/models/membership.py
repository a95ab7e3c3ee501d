"""
Membership and linked member models.

A membership is one user's subscription to a membership type for a bounded
period. Its status moves through the lifecycle defined by
VALID_STATUS_TRANSITIONS; renewals are new sibling rows, never edits of
the original.
"""
from typing import Optional, TYPE_CHECKING
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Text, ForeignKey, Date, DateTime, Numeric, JSON, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from memberhub.models.base import BaseModel

if TYPE_CHECKING:
    from memberhub.models.user import User
    from memberhub.models.membership_type import MembershipType


class MembershipStatus(str, Enum):
    """Lifecycle status of a membership."""
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    """Payment state of a membership."""
    UNPAID = "unpaid"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"
    WAIVED = "waived"


# Valid status transitions (from -> to allowed statuses)
VALID_STATUS_TRANSITIONS = {
    MembershipStatus.PENDING: [
        MembershipStatus.ACTIVE,
        MembershipStatus.REJECTED
    ],
    MembershipStatus.ACTIVE: [
        MembershipStatus.EXPIRED
    ],
    MembershipStatus.REJECTED: [],  # Terminal state
    MembershipStatus.EXPIRED: [],  # Terminal state, renewals are new rows
}


class Membership(BaseModel):
    """Membership model."""
    __tablename__ = "memberships"

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    membership_type_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("membership_types.id"),
        nullable=False,
        index=True
    )

    status: Mapped[MembershipStatus] = mapped_column(
        SQLEnum(
            MembershipStatus,
            name="membershipstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=MembershipStatus.PENDING,
        nullable=False,
        index=True
    )

    # Null until approval (or set up front on renewals)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="paymentstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=PaymentStatus.UNPAID,
        nullable=False
    )
    amount_paid: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    approved_by: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id]
    )
    approver: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[approved_by]
    )
    membership_type: Mapped["MembershipType"] = relationship("MembershipType")
    linked_members: Mapped[list["LinkedMember"]] = relationship(
        "LinkedMember",
        back_populates="membership",
        cascade="all, delete-orphan",
        order_by="LinkedMember.created"
    )

    def can_transition_to(self, new_status: MembershipStatus) -> bool:
        """Check if transition to new_status is valid."""
        allowed = VALID_STATUS_TRANSITIONS.get(self.status, [])
        return new_status in allowed

    def __repr__(self) -> str:
        return f"<Membership {self.id} ({self.status.value})>"


class LinkedMember(BaseModel):
    """Dependent (e.g. family member) attached to a membership."""
    __tablename__ = "linked_members"

    membership_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    relationship_type: Mapped[Optional[str]] = mapped_column("relationship", String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    custom_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    membership: Mapped["Membership"] = relationship(
        "Membership",
        back_populates="linked_members"
    )

    def __repr__(self) -> str:
        return f"<LinkedMember {self.first_name} {self.last_name}>"
