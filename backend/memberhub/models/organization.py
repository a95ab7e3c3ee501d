"""
Organization model.

An organization is the tenant boundary: every user, membership type,
membership and workflow belongs to exactly one organization.
"""
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from memberhub.models.base import BaseModel

if TYPE_CHECKING:
    from memberhub.models.user import User
    from memberhub.models.membership_type import MembershipType


class Organization(BaseModel):
    """Organization (tenant) model."""
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    slug: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="organization",
        cascade="all, delete-orphan"
    )
    membership_types: Mapped[list["MembershipType"]] = relationship(
        "MembershipType",
        back_populates="organization",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"
