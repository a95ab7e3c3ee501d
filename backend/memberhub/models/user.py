"""
User model.
"""
from typing import Optional, TYPE_CHECKING
import enum
from sqlalchemy import String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from memberhub.models.base import BaseModel

if TYPE_CHECKING:
    from memberhub.models.organization import Organization


class UserRole(str, enum.Enum):
    """Closed set of roles a user can hold in their organization."""
    MEMBER = "member"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class UserStatus(str, enum.Enum):
    """Account status. Only active users may authenticate."""
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class User(BaseModel):
    """User model for authentication and profile."""
    __tablename__ = "users"

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="userrole", values_callable=lambda x: [e.value for e in x]),
        default=UserRole.MEMBER,
        nullable=False,
        index=True
    )
    status: Mapped[UserStatus] = mapped_column(
        SQLEnum(UserStatus, name="userstatus", values_callable=lambda x: [e.value for e in x]),
        default=UserStatus.PENDING,
        nullable=False,
        index=True
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="users"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
