"""
Pydantic schemas for user administration endpoints.
"""
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator, model_validator

from memberhub.models.user import UserRole, UserStatus
from memberhub.schemas.auth import UserResponse
from memberhub.schemas.common import Pagination


class UserUpdate(BaseModel):
    """
    Partial profile update. Members may edit their own names and phone;
    role and status are reserved for administrators.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def reject_null_required(self):
        """Explicit nulls are not allowed on NOT NULL columns."""
        for field in ("first_name", "last_name", "role", "status"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class UserListItem(UserResponse):
    """User row in the admin listing."""
    membership_count: int = 0


class UserMembershipSummary(BaseModel):
    """One of the user's memberships, newest first."""
    id: str
    membership_type_id: str
    membership_type_name: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_status: str
    created: datetime


class UserDetail(UserResponse):
    """User with their membership history."""
    memberships: list[UserMembershipSummary] = []


class UserPageEnvelope(BaseModel):
    users: list[UserListItem]
    pagination: Pagination


class UserDetailEnvelope(BaseModel):
    user: UserDetail


class UserActionResponse(BaseModel):
    message: str
    user: UserResponse
