"""
Pydantic schemas for Membership endpoints.
"""
from typing import Any, Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from memberhub.models.membership import MembershipStatus, PaymentStatus
from memberhub.schemas.common import Pagination


class MembershipApprove(BaseModel):
    """Approve a pending membership. Dates default from the membership type."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MembershipReject(BaseModel):
    """Reject a pending membership."""
    reason: Optional[str] = None


class MembershipUpdate(BaseModel):
    """
    Administrative patch. Any status may be written here; transitions outside
    the lifecycle table are recorded as forced in the audit log.
    """
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[MembershipStatus] = None
    payment_status: Optional[PaymentStatus] = None
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    custom_data: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def reject_null_required(self):
        """Explicit nulls are not allowed on NOT NULL columns."""
        for field in ("status", "payment_status"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class LinkedMemberCreate(BaseModel):
    """Add a dependent to a membership."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    relationship: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    custom_data: Optional[dict[str, Any]] = None


class LinkedMemberResponse(BaseModel):
    """Linked member response."""
    id: str
    membership_id: str
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    relationship: Optional[str] = None
    email: Optional[str] = None
    custom_data: Optional[dict[str, Any]] = None
    created: datetime
    updated: datetime


class MembershipResponse(BaseModel):
    """Membership response with owner and type summary."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    user_id: str
    membership_type_id: str
    membership_type_name: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_status: str
    amount_paid: Optional[Decimal] = None
    notes: Optional[str] = None
    custom_data: Optional[dict[str, Any]] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    linked_members: Optional[list[LinkedMemberResponse]] = None
    created: datetime
    updated: datetime


class MembershipEnvelope(BaseModel):
    membership: MembershipResponse


class MembershipActionResponse(BaseModel):
    message: str
    membership: MembershipResponse


class MembershipListEnvelope(BaseModel):
    memberships: list[MembershipResponse]


class MembershipPageEnvelope(BaseModel):
    memberships: list[MembershipResponse]
    pagination: Pagination


class RenewalResponse(BaseModel):
    message: str
    renewal_id: str


class LinkedMemberEnvelope(BaseModel):
    linked_member: LinkedMemberResponse


class MembershipStatistics(BaseModel):
    """Headline counts for the organization dashboard."""
    total_members: int
    active_memberships: int
    pending_memberships: int
    expiring_soon: int


class StatisticsEnvelope(BaseModel):
    statistics: MembershipStatistics
