"""
Pydantic schemas for Membership Type endpoints.
"""
from typing import Any, Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CustomFieldCreate(BaseModel):
    """Create a custom field on a membership type."""
    field_name: str = Field(..., min_length=1, max_length=100)
    field_label: str = Field(..., min_length=1, max_length=200)
    field_type: str = Field(default="text", max_length=50)
    field_options: Optional[dict | list] = None
    is_required: bool = False
    validation_rules: Optional[dict] = None


class CustomFieldResponse(BaseModel):
    """Custom field response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    membership_type_id: str
    field_name: str
    field_label: str
    field_type: str
    field_options: Optional[dict | list] = None
    is_required: bool = False
    display_order: int
    validation_rules: Optional[dict] = None
    created: datetime
    updated: datetime


class MembershipTypeCreate(BaseModel):
    """Create a new membership type with optional nested custom fields."""
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    duration_months: int = Field(..., ge=1)
    max_members: int = Field(default=1, ge=1)
    requires_approval: bool = True
    is_active: bool = True
    settings: Optional[dict[str, Any]] = None
    custom_fields: list[CustomFieldCreate] = Field(default_factory=list)

    @field_validator("name", "slug", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class MembershipTypeUpdate(BaseModel):
    """Partial update. The slug is fixed at creation."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    duration_months: Optional[int] = Field(None, ge=1)
    max_members: Optional[int] = Field(None, ge=1)
    requires_approval: Optional[bool] = None
    is_active: Optional[bool] = None
    settings: Optional[dict[str, Any]] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def reject_null_required(self):
        """Explicit nulls are not allowed on NOT NULL columns."""
        for field in ("name", "price", "duration_months", "max_members", "requires_approval", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class MembershipTypeResponse(BaseModel):
    """Membership type response with its custom fields."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    name: str
    slug: str
    description: Optional[str] = None
    price: Decimal
    duration_months: int
    max_members: int
    requires_approval: bool
    is_active: bool
    settings: Optional[dict[str, Any]] = None
    custom_fields: list[CustomFieldResponse] = []
    created: datetime
    updated: datetime


class MembershipTypeEnvelope(BaseModel):
    membership_type: MembershipTypeResponse


class MembershipTypeListEnvelope(BaseModel):
    membership_types: list[MembershipTypeResponse]


class CustomFieldEnvelope(BaseModel):
    custom_field: CustomFieldResponse
