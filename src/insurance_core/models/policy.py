# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Policy domain models: catalog products and customer-bound policies.

A ``PolicyProduct`` is the admin-managed catalog template. A ``UserPolicy``
is one customer's bound instance of a product with its own coverage window.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field, field_validator, model_validator

from .base import BaseModelConfig, IdentifiableModel


class UserPolicyStatus(str, Enum):
    """Enumeration of user policy lifecycle states."""

    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


@beartype
def check_product_code(v: str) -> str:
    """Codes are compared case-sensitively but never carry inner spaces."""
    if any(ch.isspace() for ch in v):
        raise ValueError("Product code cannot contain whitespace")
    return v


@beartype
class PolicyProductBase(BaseModelConfig):
    """Catalog attributes shared across product operations."""

    code: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Globally unique product code, e.g. HEALTH-001",
    )
    title: str = Field(..., min_length=1, max_length=200, description="Product title")
    description: str = Field(
        ..., min_length=1, max_length=5000, description="Product description"
    )
    premium: Decimal = Field(
        ...,
        gt=Decimal("0"),
        decimal_places=2,
        max_digits=12,
        description="Premium charged at purchase",
    )
    term_months: int = Field(..., gt=0, le=600, description="Coverage term in months")
    min_sum_insured: Decimal = Field(
        ...,
        gt=Decimal("0"),
        decimal_places=2,
        max_digits=14,
        description="Minimum sum insured",
    )

    @field_validator("code")
    @classmethod
    @beartype
    def normalize_code(cls, v: str) -> str:
        return check_product_code(v)


@beartype
class PolicyProductCreate(PolicyProductBase):
    """Model for creating a catalog product."""


@beartype
class PolicyProductUpdate(BaseModelConfig):
    """Partial catalog product update."""

    code: str | None = Field(None, min_length=1, max_length=50)
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    premium: Decimal | None = Field(
        None, gt=Decimal("0"), decimal_places=2, max_digits=12
    )
    term_months: int | None = Field(None, gt=0, le=600)
    min_sum_insured: Decimal | None = Field(
        None, gt=Decimal("0"), decimal_places=2, max_digits=14
    )

    @field_validator("code")
    @classmethod
    @beartype
    def normalize_code(cls, v: str | None) -> str | None:
        return None if v is None else check_product_code(v)

    @model_validator(mode="after")
    @beartype
    def validate_at_least_one_field(self) -> "PolicyProductUpdate":
        """Ensure at least one field is provided for update."""
        if not any(getattr(self, field) is not None for field in type(self).model_fields):
            raise ValueError("At least one field must be provided for update")
        return self


@beartype
class PolicyProduct(PolicyProductBase, IdentifiableModel):
    """Complete catalog product."""


@beartype
class Nominee(BaseModelConfig):
    """Beneficiary named at purchase time.

    Emptiness is a business rule (``InvalidNominee``) checked by the
    lifecycle service, so the model itself accepts empty strings.
    """

    name: str = Field(default="", max_length=200, description="Nominee name")
    relation: str = Field(default="", max_length=100, description="Relation to holder")


@beartype
class PurchaseRequest(BaseModelConfig):
    """Customer input for binding a catalog product."""

    start_date: date = Field(..., description="Coverage start date")
    term_months: int | None = Field(
        None, gt=0, le=600, description="Overrides the product term when given"
    )
    nominee: Nominee = Field(..., description="Policy nominee")


@beartype
class UserPolicy(IdentifiableModel):
    """A customer's bound instance of a catalog product."""

    user_id: UUID = Field(..., description="Owning customer")
    policy_product_id: UUID = Field(..., description="Catalog product reference")
    start_date: date = Field(..., description="Coverage start")
    end_date: date = Field(..., description="Coverage end (start + term months)")
    premium_paid: Decimal = Field(
        ..., gt=Decimal("0"), description="Product premium copied at purchase time"
    )
    status: UserPolicyStatus = Field(..., description="Lifecycle status")
    assigned_agent_id: UUID | None = Field(None, description="Servicing agent")
    nominee: Nominee = Field(..., description="Policy nominee")

    @model_validator(mode="after")
    @beartype
    def validate_dates(self) -> "UserPolicy":
        """Ensure end date is after start date."""
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self

    @beartype
    def has_lapsed(self, today: date) -> bool:
        """Coverage window has ended."""
        return self.end_date < today

    @beartype
    def effective_status(self, today: date) -> UserPolicyStatus:
        """Stored status with time-driven expiry applied."""
        if self.status == UserPolicyStatus.ACTIVE and self.has_lapsed(today):
            return UserPolicyStatus.EXPIRED
        return self.status

    @beartype
    def as_of(self, today: date) -> "UserPolicy":
        """Copy whose status reflects derived expiry."""
        status = self.effective_status(today)
        if status == self.status:
            return self
        return self.model_copy(update={"status": status})

    @beartype
    def covers(self, day: date) -> bool:
        """Day falls inside the coverage window (both ends inclusive)."""
        return self.start_date <= day <= self.end_date
