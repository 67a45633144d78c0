# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim domain models with strict validation.

This module defines the claim entity, its creation and decision inputs and
the filter set used by the role-scoped claim listing.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig, IdentifiableModel


class ClaimStatus(str, Enum):
    """Enumeration of claim decision states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_decision(self) -> bool:
        """Terminal decision states."""
        return self is not ClaimStatus.PENDING


@beartype
class ClaimCreate(BaseModelConfig):
    """Customer input for filing a claim."""

    user_policy_id: UUID = Field(..., description="Policy the claim is filed against")
    incident_date: date = Field(..., description="Date when the incident occurred")
    description: str = Field(
        ..., min_length=1, max_length=5000, description="Incident description"
    )
    amount_claimed: Decimal = Field(
        ...,
        gt=Decimal("0"),
        decimal_places=2,
        max_digits=14,
        description="Amount being claimed",
    )


@beartype
class ClaimStatusUpdate(BaseModelConfig):
    """Agent/admin decision input."""

    status: ClaimStatus = Field(..., description="Requested status")
    notes: str | None = Field(
        None, max_length=2000, description="Decision notes"
    )


@beartype
class Claim(IdentifiableModel):
    """Complete claim entity."""

    user_id: UUID = Field(..., description="Customer who filed the claim")
    user_policy_id: UUID = Field(..., description="Policy the claim is filed against")
    incident_date: date = Field(..., description="Date when the incident occurred")
    description: str = Field(..., min_length=1, max_length=5000)
    amount_claimed: Decimal = Field(..., gt=Decimal("0"), description="Amount claimed")
    status: ClaimStatus = Field(..., description="Current decision state")
    decision_notes: str | None = Field(None, max_length=2000)
    assigned_agent_id: UUID | None = Field(None, description="Agent handling the claim")
    decided_by_agent_id: UUID | None = Field(
        None, description="Agent or admin who made the decision"
    )
    decided_at: datetime | None = Field(None, description="Decision timestamp")

    @model_validator(mode="after")
    @beartype
    def validate_decision_fields(self) -> "Claim":
        """A decision maker is recorded exactly for decided claims."""
        decided = self.status.is_decision
        if decided and self.decided_by_agent_id is None:
            raise ValueError("Decided claims must record the deciding agent")
        if not decided and self.decided_by_agent_id is not None:
            raise ValueError("Pending claims cannot carry a deciding agent")
        return self


@beartype
class ClaimFilters(BaseModelConfig):
    """Conjunctive filters for the claim listing."""

    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)
    status: ClaimStatus | None = Field(None)
    date_from: date | None = Field(None, description="Created on or after")
    date_to: date | None = Field(None, description="Created on or before (inclusive)")
    amount_min: Decimal | None = Field(None, ge=Decimal("0"))
    amount_max: Decimal | None = Field(None, ge=Decimal("0"))
    search: str | None = Field(None, max_length=200)

    @model_validator(mode="after")
    @beartype
    def validate_ranges(self) -> "ClaimFilters":
        """Range bounds must be ordered."""
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        if (
            self.amount_min is not None
            and self.amount_max is not None
            and self.amount_min > self.amount_max
        ):
            raise ValueError("amount_min must not exceed amount_max")
        return self
