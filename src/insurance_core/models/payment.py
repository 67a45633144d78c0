# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Payment ledger models."""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig, IdentifiableModel


class PaymentMethod(str, Enum):
    """Supported payment methods."""

    CARD = "CARD"
    NETBANKING = "NETBANKING"
    OFFLINE = "OFFLINE"
    SIMULATED = "SIMULATED"


@beartype
class PaymentCreate(BaseModelConfig):
    """Customer input for recording a payment."""

    user_policy_id: UUID = Field(..., description="Policy being paid for")
    amount: Decimal = Field(
        ..., gt=Decimal("0"), decimal_places=2, max_digits=14, description="Amount"
    )
    method: PaymentMethod = Field(..., description="Payment method")
    reference: str = Field(
        ..., min_length=1, max_length=200, description="Caller-supplied reference"
    )


@beartype
class Payment(IdentifiableModel):
    """Immutable ledger entry."""

    user_id: UUID = Field(..., description="Paying customer")
    user_policy_id: UUID = Field(..., description="Policy paid for")
    amount: Decimal = Field(..., gt=Decimal("0"))
    method: PaymentMethod = Field(...)
    reference: str = Field(..., min_length=1, max_length=200)
    transaction_id: str | None = Field(
        None, max_length=100, description="Processor transaction reference"
    )


@beartype
class ProcessorResult(BaseModelConfig):
    """Outcome reported by a payment processor."""

    success: bool = Field(...)
    transaction_id: str | None = Field(None, max_length=100)
    reason: str | None = Field(None, max_length=500)


@beartype
class PaymentStats(BaseModelConfig):
    """Aggregate view over one customer's payments."""

    total_payments: int = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=Decimal("0"))
    average_amount: Decimal = Field(..., ge=Decimal("0"))
