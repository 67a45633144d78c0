# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Audit trail models.

Every mutating action is recorded as an immutable ``AuditLogEntry``. The
``details`` payload is a tagged union discriminated by ``action`` so each
action keeps its own typed shape.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig
from .claim import ClaimStatus
from .payment import PaymentMethod
from .policy import Nominee
from .principal import Role


class AuditAction(str, Enum):
    """Action categories written to the audit trail."""

    POLICY_CREATION = "policy creation"
    POLICY_UPDATE = "policy update"
    POLICY_DELETION = "policy deletion"
    POLICY_PURCHASE = "policy purchase"
    POLICY_CANCELLATION = "policy cancellation"
    POLICY_AGENT_ASSIGNMENT = "policy agent assignment"
    CLAIM_SUBMISSION = "claim submission"
    CLAIM_STATUS_UPDATE = "claim status update"
    CLAIM_ASSIGNMENT = "claim assignment"
    PAYMENT_RECORDED = "payment recorded"
    USER_CREATION = "user creation"
    USER_UPDATE = "user update"
    USER_DELETION = "user deletion"


class PolicyCreatedDetails(BaseModelConfig):
    action: Literal["policy creation"] = "policy creation"
    policy_id: UUID
    code: str
    title: str
    premium: Decimal


class PolicyUpdatedDetails(BaseModelConfig):
    action: Literal["policy update"] = "policy update"
    policy_id: UUID
    changed_fields: list[str]


class PolicyDeletedDetails(BaseModelConfig):
    action: Literal["policy deletion"] = "policy deletion"
    policy_id: UUID
    code: str


class PolicyPurchaseDetails(BaseModelConfig):
    action: Literal["policy purchase"] = "policy purchase"
    user_policy_id: UUID
    policy_product_id: UUID
    start_date: date
    term_months: int
    premium: Decimal
    nominee: Nominee


class PolicyCancellationDetails(BaseModelConfig):
    action: Literal["policy cancellation"] = "policy cancellation"
    user_policy_id: UUID
    cancellation_reason: str = "User requested cancellation"


class PolicyAgentAssignmentDetails(BaseModelConfig):
    action: Literal["policy agent assignment"] = "policy agent assignment"
    user_policy_id: UUID
    agent_id: UUID


class ClaimSubmissionDetails(BaseModelConfig):
    action: Literal["claim submission"] = "claim submission"
    claim_id: UUID
    user_policy_id: UUID
    incident_date: date
    description: str
    amount_claimed: Decimal


class ClaimStatusUpdateDetails(BaseModelConfig):
    action: Literal["claim status update"] = "claim status update"
    claim_id: UUID
    status: ClaimStatus
    notes: str | None = None
    decided_by_agent_id: UUID | None = None


class ClaimAssignmentDetails(BaseModelConfig):
    action: Literal["claim assignment"] = "claim assignment"
    claim_id: UUID
    agent_id: UUID


class PaymentRecordedDetails(BaseModelConfig):
    action: Literal["payment recorded"] = "payment recorded"
    payment_id: UUID
    user_policy_id: UUID
    amount: Decimal
    method: PaymentMethod
    transaction_id: str | None = None


class UserCreatedDetails(BaseModelConfig):
    action: Literal["user creation"] = "user creation"
    user_id: UUID
    email: str
    role: Role


class UserUpdatedDetails(BaseModelConfig):
    action: Literal["user update"] = "user update"
    user_id: UUID
    changed_fields: list[str]


class UserDeletedDetails(BaseModelConfig):
    action: Literal["user deletion"] = "user deletion"
    user_id: UUID


AuditDetails = Annotated[
    Union[
        PolicyCreatedDetails,
        PolicyUpdatedDetails,
        PolicyDeletedDetails,
        PolicyPurchaseDetails,
        PolicyCancellationDetails,
        PolicyAgentAssignmentDetails,
        ClaimSubmissionDetails,
        ClaimStatusUpdateDetails,
        ClaimAssignmentDetails,
        PaymentRecordedDetails,
        UserCreatedDetails,
        UserUpdatedDetails,
        UserDeletedDetails,
    ],
    Field(discriminator="action"),
]


@beartype
class AuditLogEntry(BaseModelConfig):
    """Append-only record of one mutating action."""

    id: UUID = Field(..., description="Entry identifier")
    action: AuditAction = Field(..., description="Action category")
    actor_id: UUID = Field(..., description="Principal who performed the action")
    details: AuditDetails = Field(..., description="Action-specific payload")
    ip: str = Field(..., min_length=1, max_length=64, description="Client IP address")
    timestamp: datetime = Field(..., description="When the action was recorded")

    @model_validator(mode="after")
    @beartype
    def validate_action_matches_details(self) -> "AuditLogEntry":
        """The entry action is the union tag of its payload."""
        if self.action.value != self.details.action:
            raise ValueError("Audit action does not match its details payload")
        return self


@beartype
class AuditLogFilters(BaseModelConfig):
    """Read-side filters for the audit trail."""

    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)
    action: str | None = Field(None, max_length=100, description="Substring match")
    actor_id: UUID | None = Field(None)
    date_from: date | None = Field(None)
    date_to: date | None = Field(None, description="Inclusive through end of day")
