# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain models package for the insurance core.

This package exports all Pydantic domain models with strict validation
and immutability.
"""

from .audit import AuditAction, AuditLogEntry, AuditLogFilters
from .base import BaseModelConfig, IdentifiableModel, Page
from .claim import Claim, ClaimCreate, ClaimFilters, ClaimStatus, ClaimStatusUpdate
from .payment import (
    Payment,
    PaymentCreate,
    PaymentMethod,
    PaymentStats,
    ProcessorResult,
)
from .policy import (
    Nominee,
    PolicyProduct,
    PolicyProductCreate,
    PolicyProductUpdate,
    PurchaseRequest,
    UserPolicy,
    UserPolicyStatus,
)
from .principal import Principal, Role
from .reporting import AgentWorkload, DashboardSummary
from .user import User, UserCreate, UserUpdate

__all__ = [
    # Base models
    "BaseModelConfig",
    "IdentifiableModel",
    "Page",
    # Identity
    "Principal",
    "Role",
    "User",
    "UserCreate",
    "UserUpdate",
    # Catalog and user policies
    "PolicyProduct",
    "PolicyProductCreate",
    "PolicyProductUpdate",
    "Nominee",
    "PurchaseRequest",
    "UserPolicy",
    "UserPolicyStatus",
    # Claims
    "Claim",
    "ClaimCreate",
    "ClaimFilters",
    "ClaimStatus",
    "ClaimStatusUpdate",
    # Payments
    "Payment",
    "PaymentCreate",
    "PaymentMethod",
    "PaymentStats",
    "ProcessorResult",
    # Audit and reporting
    "AuditAction",
    "AuditLogEntry",
    "AuditLogFilters",
    "AgentWorkload",
    "DashboardSummary",
]
