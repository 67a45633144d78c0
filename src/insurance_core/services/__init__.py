# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Service layer for business logic."""

from .admin_dashboard import AdminDashboard
from .assignment import AssignmentEngine
from .audit_recorder import AuditRecorder
from .authorization import Action, AuthorizationGuard
from .claim_lifecycle import ClaimLifecycle
from .container import ServiceContainer, build_services
from .payment_ledger import PaymentLedger, PaymentProcessor, SimulatedPaymentProcessor
from .policy_catalog import PolicyCatalog
from .policy_lifecycle import PolicyLifecycle
from .user_directory import UserDirectory

__all__ = [
    "Action",
    "AdminDashboard",
    "AssignmentEngine",
    "AuditRecorder",
    "AuthorizationGuard",
    "ClaimLifecycle",
    "PaymentLedger",
    "PaymentProcessor",
    "PolicyCatalog",
    "PolicyLifecycle",
    "ServiceContainer",
    "SimulatedPaymentProcessor",
    "UserDirectory",
    "build_services",
]
