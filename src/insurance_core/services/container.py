# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Explicit wiring of repositories, clock and processor into services."""

from attrs import frozen

from ..core.clock import Clock, SystemClock
from ..core.config import Settings, get_settings
from ..core.database import Database
from ..core.logging_utils import get_logger
from ..repositories import Repositories, memory_repositories, postgres_repositories
from .admin_dashboard import AdminDashboard
from .assignment import AssignmentEngine
from .audit_recorder import AuditRecorder
from .authorization import AuthorizationGuard
from .claim_lifecycle import ClaimLifecycle
from .payment_ledger import PaymentLedger, PaymentProcessor, SimulatedPaymentProcessor
from .policy_catalog import PolicyCatalog
from .policy_lifecycle import PolicyLifecycle
from .user_directory import UserDirectory

logger = get_logger(__name__)


@frozen
class ServiceContainer:
    """Every service instance for one application."""

    settings: Settings
    clock: Clock
    guard: AuthorizationGuard
    repositories: Repositories
    audit: AuditRecorder
    catalog: PolicyCatalog
    policies: PolicyLifecycle
    claims: ClaimLifecycle
    assignments: AssignmentEngine
    payments: PaymentLedger
    users: UserDirectory
    dashboard: AdminDashboard
    database: Database | None = None


def build_services(
    settings: Settings | None = None,
    *,
    repositories: Repositories | None = None,
    clock: Clock | None = None,
    processor: PaymentProcessor | None = None,
    database: Database | None = None,
) -> ServiceContainer:
    """Build the service graph.

    Repositories default to the backend named by ``settings.repository_backend``;
    the PostgreSQL backend needs a ``Database`` that is connected before use.
    """
    settings = settings or get_settings()
    clock = clock or SystemClock()

    if repositories is None:
        if settings.repository_backend == "postgres":
            database = database or Database(settings)
            repositories = postgres_repositories(database)
        else:
            repositories = memory_repositories()
        logger.info("Using %s repositories", settings.repository_backend)

    processor = processor or SimulatedPaymentProcessor(settings, clock)
    guard = AuthorizationGuard()
    audit = AuditRecorder(repositories.audit_logs, clock, guard, settings)

    return ServiceContainer(
        settings=settings,
        clock=clock,
        guard=guard,
        repositories=repositories,
        audit=audit,
        catalog=PolicyCatalog(
            repositories.products,
            repositories.user_policies,
            audit,
            guard,
            clock,
            settings,
        ),
        policies=PolicyLifecycle(
            repositories.products,
            repositories.user_policies,
            repositories.users,
            audit,
            guard,
            clock,
        ),
        claims=ClaimLifecycle(
            repositories.claims,
            repositories.user_policies,
            audit,
            guard,
            clock,
            settings,
        ),
        assignments=AssignmentEngine(
            repositories.claims, repositories.users, audit, guard
        ),
        payments=PaymentLedger(
            repositories.payments,
            repositories.user_policies,
            processor,
            audit,
            guard,
            clock,
            settings,
        ),
        users=UserDirectory(repositories.users, audit, guard, clock, settings),
        dashboard=AdminDashboard(
            repositories.users,
            repositories.user_policies,
            repositories.claims,
            repositories.payments,
            guard,
            clock,
        ),
        database=database,
    )
