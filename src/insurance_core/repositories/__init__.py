# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Repository backends and the per-aggregate bundle the services consume."""

from typing import Any

from attrs import frozen

from ..core.database import Database
from ..models.audit import AuditLogEntry
from ..models.claim import Claim
from ..models.payment import Payment
from ..models.policy import PolicyProduct, UserPolicy, UserPolicyStatus
from ..models.user import User
from .base import (
    NEWEST_FIRST,
    AnyOf,
    Condition,
    DuplicateKeyError,
    Filter,
    Op,
    OrderBy,
    Repository,
    UniqueConstraint,
    eq,
)
from .memory import InMemoryRepository
from .postgres import PostgresRepository

# Names match the indexes created by the initial migration
PRODUCT_CODE_KEY = "policy_products_code_key"
USER_EMAIL_KEY = "users_email_key"
ACTIVE_POLICY_KEY = "uq_user_policies_active"

# Audit entries carry a timestamp instead of created_at
AUDIT_ORDER = (OrderBy("timestamp", descending=True),)


@frozen
class Repositories:
    """One repository per aggregate."""

    users: Repository[User]
    products: Repository[PolicyProduct]
    user_policies: Repository[UserPolicy]
    claims: Repository[Claim]
    payments: Repository[Payment]
    audit_logs: Repository[AuditLogEntry]


def memory_repositories() -> Repositories:
    """Fresh in-memory backend with the same unique constraints as the schema."""
    users: Any = InMemoryRepository(
        User,
        name="users",
        constraints=[UniqueConstraint(USER_EMAIL_KEY, ("email",))],
    )
    products: Any = InMemoryRepository(
        PolicyProduct,
        name="policy_products",
        constraints=[UniqueConstraint(PRODUCT_CODE_KEY, ("code",))],
    )
    user_policies: Any = InMemoryRepository(
        UserPolicy,
        name="user_policies",
        constraints=[
            UniqueConstraint(
                ACTIVE_POLICY_KEY,
                ("user_id", "policy_product_id"),
                where={"status": UserPolicyStatus.ACTIVE},
            )
        ],
    )
    claims: Any = InMemoryRepository(Claim, name="claims")
    payments: Any = InMemoryRepository(Payment, name="payments")
    audit_logs: Any = InMemoryRepository(
        AuditLogEntry, name="audit_logs", default_order=AUDIT_ORDER
    )
    return Repositories(
        users=users,
        products=products,
        user_policies=user_policies,
        claims=claims,
        payments=payments,
        audit_logs=audit_logs,
    )


def postgres_repositories(db: Database) -> Repositories:
    """PostgreSQL backend over a connected ``Database``."""
    users: Any = PostgresRepository(db, User, table="users")
    products: Any = PostgresRepository(db, PolicyProduct, table="policy_products")
    user_policies: Any = PostgresRepository(
        db, UserPolicy, table="user_policies", json_columns=("nominee",)
    )
    claims: Any = PostgresRepository(db, Claim, table="claims")
    payments: Any = PostgresRepository(db, Payment, table="payments")
    audit_logs: Any = PostgresRepository(
        db, AuditLogEntry, table="audit_logs", json_columns=("details",),
        default_order=AUDIT_ORDER,
    )
    return Repositories(
        users=users,
        products=products,
        user_policies=user_policies,
        claims=claims,
        payments=payments,
        audit_logs=audit_logs,
    )


__all__ = [
    "ACTIVE_POLICY_KEY",
    "NEWEST_FIRST",
    "PRODUCT_CODE_KEY",
    "USER_EMAIL_KEY",
    "AnyOf",
    "Condition",
    "DuplicateKeyError",
    "Filter",
    "InMemoryRepository",
    "Op",
    "OrderBy",
    "PostgresRepository",
    "Repositories",
    "Repository",
    "UniqueConstraint",
    "eq",
    "memory_repositories",
    "postgres_repositories",
]
