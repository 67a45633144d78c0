"""Initial database schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        nullable=False,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at_column() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    """Create initial database schema."""
    # Column names match the pydantic model fields one to one.
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="users_email_key"),
        sa.CheckConstraint(
            "role IN ('customer', 'agent', 'admin')", name="ck_users_role"
        ),
    )
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "policy_products",
        _id_column(),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("premium", sa.Numeric(14, 2), nullable=False),
        sa.Column("term_months", sa.Integer(), nullable=False),
        sa.Column("min_sum_insured", sa.Numeric(14, 2), nullable=False),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id", name="pk_policy_products"),
        sa.UniqueConstraint("code", name="policy_products_code_key"),
        sa.CheckConstraint("premium > 0", name="ck_policy_products_premium"),
        sa.CheckConstraint("term_months > 0", name="ck_policy_products_term_months"),
    )

    # users and policy_products rows may be deleted while history still refers
    # to them, so those references are indexed columns rather than foreign keys.
    op.create_table(
        "user_policies",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("policy_product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("premium_paid", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("assigned_agent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "nominee",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id", name="pk_user_policies"),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'CANCELLED', 'EXPIRED')",
            name="ck_user_policies_status",
        ),
        sa.CheckConstraint("end_date > start_date", name="ck_user_policies_dates"),
    )
    op.create_index("ix_user_policies_user_id", "user_policies", ["user_id"])
    op.create_index(
        "ix_user_policies_policy_product_id", "user_policies", ["policy_product_id"]
    )
    # At most one ACTIVE binding per (user, product)
    op.create_index(
        "uq_user_policies_active",
        "user_policies",
        ["user_id", "policy_product_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        "claims",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_policy_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("incident_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount_claimed", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("decision_notes", sa.Text(), nullable=True),
        sa.Column("assigned_agent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("decided_by_agent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id", name="pk_claims"),
        sa.ForeignKeyConstraint(
            ["user_policy_id"],
            ["user_policies.id"],
            name="fk_claims_user_policy_id_user_policies",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')", name="ck_claims_status"
        ),
        sa.CheckConstraint("amount_claimed > 0", name="ck_claims_amount_claimed"),
    )
    op.create_index("ix_claims_user_id", "claims", ["user_id"])
    op.create_index("ix_claims_assigned_agent_id", "claims", ["assigned_agent_id"])
    op.create_index("ix_claims_status_created_at", "claims", ["status", "created_at"])

    op.create_table(
        "payments",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_policy_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("reference", sa.String(200), nullable=False),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.ForeignKeyConstraint(
            ["user_policy_id"],
            ["user_policies.id"],
            name="fk_payments_user_policy_id_user_policies",
        ),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount"),
        sa.CheckConstraint(
            "method IN ('CARD', 'NETBANKING', 'OFFLINE', 'SIMULATED')",
            name="ck_payments_method",
        ),
    )
    op.create_index("ix_payments_user_id", "payments", ["user_id"])

    op.create_table(
        "audit_logs",
        _id_column(),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
        ),
        sa.Column("ip", sa.String(64), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])


def downgrade() -> None:
    """Drop initial database schema."""
    op.drop_table("audit_logs")
    op.drop_table("payments")
    op.drop_table("claims")
    op.drop_index("uq_user_policies_active", table_name="user_policies")
    op.drop_table("user_policies")
    op.drop_table("policy_products")
    op.drop_table("users")
