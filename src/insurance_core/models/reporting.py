# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read-only aggregates for the admin views."""

from decimal import Decimal
from uuid import UUID

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig


@beartype
class AgentWorkload(BaseModelConfig):
    """Claims assigned to one agent, bucketed by status."""

    agent_id: UUID = Field(..., description="Agent identifier")
    agent_name: str = Field(..., description="Agent display name")
    pending: int = Field(default=0, ge=0)
    approved: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        """All claims ever assigned to the agent."""
        return self.pending + self.approved + self.rejected


@beartype
class DashboardSummary(BaseModelConfig):
    """Headline KPIs for the admin dashboard."""

    total_users: int = Field(..., ge=0)
    active_policies: int = Field(..., ge=0)
    pending_claims: int = Field(..., ge=0)
    total_payments: Decimal = Field(..., ge=Decimal("0"))
