# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Admin dashboard metrics."""

from beartype import beartype

from ..core.clock import Clock
from ..core.errors import DomainError
from ..core.result_types import Err, Ok, Result
from ..models.claim import Claim, ClaimStatus
from ..models.payment import Payment
from ..models.policy import UserPolicy, UserPolicyStatus
from ..models.principal import Principal
from ..models.reporting import DashboardSummary
from ..models.user import User
from ..repositories import Condition, Op, Repository, eq
from .authorization import Action, AuthorizationGuard


class AdminDashboard:
    """Headline counts for administrators."""

    def __init__(
        self,
        users: Repository[User],
        user_policies: Repository[UserPolicy],
        claims: Repository[Claim],
        payments: Repository[Payment],
        guard: AuthorizationGuard,
        clock: Clock,
    ) -> None:
        """Initialize dashboard with its repositories."""
        self._users = users
        self._user_policies = user_policies
        self._claims = claims
        self._payments = payments
        self._guard = guard
        self._clock = clock

    @beartype
    async def summary(self, principal: Principal) -> Result[DashboardSummary, DomainError]:
        """User count, active policies, pending claims and payment volume."""
        allowed = self._guard.require_role(principal, Action.REPORT_READ)
        if isinstance(allowed, Err):
            return allowed

        # Lapsed policies still stored as ACTIVE are not counted
        active_policies = await self._user_policies.count(
            [
                eq("status", UserPolicyStatus.ACTIVE),
                Condition("end_date", Op.GTE, self._clock.today()),
            ]
        )
        return Ok(
            DashboardSummary(
                total_users=await self._users.count(),
                active_policies=active_policies,
                pending_claims=await self._claims.count(
                    [eq("status", ClaimStatus.PENDING)]
                ),
                total_payments=await self._payments.sum("amount"),
            )
        )
