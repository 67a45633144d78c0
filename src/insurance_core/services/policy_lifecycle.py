# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""User policy lifecycle: purchase, cancellation, expiry and agent binding.

Status transitions::

    ACTIVE -> CANCELLED   (customer initiated)
    ACTIVE -> EXPIRED     (end date passed; derived on read, persisted lazily)

Nothing leaves CANCELLED or EXPIRED. At most one ACTIVE policy exists per
``(user_id, policy_product_id)``; the storage layer enforces this with a
partial unique constraint so concurrent purchases cannot both succeed.
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from beartype import beartype
from dateutil.relativedelta import relativedelta

from ..core.clock import Clock
from ..core.errors import DomainError, ErrorCode, fail, invalid_input, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import (
    PolicyAgentAssignmentDetails,
    PolicyCancellationDetails,
    PolicyPurchaseDetails,
)
from ..models.policy import (
    PolicyProduct,
    PurchaseRequest,
    UserPolicy,
    UserPolicyStatus,
)
from ..models.principal import Principal
from ..models.user import User
from ..repositories import Condition, DuplicateKeyError, Op, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import AGENT_ROLES, Action, AuthorizationGuard
from .common import coerce

logger = get_logger(__name__)


class PolicyLifecycle:
    """Binds catalog products to customers and manages the bound policies."""

    def __init__(
        self,
        products: Repository[PolicyProduct],
        user_policies: Repository[UserPolicy],
        users: Repository[User],
        audit: AuditRecorder,
        guard: AuthorizationGuard,
        clock: Clock,
    ) -> None:
        """Initialize lifecycle service with dependency validation."""
        if products is None or user_policies is None or users is None:
            raise ValueError("Product, user policy and user repositories required")

        self._products = products
        self._user_policies = user_policies
        self._users = users
        self._audit = audit
        self._guard = guard
        self._clock = clock

    @beartype
    async def purchase(
        self,
        principal: Principal,
        policy_product_id: UUID,
        request: PurchaseRequest | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[UserPolicy, DomainError]:
        """Bind a catalog product to the calling customer.

        Args:
            principal: Purchasing customer (or admin buying for themselves)
            policy_product_id: Catalog product to bind
            request: Start date, optional term override and nominee
            ip: Client address for the audit trail

        Returns:
            Result containing the new ACTIVE policy or a domain error
        """
        allowed = self._guard.require(
            principal, Action.POLICY_PURCHASE, owner_id=principal.id
        )
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(PurchaseRequest, request)
        if isinstance(parsed, Err):
            return parsed
        data = parsed.value

        product = await self._products.find_by_id(policy_product_id)
        if product is None:
            return not_found("Policy")

        if not data.nominee.name or not data.nominee.relation:
            return fail(
                ErrorCode.INVALID_NOMINEE, "Nominee name and relation are required"
            )

        term_months = data.term_months or product.term_months
        try:
            end_date = data.start_date + relativedelta(months=term_months)
        except (OverflowError, ValueError):
            return invalid_input("Policy term ends beyond the supported date range")

        policy = UserPolicy(
            id=uuid4(),
            created_at=self._clock.now(),
            user_id=principal.id,
            policy_product_id=product.id,
            start_date=data.start_date,
            end_date=end_date,
            premium_paid=product.premium,
            status=UserPolicyStatus.ACTIVE,
            nominee=data.nominee,
        )

        stored = await self._insert_active(policy)
        if isinstance(stored, Err):
            return stored

        logger.info(
            "User %s purchased product %s as policy %s",
            principal.id,
            product.code,
            policy.id,
        )
        await self._audit.record(
            PolicyPurchaseDetails(
                user_policy_id=policy.id,
                policy_product_id=product.id,
                start_date=policy.start_date,
                term_months=term_months,
                premium=policy.premium_paid,
                nominee=policy.nominee,
            ),
            principal.id,
            ip,
        )
        return stored

    async def _insert_active(self, policy: UserPolicy) -> Result[UserPolicy, DomainError]:
        """Insert, expiring a lapsed blocker and retrying once."""
        try:
            return Ok(await self._user_policies.insert(policy))
        except DuplicateKeyError:
            pass

        blockers = await self._user_policies.find(
            [
                eq("user_id", policy.user_id),
                eq("policy_product_id", policy.policy_product_id),
                eq("status", UserPolicyStatus.ACTIVE),
            ],
            limit=1,
        )
        today = self._clock.today()
        if blockers and blockers[0].has_lapsed(today):
            await self._user_policies.update_where(
                blockers[0].id,
                {"status": UserPolicyStatus.ACTIVE},
                {"status": UserPolicyStatus.EXPIRED},
            )
            logger.info("Expired lapsed policy %s before re-purchase", blockers[0].id)
            try:
                return Ok(await self._user_policies.insert(policy))
            except DuplicateKeyError:
                pass

        return fail(
            ErrorCode.DUPLICATE_ACTIVE_POLICY,
            "User already has an active policy for this product",
        )

    @beartype
    async def cancel(
        self,
        principal: Principal,
        user_policy_id: UUID,
        ip: str | None = None,
    ) -> Result[UserPolicy, DomainError]:
        """Cancel an ACTIVE policy owned by the caller."""
        allowed = self._guard.require_role(principal, Action.POLICY_CANCEL)
        if isinstance(allowed, Err):
            return allowed

        policy = await self._user_policies.find_by_id(user_policy_id)
        if policy is None:
            return not_found("Policy")

        owned = self._guard.require(
            principal, Action.POLICY_CANCEL, owner_id=policy.user_id
        )
        if isinstance(owned, Err):
            return owned

        blocked = self._cancellation_conflict(policy)
        if blocked is not None:
            return blocked

        cancelled = await self._user_policies.update_where(
            user_policy_id,
            {"status": UserPolicyStatus.ACTIVE},
            {"status": UserPolicyStatus.CANCELLED},
        )
        if cancelled is None:
            # Lost a race with another transition; report the state that won
            current = await self._user_policies.find_by_id(user_policy_id)
            if current is None:
                return not_found("Policy")
            return self._cancellation_conflict(current) or fail(
                ErrorCode.ALREADY_CANCELLED, "Policy is already cancelled"
            )

        logger.info("Policy %s cancelled by %s", user_policy_id, principal.id)
        await self._audit.record(
            PolicyCancellationDetails(user_policy_id=user_policy_id),
            principal.id,
            ip,
        )
        return Ok(cancelled)

    def _cancellation_conflict(self, policy: UserPolicy) -> Err[DomainError] | None:
        status = policy.effective_status(self._clock.today())
        if status == UserPolicyStatus.CANCELLED:
            return fail(ErrorCode.ALREADY_CANCELLED, "Policy is already cancelled")
        if status == UserPolicyStatus.EXPIRED:
            return fail(ErrorCode.CANNOT_CANCEL_EXPIRED, "Cannot cancel expired policy")
        return None

    @beartype
    async def list_for_user(
        self, principal: Principal, user_id: UUID | None = None
    ) -> Result[list[UserPolicy], DomainError]:
        """A user's policies, newest first, with derived expiry.

        Admins omitting ``user_id`` get every user's policies.
        """
        scope = self._guard.owner_scope(principal, Action.POLICY_READ, user_id)
        if isinstance(scope, Err):
            return scope

        owner = scope.value
        conditions = [] if owner is None else [eq("user_id", owner)]
        today = self._clock.today()
        policies = await self._user_policies.find(conditions)
        return Ok([p.as_of(today) for p in policies])

    @beartype
    async def get(
        self, principal: Principal, user_policy_id: UUID
    ) -> Result[UserPolicy, DomainError]:
        """One policy; existence is checked before ownership."""
        allowed = self._guard.require_role(principal, Action.POLICY_READ)
        if isinstance(allowed, Err):
            return allowed

        policy = await self._user_policies.find_by_id(user_policy_id)
        if policy is None:
            return not_found("Policy")

        owned = self._guard.require(principal, Action.POLICY_READ, owner_id=policy.user_id)
        if isinstance(owned, Err):
            return owned
        return Ok(policy.as_of(self._clock.today()))

    @beartype
    async def assign_agent(
        self,
        principal: Principal,
        user_policy_id: UUID,
        agent_id: UUID,
        ip: str | None = None,
    ) -> Result[UserPolicy, DomainError]:
        """Attach a servicing agent to a user policy."""
        allowed = self._guard.require_role(principal, Action.POLICY_ASSIGN_AGENT)
        if isinstance(allowed, Err):
            return allowed

        policy = await self._user_policies.find_by_id(user_policy_id)
        if policy is None:
            return not_found("Policy")

        agent = await self._users.find_by_id(agent_id)
        if agent is None:
            return not_found("Agent")
        if agent.role not in AGENT_ROLES:
            return invalid_input("Assignee must be an agent or admin")

        updated = await self._user_policies.update(
            user_policy_id, {"assigned_agent_id": agent_id}
        )
        if updated is None:
            return not_found("Policy")

        logger.info("Policy %s assigned to agent %s", user_policy_id, agent_id)
        await self._audit.record(
            PolicyAgentAssignmentDetails(user_policy_id=user_policy_id, agent_id=agent_id),
            principal.id,
            ip,
        )
        return Ok(updated.as_of(self._clock.today()))

    @beartype
    async def expire_lapsed(self, principal: Principal) -> Result[int, DomainError]:
        """Persist EXPIRED for every stored-ACTIVE policy past its end date.

        Intended for a scheduler acting as admin; reads already derive expiry.
        """
        allowed = self._guard.require_role(principal, Action.POLICY_EXPIRE)
        if isinstance(allowed, Err):
            return allowed

        today = self._clock.today()
        lapsed = await self._user_policies.find(
            [
                eq("status", UserPolicyStatus.ACTIVE),
                Condition("end_date", Op.LT, today),
            ]
        )
        expired = 0
        for policy in lapsed:
            flipped = await self._user_policies.update_where(
                policy.id,
                {"status": UserPolicyStatus.ACTIVE},
                {"status": UserPolicyStatus.EXPIRED},
            )
            if flipped is not None:
                expired += 1

        if expired:
            logger.info("Expired %d lapsed policies", expired)
        return Ok(expired)
