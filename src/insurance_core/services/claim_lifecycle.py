# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim business logic service.

Claims start PENDING and move to APPROVED or REJECTED exactly once. The
decision is written with a compare-and-swap on ``status = PENDING`` so two
concurrent deciders cannot both win.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from beartype import beartype
from pydantic import ValidationError

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import (
    DomainError,
    ErrorCode,
    fail,
    from_validation_error,
    invalid_input,
    not_found,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import ClaimStatusUpdateDetails, ClaimSubmissionDetails
from ..models.base import Page
from ..models.claim import (
    Claim,
    ClaimCreate,
    ClaimFilters,
    ClaimStatus,
    ClaimStatusUpdate,
)
from ..models.policy import UserPolicy, UserPolicyStatus
from ..models.principal import Principal, Role
from ..repositories import AnyOf, Condition, Filter, Op, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import Action, AuthorizationGuard
from .common import coerce, end_of_day, page_window, start_of_day

logger = get_logger(__name__)


class ClaimLifecycle:
    """Service for claim submission, decisions and role-scoped reads."""

    def __init__(
        self,
        claims: Repository[Claim],
        user_policies: Repository[UserPolicy],
        audit: AuditRecorder,
        guard: AuthorizationGuard,
        clock: Clock,
        settings: Settings,
    ) -> None:
        """Initialize claim service with dependency validation."""
        if claims is None or user_policies is None:
            raise ValueError("Claim and user policy repositories required")

        self._claims = claims
        self._user_policies = user_policies
        self._audit = audit
        self._guard = guard
        self._clock = clock
        self._settings = settings

    async def _active_policy_of(
        self, principal: Principal, user_policy_id: UUID
    ) -> Result[UserPolicy, DomainError]:
        policy = await self._user_policies.find_by_id(user_policy_id)
        if (
            policy is None
            or policy.user_id != principal.id
            or policy.effective_status(self._clock.today()) != UserPolicyStatus.ACTIVE
        ):
            return fail(
                ErrorCode.POLICY_NOT_FOUND_OR_INACTIVE, "Policy not found or inactive"
            )
        return Ok(policy)

    @beartype
    async def create(
        self,
        principal: Principal,
        data: ClaimCreate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[Claim, DomainError]:
        """File a PENDING claim against one of the caller's active policies.

        Args:
            principal: Customer filing the claim
            data: Claim input (validated model or raw mapping)
            ip: Client address for the audit trail

        Returns:
            Result containing the new claim or a domain error
        """
        allowed = self._guard.require_role(principal, Action.CLAIM_CREATE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(ClaimCreate, data)
        if isinstance(parsed, Err):
            # The policy check outranks field validation when the id is usable
            raw_policy_id = data.get("user_policy_id") if isinstance(data, Mapping) else None
            try:
                policy_id = UUID(str(raw_policy_id))
            except ValueError:
                return parsed
            policy_check = await self._active_policy_of(principal, policy_id)
            if isinstance(policy_check, Err):
                return policy_check
            return parsed
        claim_data = parsed.value

        policy_check = await self._active_policy_of(principal, claim_data.user_policy_id)
        if isinstance(policy_check, Err):
            return policy_check
        policy = policy_check.value

        today = self._clock.today()
        if claim_data.incident_date > today:
            return invalid_input("Incident date cannot be in the future")
        if not policy.covers(claim_data.incident_date):
            return invalid_input("Incident date is outside the policy coverage period")

        claim = Claim(
            id=uuid4(),
            created_at=self._clock.now(),
            user_id=principal.id,
            user_policy_id=policy.id,
            incident_date=claim_data.incident_date,
            description=claim_data.description,
            amount_claimed=claim_data.amount_claimed,
            status=ClaimStatus.PENDING,
        )
        claim = await self._claims.insert(claim)

        logger.info("Claim %s filed against policy %s", claim.id, policy.id)
        await self._audit.record(
            ClaimSubmissionDetails(
                claim_id=claim.id,
                user_policy_id=policy.id,
                incident_date=claim.incident_date,
                description=claim.description,
                amount_claimed=claim.amount_claimed,
            ),
            principal.id,
            ip,
        )
        return Ok(claim)

    @staticmethod
    def _parse_status_update(
        update: ClaimStatusUpdate | Mapping[str, Any],
    ) -> Result[ClaimStatusUpdate, DomainError]:
        if isinstance(update, ClaimStatusUpdate):
            return Ok(update)
        try:
            return Ok(ClaimStatusUpdate.model_validate(update))
        except ValidationError as e:
            if any(error.get("loc", ())[:1] == ("status",) for error in e.errors()):
                return fail(
                    ErrorCode.INVALID_STATUS,
                    "Invalid status. Must be PENDING, APPROVED, or REJECTED",
                )
            return from_validation_error(e)

    @beartype
    async def update_status(
        self,
        principal: Principal,
        claim_id: UUID,
        update: ClaimStatusUpdate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[Claim, DomainError]:
        """Record a decision (or notes while still PENDING) on a claim."""
        allowed = self._guard.require_role(principal, Action.CLAIM_DECIDE)
        if isinstance(allowed, Err):
            return allowed

        parsed = self._parse_status_update(update)
        if isinstance(parsed, Err):
            return parsed
        decision = parsed.value

        claim = await self._claims.find_by_id(claim_id)
        if claim is None:
            return not_found("Claim")

        assigned = self._guard.require(
            principal, Action.CLAIM_DECIDE, assigned_agent_id=claim.assigned_agent_id
        )
        if isinstance(assigned, Err):
            return assigned

        if claim.status != ClaimStatus.PENDING:
            return fail(ErrorCode.ALREADY_PROCESSED, "Claim already processed")

        changes: dict[str, Any] = {"decision_notes": decision.notes}
        if decision.status.is_decision:
            changes.update(
                status=decision.status,
                decided_by_agent_id=principal.id,
                decided_at=self._clock.now(),
            )

        updated = await self._claims.update_where(
            claim_id, {"status": ClaimStatus.PENDING}, changes
        )
        if updated is None:
            if await self._claims.find_by_id(claim_id) is None:
                return not_found("Claim")
            return fail(ErrorCode.ALREADY_PROCESSED, "Claim already processed")

        logger.info(
            "Claim %s set to %s by %s", claim_id, updated.status.value, principal.id
        )
        await self._audit.record(
            ClaimStatusUpdateDetails(
                claim_id=claim_id,
                status=updated.status,
                notes=decision.notes,
                decided_by_agent_id=updated.decided_by_agent_id,
            ),
            principal.id,
            ip,
        )
        return Ok(updated)

    @staticmethod
    def _search_filter(term: str) -> AnyOf:
        options = [
            Condition("description", Op.ICONTAINS, term),
            Condition("status", Op.ICONTAINS, term),
        ]
        try:
            amount = Decimal(term)
        except InvalidOperation:
            amount = None
        if amount is not None and amount.is_finite():
            options.append(Condition("amount_claimed", Op.EQ, amount))
        return AnyOf(options)

    def _visibility(self, principal: Principal) -> list[Filter]:
        if principal.role == Role.CUSTOMER:
            return [eq("user_id", principal.id)]
        if principal.role == Role.AGENT:
            return [eq("assigned_agent_id", principal.id)]
        return []

    @beartype
    async def list_with_filters(
        self,
        principal: Principal,
        filters: ClaimFilters | Mapping[str, Any] | None = None,
    ) -> Result[Page[Claim], DomainError]:
        """Role-scoped, AND-filtered, newest-first page of claims."""
        allowed = self._guard.require_role(principal, Action.CLAIM_READ)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(ClaimFilters, filters or {})
        if isinstance(parsed, Err):
            return parsed
        criteria = parsed.value

        conditions = self._visibility(principal)
        if criteria.status:
            conditions.append(eq("status", criteria.status))
        if criteria.date_from:
            conditions.append(
                Condition("created_at", Op.GTE, start_of_day(criteria.date_from))
            )
        if criteria.date_to:
            conditions.append(
                Condition("created_at", Op.LT, end_of_day(criteria.date_to))
            )
        if criteria.amount_min is not None:
            conditions.append(Condition("amount_claimed", Op.GTE, criteria.amount_min))
        if criteria.amount_max is not None:
            conditions.append(Condition("amount_claimed", Op.LTE, criteria.amount_max))
        if criteria.search:
            conditions.append(self._search_filter(criteria.search))

        page, limit, offset = page_window(self._settings, criteria.page, criteria.limit)
        total = await self._claims.count(conditions)
        items = await self._claims.find(conditions, offset=offset, limit=limit)
        return Ok(Page[Claim].build(items, page=page, limit=limit, total=total))

    @beartype
    async def get_by_id(
        self, principal: Principal, claim_id: UUID
    ) -> Result[Claim, DomainError]:
        """One claim; existence is checked before visibility."""
        allowed = self._guard.require_role(principal, Action.CLAIM_READ)
        if isinstance(allowed, Err):
            return allowed

        claim = await self._claims.find_by_id(claim_id)
        if claim is None:
            return not_found("Claim")

        visible = self._guard.require(
            principal,
            Action.CLAIM_READ,
            owner_id=claim.user_id,
            assigned_agent_id=claim.assigned_agent_id,
        )
        if isinstance(visible, Err):
            return visible
        return Ok(claim)
