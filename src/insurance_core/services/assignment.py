# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim-to-agent assignment and workload tracking."""

from uuid import UUID

from beartype import beartype

from ..core.errors import DomainError, ErrorCode, fail, invalid_input, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import ClaimAssignmentDetails
from ..models.claim import Claim, ClaimStatus
from ..models.principal import Principal, Role
from ..models.reporting import AgentWorkload
from ..models.user import User
from ..repositories import Condition, Op, OrderBy, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import AGENT_ROLES, Action, AuthorizationGuard

logger = get_logger(__name__)


class AssignmentEngine:
    """Admin assignment of pending claims to agents."""

    def __init__(
        self,
        claims: Repository[Claim],
        users: Repository[User],
        audit: AuditRecorder,
        guard: AuthorizationGuard,
    ) -> None:
        """Initialize assignment engine with dependency validation."""
        if claims is None or users is None:
            raise ValueError("Claim and user repositories required")

        self._claims = claims
        self._users = users
        self._audit = audit
        self._guard = guard

    @beartype
    async def list_unassigned(
        self, principal: Principal
    ) -> Result[list[Claim], DomainError]:
        """PENDING claims nobody is handling yet, newest first."""
        allowed = self._guard.require_role(principal, Action.CLAIM_ASSIGN)
        if isinstance(allowed, Err):
            return allowed

        claims = await self._claims.find(
            [
                eq("status", ClaimStatus.PENDING),
                Condition("assigned_agent_id", Op.IS_NULL, True),
            ]
        )
        return Ok(claims)

    @beartype
    async def assign(
        self,
        principal: Principal,
        claim_id: UUID,
        agent_id: UUID,
        ip: str | None = None,
    ) -> Result[Claim, DomainError]:
        """Assign (or reassign) a PENDING claim; the status is left untouched."""
        allowed = self._guard.require_role(principal, Action.CLAIM_ASSIGN)
        if isinstance(allowed, Err):
            return allowed

        claim = await self._claims.find_by_id(claim_id)
        if claim is None:
            return not_found("Claim")
        if claim.status != ClaimStatus.PENDING:
            return fail(
                ErrorCode.CANNOT_ASSIGN_PROCESSED, "Cannot assign processed claim"
            )

        agent = await self._users.find_by_id(agent_id)
        if agent is None:
            return not_found("Agent")
        if agent.role not in AGENT_ROLES:
            return invalid_input("Assignee must be an agent or admin")

        updated = await self._claims.update_where(
            claim_id,
            {"status": ClaimStatus.PENDING},
            {"assigned_agent_id": agent_id},
        )
        if updated is None:
            if await self._claims.find_by_id(claim_id) is None:
                return not_found("Claim")
            return fail(
                ErrorCode.CANNOT_ASSIGN_PROCESSED, "Cannot assign processed claim"
            )

        logger.info("Claim %s assigned to agent %s", claim_id, agent_id)
        await self._audit.record(
            ClaimAssignmentDetails(claim_id=claim_id, agent_id=agent_id),
            principal.id,
            ip,
        )
        return Ok(updated)

    @beartype
    async def list_for_agent(
        self, principal: Principal, agent_id: UUID | None = None
    ) -> Result[list[Claim], DomainError]:
        """Every claim assigned to an agent, any status, newest first."""
        target = agent_id or principal.id
        allowed = self._guard.require(
            principal, Action.ASSIGNMENT_READ, assigned_agent_id=target
        )
        if isinstance(allowed, Err):
            return allowed

        return Ok(await self._claims.find([eq("assigned_agent_id", target)]))

    @beartype
    async def agent_workload(
        self, principal: Principal
    ) -> Result[list[AgentWorkload], DomainError]:
        """Per-agent claim counts by status.

        Every agent is listed; admins appear only once they hold assignments.
        """
        allowed = self._guard.require_role(principal, Action.REPORT_READ)
        if isinstance(allowed, Err):
            return allowed

        candidates = await self._users.find(
            [Condition("role", Op.IN, list(AGENT_ROLES))],
            order_by=(OrderBy("name", descending=False),),
        )
        workloads = []
        for user in candidates:
            counts = {}
            for status in ClaimStatus:
                counts[status] = await self._claims.count(
                    [eq("assigned_agent_id", user.id), eq("status", status)]
                )
            workload = AgentWorkload(
                agent_id=user.id,
                agent_name=user.name,
                pending=counts[ClaimStatus.PENDING],
                approved=counts[ClaimStatus.APPROVED],
                rejected=counts[ClaimStatus.REJECTED],
            )
            if user.role == Role.ADMIN and workload.total == 0:
                continue
            workloads.append(workload)
        return Ok(workloads)
