# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Append-only audit trail.

Recording is fire-and-forget: a storage failure is logged and never fails
the business operation that produced the entry.
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from beartype import beartype

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import DomainError, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import AuditAction, AuditDetails, AuditLogEntry, AuditLogFilters
from ..models.base import Page
from ..models.principal import Principal
from ..repositories import Condition, Op, OrderBy, Repository, eq
from .authorization import Action, AuthorizationGuard
from .common import coerce, end_of_day, page_window, start_of_day

logger = get_logger(__name__)


class AuditRecorder:
    """Records and serves audit log entries."""

    def __init__(
        self,
        repository: Repository[AuditLogEntry],
        clock: Clock,
        guard: AuthorizationGuard,
        settings: Settings,
    ) -> None:
        """Initialize recorder with its collaborators."""
        if repository is None:
            raise ValueError("Audit repository required")

        self._repository = repository
        self._clock = clock
        self._guard = guard
        self._settings = settings

    async def record(
        self,
        details: AuditDetails,
        actor_id: UUID,
        ip: str | None = None,
    ) -> None:
        """Append one entry; never raises."""
        try:
            entry = AuditLogEntry(
                id=uuid4(),
                action=AuditAction(details.action),
                actor_id=actor_id,
                details=details,
                ip=ip or self._settings.audit_default_ip,
                timestamp=self._clock.now(),
            )
            await self._repository.insert(entry)
            logger.debug("Audit %s by %s", entry.action.value, actor_id)
        except Exception:
            logger.exception("Failed to record audit entry '%s'", details.action)

    @beartype
    async def list(
        self,
        principal: Principal,
        filters: AuditLogFilters | Mapping[str, Any] | None = None,
    ) -> Result[Page[AuditLogEntry], DomainError]:
        """Admin view of the trail, newest first."""
        allowed = self._guard.require_role(principal, Action.AUDIT_READ)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(AuditLogFilters, filters or {})
        if isinstance(parsed, Err):
            return parsed
        criteria = parsed.value

        conditions: list[Condition] = []
        if criteria.action:
            conditions.append(Condition("action", Op.ICONTAINS, criteria.action))
        if criteria.actor_id:
            conditions.append(eq("actor_id", criteria.actor_id))
        if criteria.date_from:
            conditions.append(
                Condition("timestamp", Op.GTE, start_of_day(criteria.date_from))
            )
        if criteria.date_to:
            conditions.append(Condition("timestamp", Op.LT, end_of_day(criteria.date_to)))

        page, limit, offset = page_window(self._settings, criteria.page, criteria.limit)
        order = (OrderBy("timestamp", descending=True),)
        total = await self._repository.count(conditions)
        items = await self._repository.find(
            conditions, order_by=order, offset=offset, limit=limit
        )
        return Ok(Page[AuditLogEntry].build(items, page=page, limit=limit, total=total))

    @beartype
    async def get(
        self, principal: Principal, entry_id: UUID
    ) -> Result[AuditLogEntry, DomainError]:
        """Single entry by id."""
        allowed = self._guard.require_role(principal, Action.AUDIT_READ)
        if isinstance(allowed, Err):
            return allowed

        entry = await self._repository.find_by_id(entry_id)
        if entry is None:
            return not_found("Audit log entry")
        return Ok(entry)
