# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Policy product catalog service."""

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from beartype import beartype

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import DomainError, ErrorCode, fail, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import (
    PolicyCreatedDetails,
    PolicyDeletedDetails,
    PolicyUpdatedDetails,
)
from ..models.base import Page
from ..models.policy import (
    PolicyProduct,
    PolicyProductCreate,
    PolicyProductUpdate,
    UserPolicy,
    UserPolicyStatus,
)
from ..models.principal import Principal
from ..repositories import AnyOf, Condition, DuplicateKeyError, Op, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import Action, AuthorizationGuard
from .common import coerce, page_window

logger = get_logger(__name__)


class PolicyCatalog:
    """Admin-managed catalog of policy product templates."""

    def __init__(
        self,
        products: Repository[PolicyProduct],
        user_policies: Repository[UserPolicy],
        audit: AuditRecorder,
        guard: AuthorizationGuard,
        clock: Clock,
        settings: Settings,
    ) -> None:
        """Initialize catalog service with dependency validation."""
        if products is None or user_policies is None:
            raise ValueError("Product and user policy repositories required")

        self._products = products
        self._user_policies = user_policies
        self._audit = audit
        self._guard = guard
        self._clock = clock
        self._settings = settings

    @beartype
    async def create(
        self,
        principal: Principal,
        data: PolicyProductCreate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[PolicyProduct, DomainError]:
        """Create a catalog product with a unique code."""
        allowed = self._guard.require_role(principal, Action.CATALOG_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(PolicyProductCreate, data)
        if isinstance(parsed, Err):
            return parsed

        product = PolicyProduct(
            id=uuid4(),
            created_at=self._clock.now(),
            **parsed.value.model_dump(),
        )
        try:
            product = await self._products.insert(product)
        except DuplicateKeyError:
            return fail(
                ErrorCode.DUPLICATE_CODE,
                f"Policy code '{product.code}' already exists",
            )

        logger.info("Created policy product %s (%s)", product.id, product.code)
        await self._audit.record(
            PolicyCreatedDetails(
                policy_id=product.id,
                code=product.code,
                title=product.title,
                premium=product.premium,
            ),
            principal.id,
            ip,
        )
        return Ok(product)

    @beartype
    async def update(
        self,
        principal: Principal,
        product_id: UUID,
        patch: PolicyProductUpdate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[PolicyProduct, DomainError]:
        """Apply a partial update; a changed code must stay unique."""
        allowed = self._guard.require_role(principal, Action.CATALOG_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(PolicyProductUpdate, patch)
        if isinstance(parsed, Err):
            return parsed

        existing = await self._products.find_by_id(product_id)
        if existing is None:
            return not_found("Policy")

        changes = parsed.value.model_dump(exclude_none=True)
        try:
            updated = await self._products.update(product_id, changes)
        except DuplicateKeyError:
            return fail(
                ErrorCode.DUPLICATE_CODE,
                f"Policy code '{changes.get('code')}' already exists",
            )
        if updated is None:
            return not_found("Policy")

        logger.info("Updated policy product %s: %s", product_id, sorted(changes))
        await self._audit.record(
            PolicyUpdatedDetails(policy_id=product_id, changed_fields=sorted(changes)),
            principal.id,
            ip,
        )
        return Ok(updated)

    @beartype
    async def delete(
        self,
        principal: Principal,
        product_id: UUID,
        ip: str | None = None,
    ) -> Result[None, DomainError]:
        """Delete a product no active user policy references."""
        allowed = self._guard.require_role(principal, Action.CATALOG_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        existing = await self._products.find_by_id(product_id)
        if existing is None:
            return not_found("Policy")

        # Lapsed bindings still stored as ACTIVE do not block deletion.
        # A purchase landing between this count and the delete is not prevented
        bindings = await self._user_policies.count(
            [
                eq("policy_product_id", product_id),
                eq("status", UserPolicyStatus.ACTIVE),
                Condition("end_date", Op.GTE, self._clock.today()),
            ]
        )
        if bindings:
            return fail(
                ErrorCode.HAS_ACTIVE_BINDINGS,
                f"Policy is referenced by {bindings} active user policies",
            )

        if not await self._products.delete(product_id):
            return not_found("Policy")

        logger.info("Deleted policy product %s (%s)", product_id, existing.code)
        await self._audit.record(
            PolicyDeletedDetails(policy_id=product_id, code=existing.code),
            principal.id,
            ip,
        )
        return Ok(None)

    @beartype
    async def get(self, product_id: UUID) -> Result[PolicyProduct, DomainError]:
        """Catalog entry by id."""
        product = await self._products.find_by_id(product_id)
        if product is None:
            return not_found("Policy")
        return Ok(product)

    @beartype
    async def list(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Result[Page[PolicyProduct], DomainError]:
        """Newest-first catalog page with optional free-text search."""
        conditions = []
        if search and search.strip():
            term = search.strip()
            conditions.append(
                AnyOf(
                    [
                        Condition("code", Op.ICONTAINS, term),
                        Condition("title", Op.ICONTAINS, term),
                        Condition("description", Op.ICONTAINS, term),
                    ]
                )
            )

        page, limit, offset = page_window(self._settings, page, limit)
        total = await self._products.count(conditions)
        items = await self._products.find(conditions, offset=offset, limit=limit)
        return Ok(Page[PolicyProduct].build(items, page=page, limit=limit, total=total))
