# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Admin management of users and their roles."""

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from beartype import beartype

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import DomainError, ErrorCode, fail, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import UserCreatedDetails, UserDeletedDetails, UserUpdatedDetails
from ..models.base import Page
from ..models.principal import Principal, Role
from ..models.user import User, UserCreate, UserUpdate
from ..repositories import AnyOf, Condition, DuplicateKeyError, Op, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import Action, AuthorizationGuard
from .common import coerce, page_window

logger = get_logger(__name__)


class UserDirectory:
    """Admin CRUD over users."""

    def __init__(
        self,
        users: Repository[User],
        audit: AuditRecorder,
        guard: AuthorizationGuard,
        clock: Clock,
        settings: Settings,
    ) -> None:
        """Initialize directory with dependency validation."""
        if users is None:
            raise ValueError("User repository required")

        self._users = users
        self._audit = audit
        self._guard = guard
        self._clock = clock
        self._settings = settings

    @beartype
    async def create(
        self,
        principal: Principal,
        data: UserCreate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[User, DomainError]:
        """Create a user with a unique e-mail."""
        allowed = self._guard.require_role(principal, Action.USER_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(UserCreate, data)
        if isinstance(parsed, Err):
            return parsed

        user = User(id=uuid4(), created_at=self._clock.now(), **parsed.value.model_dump())
        try:
            user = await self._users.insert(user)
        except DuplicateKeyError:
            return fail(ErrorCode.DUPLICATE_EMAIL, "User with this email already exists")

        logger.info("Created %s user %s", user.role.value, user.id)
        await self._audit.record(
            UserCreatedDetails(user_id=user.id, email=user.email, role=user.role),
            principal.id,
            ip,
        )
        return Ok(user)

    @beartype
    async def update(
        self,
        principal: Principal,
        user_id: UUID,
        patch: UserUpdate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[User, DomainError]:
        """Partial update of name, e-mail or role."""
        allowed = self._guard.require_role(principal, Action.USER_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(UserUpdate, patch)
        if isinstance(parsed, Err):
            return parsed

        if await self._users.find_by_id(user_id) is None:
            return not_found("User")

        changes = parsed.value.model_dump(exclude_none=True)
        try:
            updated = await self._users.update(user_id, changes)
        except DuplicateKeyError:
            return fail(ErrorCode.DUPLICATE_EMAIL, "User with this email already exists")
        if updated is None:
            return not_found("User")

        logger.info("Updated user %s: %s", user_id, sorted(changes))
        await self._audit.record(
            UserUpdatedDetails(user_id=user_id, changed_fields=sorted(changes)),
            principal.id,
            ip,
        )
        return Ok(updated)

    @beartype
    async def delete(
        self,
        principal: Principal,
        user_id: UUID,
        ip: str | None = None,
    ) -> Result[None, DomainError]:
        """Remove a user."""
        allowed = self._guard.require_role(principal, Action.USER_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        if not await self._users.delete(user_id):
            return not_found("User")

        logger.info("Deleted user %s", user_id)
        await self._audit.record(UserDeletedDetails(user_id=user_id), principal.id, ip)
        return Ok(None)

    @beartype
    async def get(self, principal: Principal, user_id: UUID) -> Result[User, DomainError]:
        """User by id."""
        allowed = self._guard.require_role(principal, Action.USER_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        user = await self._users.find_by_id(user_id)
        if user is None:
            return not_found("User")
        return Ok(user)

    @beartype
    async def list(
        self,
        principal: Principal,
        role: Role | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Result[Page[User], DomainError]:
        """Newest-first page of users, optionally by role and name/e-mail."""
        allowed = self._guard.require_role(principal, Action.USER_MANAGE)
        if isinstance(allowed, Err):
            return allowed

        conditions = []
        if role is not None:
            conditions.append(eq("role", role))
        if search and search.strip():
            term = search.strip()
            conditions.append(
                AnyOf(
                    [
                        Condition("name", Op.ICONTAINS, term),
                        Condition("email", Op.ICONTAINS, term),
                    ]
                )
            )

        page, limit, offset = page_window(self._settings, page, limit)
        total = await self._users.count(conditions)
        items = await self._users.find(conditions, offset=offset, limit=limit)
        return Ok(Page[User].build(items, page=page, limit=limit, total=total))
