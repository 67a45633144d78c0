# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Role and resource authorization.

Two layers are checked:

1. Capability: does the role allow the action at all? Denial yields
   ``UNAUTHORIZED`` and happens before any lookup.
2. Scope: customers act on resources they own, agents on claims assigned to
   them, admins on everything. Denial yields ``FORBIDDEN``.
"""

from enum import Enum
from typing import Final
from uuid import UUID

from beartype import beartype

from ..core.errors import DomainError, ErrorCode, fail
from ..core.result_types import Err, Ok, Result
from ..models.principal import Principal, Role


class Action(str, Enum):
    """Actions checked by the guard."""

    CATALOG_READ = "catalog:read"
    CATALOG_MANAGE = "catalog:manage"
    POLICY_PURCHASE = "policy:purchase"
    POLICY_READ = "policy:read"
    POLICY_CANCEL = "policy:cancel"
    POLICY_ASSIGN_AGENT = "policy:assign_agent"
    POLICY_EXPIRE = "policy:expire"
    CLAIM_CREATE = "claim:create"
    CLAIM_READ = "claim:read"
    CLAIM_DECIDE = "claim:decide"
    CLAIM_ASSIGN = "claim:assign"
    ASSIGNMENT_READ = "assignment:read"
    PAYMENT_CREATE = "payment:create"
    PAYMENT_READ = "payment:read"
    USER_MANAGE = "user:manage"
    AUDIT_READ = "audit:read"
    REPORT_READ = "report:read"


_CAPABILITIES: Final[dict[Role, frozenset[Action]]] = {
    Role.CUSTOMER: frozenset(
        {
            Action.CATALOG_READ,
            Action.POLICY_PURCHASE,
            Action.POLICY_READ,
            Action.POLICY_CANCEL,
            Action.CLAIM_CREATE,
            Action.CLAIM_READ,
            Action.PAYMENT_CREATE,
            Action.PAYMENT_READ,
        }
    ),
    Role.AGENT: frozenset(
        {
            Action.CATALOG_READ,
            Action.CLAIM_READ,
            Action.CLAIM_DECIDE,
            Action.ASSIGNMENT_READ,
        }
    ),
    Role.ADMIN: frozenset(Action)
    - {Action.CLAIM_CREATE, Action.PAYMENT_CREATE, Action.POLICY_CANCEL},
}

# Readable by any role with the capability, regardless of ownership
_PUBLIC: Final[frozenset[Action]] = frozenset({Action.CATALOG_READ})

# Roles that may be assigned claims and policies
AGENT_ROLES: Final[frozenset[Role]] = frozenset({Role.AGENT, Role.ADMIN})


class AuthorizationGuard:
    """Stateless ``(principal, action, resource)`` check."""

    @beartype
    def permits(self, principal: Principal, action: Action) -> bool:
        """Role-level capability check; needs no resource."""
        return action in _CAPABILITIES[principal.role]

    @beartype
    def allow(
        self,
        principal: Principal,
        action: Action,
        *,
        owner_id: UUID | None = None,
        assigned_agent_id: UUID | None = None,
    ) -> bool:
        """Full check against a concrete resource."""
        if not self.permits(principal, action):
            return False
        if principal.role == Role.ADMIN or action in _PUBLIC:
            return True
        if principal.role == Role.CUSTOMER:
            return owner_id is not None and owner_id == principal.id
        return assigned_agent_id is not None and assigned_agent_id == principal.id

    @beartype
    def require_role(
        self, principal: Principal, action: Action
    ) -> Result[None, DomainError]:
        """``UNAUTHORIZED`` unless the role may perform ``action``."""
        if not self.permits(principal, action):
            return fail(
                ErrorCode.UNAUTHORIZED,
                f"Role '{principal.role.value}' may not perform {action.value}",
            )
        return Ok(None)

    @beartype
    def require(
        self,
        principal: Principal,
        action: Action,
        *,
        owner_id: UUID | None = None,
        assigned_agent_id: UUID | None = None,
    ) -> Result[None, DomainError]:
        """``UNAUTHORIZED`` for the role, then ``FORBIDDEN`` for the resource."""
        role_check = self.require_role(principal, action)
        if isinstance(role_check, Err):
            return role_check
        if not self.allow(
            principal, action, owner_id=owner_id, assigned_agent_id=assigned_agent_id
        ):
            return fail(ErrorCode.FORBIDDEN, "Access denied to this resource")
        return Ok(None)

    @beartype
    def owner_scope(
        self, principal: Principal, action: Action, user_id: UUID | None = None
    ) -> Result[UUID | None, DomainError]:
        """Owner a per-user listing is restricted to.

        ``None`` means every owner, which only admins get by omitting
        ``user_id``. Everyone else defaults to their own records.
        """
        role_check = self.require_role(principal, action)
        if isinstance(role_check, Err):
            return role_check
        if user_id is None and principal.role == Role.ADMIN:
            return Ok(None)

        target = user_id or principal.id
        allowed = self.require(principal, action, owner_id=target)
        if isinstance(allowed, Err):
            return allowed
        return Ok(target)
