# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Admin endpoints: assignment, users, audit trail and dashboard."""

from datetime import date
from typing import Any
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...models.audit import AuditLogEntry
from ...models.base import Page
from ...models.claim import Claim
from ...models.principal import Principal, Role
from ...models.reporting import AgentWorkload, DashboardSummary
from ...models.user import User
from ...services.container import ServiceContainer
from ..dependencies import get_client_ip, get_current_principal, get_services
from ..response_patterns import ErrorResponse, MessageResponse, handle_result

router = APIRouter()


# Assignment


@router.get("/claims/unassigned")
@beartype
async def list_unassigned_claims(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> list[Claim] | ErrorResponse:
    """PENDING claims without an agent."""
    result = await services.assignments.list_unassigned(principal)
    return handle_result(result, response)


@router.post("/claims/{claim_id}/assign")
@beartype
async def assign_claim(
    claim_id: UUID,
    response: Response,
    agent_id: UUID = Body(..., embed=True),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> Claim | ErrorResponse:
    """Assign a PENDING claim to an agent."""
    result = await services.assignments.assign(principal, claim_id, agent_id, ip)
    return handle_result(result, response)


@router.get("/agents/workload")
@beartype
async def agent_workload(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> list[AgentWorkload] | ErrorResponse:
    """Per-agent claim counts."""
    result = await services.assignments.agent_workload(principal)
    return handle_result(result, response)


@router.get("/agents/{agent_id}/claims")
@beartype
async def list_agent_claims(
    agent_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> list[Claim] | ErrorResponse:
    """Claims assigned to an agent; agents may only list their own."""
    result = await services.assignments.list_for_agent(principal, agent_id)
    return handle_result(result, response)


# Users


@router.get("/users")
@beartype
async def list_users(
    response: Response,
    role: Role | None = Query(None),
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Page[User] | ErrorResponse:
    """Users, newest first."""
    result = await services.users.list(
        principal, role=role, search=search, page=page, limit=limit
    )
    return handle_result(result, response)


@router.post("/users", status_code=status.HTTP_201_CREATED)
@beartype
async def create_user(
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> User | ErrorResponse:
    """Create a user."""
    result = await services.users.create(principal, payload, ip)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("/users/{user_id}")
@beartype
async def get_user(
    user_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> User | ErrorResponse:
    """User by id."""
    return handle_result(await services.users.get(principal, user_id), response)


@router.put("/users/{user_id}")
@beartype
async def update_user(
    user_id: UUID,
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> User | ErrorResponse:
    """Partially update a user."""
    result = await services.users.update(principal, user_id, payload, ip)
    return handle_result(result, response)


@router.delete("/users/{user_id}")
@beartype
async def delete_user(
    user_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> MessageResponse | ErrorResponse:
    """Delete a user."""
    result = await services.users.delete(principal, user_id, ip)
    return handle_result(
        result.map(lambda _: MessageResponse(message="User deleted successfully")),
        response,
    )


# Audit trail


@router.get("/audit-logs")
@beartype
async def list_audit_logs(
    response: Response,
    action: str | None = Query(None, max_length=100),
    actor_id: UUID | None = Query(None, alias="userId"),
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Page[AuditLogEntry] | ErrorResponse:
    """Audit entries, newest first."""
    filters = {
        "action": action,
        "actor_id": actor_id,
        "date_from": date_from,
        "date_to": date_to,
        "page": page,
        "limit": limit,
    }
    result = await services.audit.list(
        principal, {k: v for k, v in filters.items() if v is not None}
    )
    return handle_result(result, response)


@router.get("/audit-logs/{entry_id}")
@beartype
async def get_audit_log(
    entry_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> AuditLogEntry | ErrorResponse:
    """One audit entry."""
    return handle_result(await services.audit.get(principal, entry_id), response)


# Dashboard and maintenance


@router.get("/summary")
@beartype
async def dashboard_summary(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> DashboardSummary | ErrorResponse:
    """Headline KPIs."""
    return handle_result(await services.dashboard.summary(principal), response)


@router.post("/user-policies/expire")
@beartype
async def expire_lapsed_policies(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> MessageResponse | ErrorResponse:
    """Persist expiry for lapsed policies (normally run by a scheduler)."""
    result = await services.policies.expire_lapsed(principal)
    return handle_result(
        result.map(lambda expired: MessageResponse(message=f"Expired {expired} policies")),
        response,
    )
