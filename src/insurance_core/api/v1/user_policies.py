# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Purchased (user) policy endpoints."""

from typing import Any
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...models.policy import UserPolicy
from ...models.principal import Principal
from ...services.container import ServiceContainer
from ..dependencies import get_client_ip, get_current_principal, get_services
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.post("/purchase/{policy_product_id}", status_code=status.HTTP_201_CREATED)
@beartype
async def purchase_policy(
    policy_product_id: UUID,
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> UserPolicy | ErrorResponse:
    """Bind a catalog product to the caller."""
    result = await services.policies.purchase(principal, policy_product_id, payload, ip)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("")
@beartype
async def list_user_policies(
    response: Response,
    user_id: UUID | None = Query(None, description="Admins may list any user"),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> list[UserPolicy] | ErrorResponse:
    """Policies of the caller, a given user, or (admins only) everyone."""
    result = await services.policies.list_for_user(principal, user_id)
    return handle_result(result, response)


@router.get("/{user_policy_id}")
@beartype
async def get_user_policy(
    user_policy_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> UserPolicy | ErrorResponse:
    """One purchased policy."""
    result = await services.policies.get(principal, user_policy_id)
    return handle_result(result, response)


@router.post("/{user_policy_id}/cancel")
@beartype
async def cancel_user_policy(
    user_policy_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> UserPolicy | ErrorResponse:
    """Cancel an active policy owned by the caller."""
    result = await services.policies.cancel(principal, user_policy_id, ip)
    return handle_result(result, response)


@router.put("/{user_policy_id}/agent")
@beartype
async def assign_policy_agent(
    user_policy_id: UUID,
    response: Response,
    agent_id: UUID = Body(..., embed=True),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> UserPolicy | ErrorResponse:
    """Attach a servicing agent (admin)."""
    result = await services.policies.assign_agent(principal, user_policy_id, agent_id, ip)
    return handle_result(result, response)
