# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Policy product catalog endpoints."""

from typing import Any
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...models.base import Page
from ...models.policy import PolicyProduct
from ...models.principal import Principal
from ...services.container import ServiceContainer
from ..dependencies import get_client_ip, get_current_principal, get_services
from ..response_patterns import ErrorResponse, MessageResponse, handle_result

router = APIRouter()


@router.get("")
@beartype
async def list_policies(
    response: Response,
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Page[PolicyProduct] | ErrorResponse:
    """Search the catalog, newest first."""
    result = await services.catalog.list(search=search, page=page, limit=limit)
    return handle_result(result, response)


@router.get("/{policy_id}")
@beartype
async def get_policy(
    policy_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> PolicyProduct | ErrorResponse:
    """Get a catalog product."""
    return handle_result(await services.catalog.get(policy_id), response)


@router.post("", status_code=status.HTTP_201_CREATED)
@beartype
async def create_policy(
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> PolicyProduct | ErrorResponse:
    """Create a catalog product (admin)."""
    result = await services.catalog.create(principal, payload, ip)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.put("/{policy_id}")
@beartype
async def update_policy(
    policy_id: UUID,
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> PolicyProduct | ErrorResponse:
    """Partially update a catalog product (admin)."""
    result = await services.catalog.update(principal, policy_id, payload, ip)
    return handle_result(result, response)


@router.delete("/{policy_id}")
@beartype
async def delete_policy(
    policy_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> MessageResponse | ErrorResponse:
    """Delete a catalog product without active bindings (admin)."""
    result = await services.catalog.delete(principal, policy_id, ip)
    return handle_result(
        result.map(lambda _: MessageResponse(message="Policy deleted successfully")),
        response,
    )
