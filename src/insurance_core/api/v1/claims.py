# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim endpoints with workflow management.

Bodies and filters are passed to the service as raw mappings so validation
errors follow the service's error taxonomy.
"""

from typing import Any
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...models.base import Page
from ...models.claim import Claim
from ...models.principal import Principal
from ...services.container import ServiceContainer
from ..dependencies import get_client_ip, get_current_principal, get_services
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@beartype
async def create_claim(
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> Claim | ErrorResponse:
    """File a claim against one of the caller's active policies."""
    result = await services.claims.create(principal, payload, ip)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("")
@beartype
async def list_claims(
    response: Response,
    page: int = Query(1),
    limit: int | None = Query(None),
    claim_status: str | None = Query(None, alias="status"),
    date_from: str | None = Query(None, alias="dateFrom"),
    date_to: str | None = Query(None, alias="dateTo"),
    amount_min: str | None = Query(None, alias="amountMin"),
    amount_max: str | None = Query(None, alias="amountMax"),
    search: str | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Page[Claim] | ErrorResponse:
    """Role-scoped claim listing with filters and pagination."""
    filters = {
        "page": page,
        "limit": limit,
        "status": claim_status,
        "date_from": date_from,
        "date_to": date_to,
        "amount_min": amount_min,
        "amount_max": amount_max,
        "search": search,
    }
    result = await services.claims.list_with_filters(
        principal, {k: v for k, v in filters.items() if v not in (None, "")}
    )
    return handle_result(result, response)


@router.get("/{claim_id}")
@beartype
async def get_claim(
    claim_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Claim | ErrorResponse:
    """One claim, subject to role visibility."""
    result = await services.claims.get_by_id(principal, claim_id)
    return handle_result(result, response)


@router.put("/{claim_id}/status")
@beartype
async def update_claim_status(
    claim_id: UUID,
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> Claim | ErrorResponse:
    """Decide a claim (agent/admin)."""
    result = await services.claims.update_status(principal, claim_id, payload, ip)
    return handle_result(result, response)
