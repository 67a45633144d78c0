# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Payment ledger endpoints."""

from typing import Any
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...models.payment import Payment, PaymentStats
from ...models.principal import Principal
from ...services.container import ServiceContainer
from ..dependencies import get_client_ip, get_current_principal, get_services
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@beartype
async def record_payment(
    response: Response,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
    ip: str | None = Depends(get_client_ip),
) -> Payment | ErrorResponse:
    """Charge through the processor and record the payment."""
    result = await services.payments.record(principal, payload, ip)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("")
@beartype
async def list_payments(
    response: Response,
    user_id: UUID | None = Query(None, description="Admins may list any user"),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> list[Payment] | ErrorResponse:
    """The caller's payments, newest first (every payment for admins)."""
    result = await services.payments.list_for_user(principal, user_id)
    return handle_result(result, response)


@router.get("/stats")
@beartype
async def payment_stats(
    response: Response,
    user_id: UUID | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> PaymentStats | ErrorResponse:
    """Count, total and average of the caller's payments."""
    result = await services.payments.stats_for_user(principal, user_id)
    return handle_result(result, response)


@router.get("/{payment_id}")
@beartype
async def get_payment(
    payment_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    services: ServiceContainer = Depends(get_services),
) -> Payment | ErrorResponse:
    """One payment."""
    result = await services.payments.get_by_id(principal, payment_id)
    return handle_result(result, response)
