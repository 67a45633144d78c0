# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Health check endpoint for monitoring system status."""

import time
from datetime import datetime, timezone

from beartype import beartype
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.logging_utils import get_logger
from ...services.container import ServiceContainer
from ..dependencies import get_services

logger = get_logger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Overall system health response."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    status: str = Field(..., pattern=r"^(healthy|unhealthy)$")
    timestamp: datetime = Field(...)
    backend: str = Field(..., description="Repository backend in use")
    environment: str = Field(...)
    database_response_time_ms: float | None = Field(default=None, ge=0)
    message: str | None = Field(default=None)


@router.get("/health")
@beartype
async def health_check(
    response: Response,
    services: ServiceContainer = Depends(get_services),
) -> HealthResponse:
    """Report liveness and, for PostgreSQL, database reachability."""
    settings = services.settings
    now = datetime.now(timezone.utc)

    if services.database is None:
        return HealthResponse(
            status="healthy",
            timestamp=now,
            backend=settings.repository_backend,
            environment=settings.api_env,
        )

    start = time.perf_counter()
    try:
        await services.database.fetchval("SELECT 1")
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="unhealthy",
            timestamp=now,
            backend=settings.repository_backend,
            environment=settings.api_env,
            message=f"Database unavailable: {e}",
        )

    return HealthResponse(
        status="healthy",
        timestamp=now,
        backend=settings.repository_backend,
        environment=settings.api_env,
        database_response_time_ms=(time.perf_counter() - start) * 1000,
    )
