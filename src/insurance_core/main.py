# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Insurance Core - Main Application Module."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from beartype import beartype
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.response_patterns import ErrorResponse
from .api.v1 import router as v1_router
from .core.config import Settings, get_settings
from .core.errors import ErrorCode, ErrorKind
from .core.logging_utils import configure_logging, get_logger
from .core.security import Security
from .services.container import ServiceContainer, build_services

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    services: ServiceContainer = app.state.services
    logger.info(
        "Starting %s in %s mode", services.settings.app_name, services.settings.api_env
    )

    if services.database is not None:
        await services.database.connect()

    yield

    logger.info("Shutting down %s", services.settings.app_name)
    if services.database is not None:
        await services.database.disconnect()


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed requests share the INVALID_INPUT error shape."""
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    body = ErrorResponse(
        error="; ".join(problems) or "Invalid request",
        error_code=ErrorCode.INVALID_INPUT.value,
        details={"kind": ErrorKind.INVALID_INPUT.value},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump()
    )


@beartype
def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        services: Prebuilt service container, e.g. with a fixed clock in tests

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or (services.settings if services else get_settings())
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Policy and claims lifecycle with role-based authorization",
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.services = services or build_services(settings)
    app.state.security = Security(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(v1_router)

    return app


@beartype
def main() -> None:
    """Run the main application entry point."""
    settings = get_settings()

    uvicorn.run(
        "insurance_core.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="info" if not settings.is_production else "error",
    )


if __name__ == "__main__":
    main()
