# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies for authentication and service access.

The service container and the token verifier are created once by
``create_app`` and stored on ``app.state``.
"""

from beartype import beartype
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.security import Security as TokenVerifier
from ..models.principal import Principal
from ..services.container import ServiceContainer

# Security scheme
security = HTTPBearer(auto_error=False)


@beartype
def get_services(request: Request) -> ServiceContainer:
    """Service container of the running application."""
    services: ServiceContainer = request.app.state.services
    return services


@beartype
def get_token_verifier(request: Request) -> TokenVerifier:
    """JWT verifier of the running application."""
    verifier: TokenVerifier = request.app.state.security
    return verifier


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Principal:
    """Resolve the caller from a bearer token.

    Raises:
        HTTPException: 401 when the token is missing, invalid or expired
    """
    if credentials is None:
        # We need to keep raising HTTPException here as FastAPI expects it
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = verifier.decode_principal(credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


@beartype
def get_client_ip(request: Request) -> str | None:
    """Address recorded on audit entries.

    The first ``X-Forwarded-For`` hop is used only when the deployment sits
    behind a proxy that sets it (``trust_forwarded_for``).
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and get_services(request).settings.trust_forwarded_for:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None
