# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""JWT principal resolution.

Credential issuance lives outside the core; this module only signs and
verifies the bearer tokens that carry ``sub`` (user id) and ``role``.
"""

import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from beartype import beartype
from pydantic import Field, ValidationError

from ..models.base import BaseModelConfig
from ..models.principal import Principal
from .config import Settings, get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)


@beartype
class TokenData(BaseModelConfig):
    """Token data for API responses."""

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., ge=0, description="Seconds until expiration")


class Security:
    """Signs and verifies principal tokens."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize security utilities."""
        settings = settings or get_settings()
        self._jwt_secret = settings.jwt_secret
        self._jwt_algorithm = settings.jwt_algorithm
        self._jwt_expiration_minutes = settings.jwt_expiration_minutes

    @beartype
    def create_access_token(
        self,
        principal: Principal,
        expires_delta: timedelta | None = None,
    ) -> TokenData:
        """Create JWT access token for a principal."""
        now = datetime.now(timezone.utc)

        if expires_delta is None:
            expires_delta = timedelta(minutes=self._jwt_expiration_minutes)

        payload = {
            "sub": str(principal.id),
            "role": principal.role.value,
            "exp": now + expires_delta,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
            "type": "access",
        }

        token = jwt.encode(payload, self._jwt_secret, algorithm=self._jwt_algorithm)

        return TokenData(
            access_token=token,
            expires_in=max(0, int(expires_delta.total_seconds())),
        )

    @beartype
    def decode_principal(self, token: str) -> Principal | None:
        """Decode and validate a token; ``None`` when it is not acceptable."""
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=[self._jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError:
            logger.info("Rejected invalid token")
            return None

        try:
            return Principal(id=UUID(str(payload["sub"])), role=payload.get("role"))
        except (ValueError, ValidationError):
            logger.info("Rejected token with malformed claims")
            return None
