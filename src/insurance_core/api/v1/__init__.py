# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API v1 router aggregation.

This module combines all v1 API routers into a single router
that can be mounted on the main FastAPI application.
"""

from fastapi import APIRouter

from .admin import router as admin_router
from .claims import router as claims_router
from .health import router as health_router
from .payments import router as payments_router
from .policies import router as policies_router
from .user_policies import router as user_policies_router

# Create main v1 router
router = APIRouter(prefix="/api/v1")

# Include all sub-routers
router.include_router(health_router, tags=["health"])
router.include_router(policies_router, prefix="/policies", tags=["policies"])
router.include_router(
    user_policies_router, prefix="/user-policies", tags=["user-policies"]
)
router.include_router(claims_router, prefix="/claims", tags=["claims"])
router.include_router(payments_router, prefix="/payments", tags=["payments"])
router.include_router(admin_router, prefix="/admin", tags=["admin"])


__all__ = ["router"]
