# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Authenticated identity making a request."""

from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig


class Role(str, Enum):
    """Roles known to the authorization guard."""

    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"


@beartype
class Principal(BaseModelConfig):
    """Identity and role resolved by the auth collaborator for one request."""

    id: UUID = Field(..., description="User identifier")
    role: Role = Field(..., description="Role of the authenticated user")

