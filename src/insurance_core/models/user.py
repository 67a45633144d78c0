# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""User directory models.

Credentials are owned by the auth collaborator; the core only keeps the
identity attributes it needs for assignment and reporting.
"""

from beartype import beartype
from pydantic import EmailStr, Field, field_validator, model_validator

from .base import BaseModelConfig, IdentifiableModel
from .principal import Role


@beartype
class UserBase(BaseModelConfig):
    """Attributes shared by user create and read models."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: EmailStr = Field(..., description="Unique e-mail")
    role: Role = Field(default=Role.CUSTOMER, description="Authorization role")

    @field_validator("email")
    @classmethod
    @beartype
    def normalize_email(cls, v: str) -> str:
        """E-mail uniqueness is case-insensitive."""
        return v.lower()


@beartype
class UserCreate(UserBase):
    """Model for creating a user."""


@beartype
class UserUpdate(BaseModelConfig):
    """Partial user update."""

    name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = Field(None)
    role: Role | None = Field(None)

    @field_validator("email")
    @classmethod
    @beartype
    def normalize_email(cls, v: str | None) -> str | None:
        """E-mail uniqueness is case-insensitive."""
        return v.lower() if v is not None else v

    @model_validator(mode="after")
    @beartype
    def validate_at_least_one_field(self) -> "UserUpdate":
        """Ensure at least one field is provided for update."""
        if not any(getattr(self, field) is not None for field in type(self).model_fields):
            raise ValueError("At least one field must be provided for update")
        return self


@beartype
class User(UserBase, IdentifiableModel):
    """Stored user."""
