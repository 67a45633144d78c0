# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from decimal import Decimal

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,  # Immutable settings
        validate_default=True,
        extra="forbid",
    )

    # Storage
    repository_backend: str = Field(
        default="memory",
        pattern="^(memory|postgres)$",
        description="Repository backend used by the service container",
    )
    database_url: str = Field(
        default="postgresql://localhost:5432/insurance",
        description="PostgreSQL connection URL",
        min_length=1,
    )
    database_pool_min: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Minimum database pool size",
    )
    database_pool_max: int = Field(
        default=20,
        ge=5,
        le=100,
        description="Maximum database pool size",
    )
    database_command_timeout: float = Field(
        default=30.0,
        ge=5.0,
        le=300.0,
        description="Query execution timeout in seconds",
    )

    # API Configuration
    app_name: str = Field(
        default="Insurance Core",
        description="Application name",
        min_length=1,
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - Binding to all interfaces is needed for containerized deployment
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    api_cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200"],
        description="Allowed CORS origins",
    )

    # Security
    jwt_secret: str = Field(
        default="test-jwt-secret-for-testing-only-never-use-in-production-32-chars",
        min_length=32,
        description="JWT signing secret",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT algorithm",
    )
    jwt_expiration_minutes: int = Field(
        default=60,
        ge=5,
        le=1440,  # Max 24 hours
        description="JWT token expiration in minutes",
    )

    # Pagination
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Default page size for list operations",
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound for requested page sizes",
    )

    # Payments
    payment_processing_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Artificial delay of the simulated payment processor",
    )
    payment_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Upper bound on a single payment processor call",
    )
    payment_success_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "CARD": Decimal("0.95"),
            "NETBANKING": Decimal("0.90"),
            "OFFLINE": Decimal("0.85"),
            "SIMULATED": Decimal("1.0"),
        },
        description="Success probability per payment method for the simulator",
    )

    # Audit
    audit_default_ip: str = Field(
        default="127.0.0.1",
        description="IP recorded on audit entries when the caller supplies none",
    )
    trust_forwarded_for: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For (behind a proxy)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        if "database_pool_min" in info.data:
            min_size = info.data["database_pool_min"]
            if v < min_size:
                raise ValueError(
                    f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
                )
        return v

    @field_validator("max_page_size")
    @classmethod
    def validate_page_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure the page size cap is not below the default page size."""
        default = info.data.get("default_page_size")
        if default is not None and v < default:
            raise ValueError(
                f"max_page_size ({v}) must be >= default_page_size ({default})"
            )
        return v

    @field_validator("payment_success_rates")
    @classmethod
    def validate_success_rates(
        cls: type["Settings"], v: dict[str, Decimal]
    ) -> dict[str, Decimal]:
        """Success rates are probabilities."""
        for method, rate in v.items():
            if rate < 0 or rate > 1:
                raise ValueError(f"Success rate for {method} must be within [0, 1]")
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls: type["Settings"], v: str, info: ValidationInfo) -> str:
        """Ensure test JWT secrets are not used in production."""
        if "api_env" in info.data and info.data["api_env"] == "production":
            if v.startswith("test-"):
                raise ValueError(
                    "Test JWT secret cannot be used in production. "
                    "Set JWT_SECRET environment variable."
                )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.api_env == "development"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

