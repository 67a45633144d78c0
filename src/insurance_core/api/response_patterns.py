# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API response patterns following Result[T,E] + HTTP semantics."""

from typing import Any, Final, TypeVar, Union

from beartype import beartype
from fastapi import Response
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import DomainError, ErrorKind
from ..core.result_types import Result

T = TypeVar("T")

STATUS_BY_KIND: Final[dict[ErrorKind, int]] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UPSTREAM_FAILURE: 502,
}


@beartype
class ErrorResponse(BaseModel):
    """Standardized error response for business logic failures."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    success: bool = Field(default=False, description="Always false for error responses")
    error: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(default=None, description="Machine-readable error code")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context"
    )

    @classmethod
    def from_domain(cls, error: DomainError) -> "ErrorResponse":
        """Transport shape of a domain error."""
        return cls(
            error=error.message,
            error_code=error.code.value,
            details={"kind": error.kind.value},
        )


class APIResponseHandler:
    """Maps service ``Result`` values onto HTTP responses."""

    @staticmethod
    @beartype
    def map_error_to_status(error: DomainError) -> int:
        """HTTP status for an error kind."""
        return STATUS_BY_KIND[error.kind]

    @staticmethod
    @beartype
    def from_result(
        result: Result[T, DomainError],
        response: Response,
        success_status: int = 200,
    ) -> Union[T, ErrorResponse]:
        """Convert Result[T,E] to HTTP response with proper status codes.

        Args:
            result: Service layer Result
            response: FastAPI Response object to set status code
            success_status: HTTP status for successful operations (default 200)

        Returns:
            Either the unwrapped success value or ErrorResponse
        """
        if result.is_err():
            error = result.unwrap_err()
            response.status_code = APIResponseHandler.map_error_to_status(error)
            return ErrorResponse.from_domain(error)

        response.status_code = success_status
        return result.unwrap()


@beartype
def handle_result(
    result: Result[T, DomainError],
    response: Response,
    success_status: int = 200,
) -> Union[T, ErrorResponse]:
    """Convenience function for standard result handling."""
    return APIResponseHandler.from_result(result, response, success_status)


class MessageResponse(BaseModel):
    """Acknowledgement body for operations without a resource to return."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool = Field(default=True)
    message: str = Field(..., min_length=1)
