# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Closed error taxonomy returned by the service layer.

Services never raise for expected business outcomes. They return
``Err(DomainError)`` where the error carries a stable ``kind`` (used by the
transport layer for status mapping), a specific ``code`` and a
human-readable ``message``.
"""

from enum import Enum
from typing import Final

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .result_types import Err


class ErrorKind(str, Enum):
    """Error categories the transport layer maps to status codes."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    UPSTREAM_FAILURE = "upstream_failure"


class ErrorCode(str, Enum):
    """Specific, stable error codes."""

    NOT_FOUND = "NOT_FOUND"
    POLICY_NOT_FOUND_OR_INACTIVE = "POLICY_NOT_FOUND_OR_INACTIVE"

    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"

    DUPLICATE_CODE = "DUPLICATE_CODE"
    DUPLICATE_ACTIVE_POLICY = "DUPLICATE_ACTIVE_POLICY"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    CANNOT_CANCEL_EXPIRED = "CANNOT_CANCEL_EXPIRED"
    CANNOT_ASSIGN_PROCESSED = "CANNOT_ASSIGN_PROCESSED"
    HAS_ACTIVE_BINDINGS = "HAS_ACTIVE_BINDINGS"

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_NOMINEE = "INVALID_NOMINEE"

    PAYMENT_FAILED = "PAYMENT_FAILED"


_KIND_BY_CODE: Final[dict[ErrorCode, ErrorKind]] = {
    ErrorCode.NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.POLICY_NOT_FOUND_OR_INACTIVE: ErrorKind.NOT_FOUND,
    ErrorCode.FORBIDDEN: ErrorKind.FORBIDDEN,
    ErrorCode.UNAUTHORIZED: ErrorKind.FORBIDDEN,
    ErrorCode.DUPLICATE_CODE: ErrorKind.CONFLICT,
    ErrorCode.DUPLICATE_ACTIVE_POLICY: ErrorKind.CONFLICT,
    ErrorCode.DUPLICATE_EMAIL: ErrorKind.CONFLICT,
    ErrorCode.ALREADY_PROCESSED: ErrorKind.CONFLICT,
    ErrorCode.ALREADY_CANCELLED: ErrorKind.CONFLICT,
    ErrorCode.CANNOT_CANCEL_EXPIRED: ErrorKind.CONFLICT,
    ErrorCode.CANNOT_ASSIGN_PROCESSED: ErrorKind.CONFLICT,
    ErrorCode.HAS_ACTIVE_BINDINGS: ErrorKind.CONFLICT,
    ErrorCode.INVALID_INPUT: ErrorKind.INVALID_INPUT,
    ErrorCode.INVALID_STATUS: ErrorKind.INVALID_INPUT,
    ErrorCode.INVALID_NOMINEE: ErrorKind.INVALID_INPUT,
    ErrorCode.PAYMENT_FAILED: ErrorKind.UPSTREAM_FAILURE,
}


class DomainError(BaseModel):
    """Immutable error value carried inside ``Err``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    kind: ErrorKind = Field(..., description="Error category")
    code: ErrorCode = Field(..., description="Stable machine-readable code")
    message: str = Field(..., min_length=1, description="Human-readable message")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@beartype
def fail(code: ErrorCode, message: str) -> Err[DomainError]:
    """Build an ``Err`` for the given code with its canonical kind."""
    return Err(DomainError(kind=_KIND_BY_CODE[code], code=code, message=message))


@beartype
def not_found(entity: str) -> Err[DomainError]:
    """Shortcut for a missing entity."""
    return fail(ErrorCode.NOT_FOUND, f"{entity} not found")


@beartype
def invalid_input(message: str) -> Err[DomainError]:
    """Shortcut for caller errors."""
    return fail(ErrorCode.INVALID_INPUT, message)


@beartype
def from_validation_error(exc: ValidationError) -> Err[DomainError]:
    """Convert a pydantic validation failure into an INVALID_INPUT error."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "input"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return invalid_input("; ".join(problems) or "Invalid input")
