# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Ok/Err values returned by every service operation.

Services never raise for business outcomes; callers branch with
``isinstance(result, Err)`` or ``result.is_err()``.
"""

from collections.abc import Callable
from typing import Any, Generic, NoReturn, TypeVar, Union

from attrs import frozen

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


@frozen
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Expected an error, got Ok({self.value!r})")

    def map(self, func: Callable[[T], U]) -> "Ok[U]":
        """Apply ``func`` to the carried value."""
        return Ok(func(self.value))


@frozen
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Expected a value, got Err({self.error!r})")

    def unwrap_err(self) -> E:
        return self.error

    def map(self, func: Callable[[Any], Any]) -> "Err[E]":
        """Errors pass through unchanged."""
        return self


Result = Union[Ok[T], Err[E]]
