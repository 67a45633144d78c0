# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Storage abstraction shared by the in-memory and PostgreSQL backends.

Services talk to a ``Repository[M]`` only. Filters are small immutable
values so the same query can be evaluated in Python or rendered to SQL.
The two race-sensitive invariants of the domain live here:

* ``UniqueConstraint``: enforced on insert/update, optionally partial
  (only rows matching ``where`` participate).
* ``update_where``: compare-and-swap on the current field values.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, TypeVar
from uuid import UUID

from attrs import field, frozen
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


class Op(str, Enum):
    """Comparison operators understood by every backend."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    IS_NULL = "is_null"
    ICONTAINS = "icontains"


@frozen
class Condition:
    """``column <op> value``; ``IS_NULL`` takes a bool value."""

    column: str = field()
    op: Op = field(default=Op.EQ)
    value: Any = field(default=None)


@frozen
class AnyOf:
    """Disjunction of conditions."""

    conditions: tuple[Condition, ...] = field(converter=tuple)


Filter = Condition | AnyOf


@frozen
class OrderBy:
    """Sort key for repository listings."""

    column: str = field(default="created_at")
    descending: bool = field(default=True)


NEWEST_FIRST: tuple[OrderBy, ...] = (OrderBy("created_at", descending=True),)


@frozen
class UniqueConstraint:
    """Uniqueness over ``columns`` among rows whose values match ``where``."""

    name: str = field()
    columns: tuple[str, ...] = field(converter=tuple)
    where: Mapping[str, Any] = field(factory=dict)


class DuplicateKeyError(Exception):
    """Raised by a repository when a write violates a unique constraint."""

    def __init__(self, constraint: str) -> None:
        super().__init__(f"Unique constraint violated: {constraint}")
        self.constraint = constraint


def eq(name: str, value: Any) -> Condition:
    """Shorthand for an equality condition."""
    return Condition(name, Op.EQ, value)


def plain(value: Any) -> Any:
    """Storage representation of a comparison value."""
    if isinstance(value, Enum):
        return value.value
    return value


def text_of(value: Any) -> str:
    """Text form used by case-insensitive matching."""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return format(value, "f")
    return "" if value is None else str(value)


class Repository(Protocol[M]):
    """Persistence port for one aggregate type."""

    async def find_by_id(self, entity_id: UUID) -> M | None:
        """Return the entity or ``None``."""
        ...

    async def find(
        self,
        filters: Sequence[Filter] = (),
        *,
        order_by: Sequence[OrderBy] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[M]:
        """Return entities matching every filter.

        ``order_by`` defaults to the repository's own order.
        """
        ...

    async def count(self, filters: Sequence[Filter] = ()) -> int:
        """Count entities matching every filter."""
        ...

    async def sum(self, column: str, filters: Sequence[Filter] = ()) -> Decimal:
        """Sum a numeric column over the matching entities (0 when none)."""
        ...

    async def insert(self, entity: M) -> M:
        """Persist a new entity; raises ``DuplicateKeyError``."""
        ...

    async def update(self, entity_id: UUID, changes: Mapping[str, Any]) -> M | None:
        """Apply ``changes`` unconditionally; ``None`` if missing."""
        ...

    async def update_where(
        self,
        entity_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> M | None:
        """Apply ``changes`` only if the stored values equal ``expected``.

        Returns the updated entity, or ``None`` when the entity is missing or
        the expectation no longer holds.
        """
        ...

    async def delete(self, entity_id: UUID) -> bool:
        """Remove an entity; ``False`` if it did not exist."""
        ...
