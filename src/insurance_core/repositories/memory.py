# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""In-memory repository backend.

Every write happens under a per-repository ``asyncio.Lock`` so unique
constraints and compare-and-swap updates behave like their PostgreSQL
counterparts for concurrent coroutines on one event loop.
"""

import asyncio
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Generic
from uuid import UUID

from beartype import beartype

from .base import (
    NEWEST_FIRST,
    AnyOf,
    Condition,
    DuplicateKeyError,
    Filter,
    M,
    Op,
    OrderBy,
    UniqueConstraint,
    plain,
    text_of,
)


@beartype
def matches(entity: Any, condition: Filter) -> bool:
    """Evaluate one filter against an entity."""
    if isinstance(condition, AnyOf):
        return any(matches(entity, c) for c in condition.conditions)

    actual = plain(getattr(entity, condition.column))
    expected = condition.value

    if condition.op == Op.IS_NULL:
        return (actual is None) == bool(expected)
    if condition.op == Op.ICONTAINS:
        return text_of(expected).lower() in text_of(actual).lower()
    if condition.op == Op.IN:
        return actual in [plain(v) for v in expected]

    expected = plain(expected)
    if condition.op == Op.EQ:
        return actual == expected
    if condition.op == Op.NE:
        return actual != expected
    if actual is None:
        return False
    if condition.op == Op.GT:
        return actual > expected
    if condition.op == Op.GTE:
        return actual >= expected
    if condition.op == Op.LT:
        return actual < expected
    if condition.op == Op.LTE:
        return actual <= expected
    raise ValueError(f"Unsupported operator: {condition.op}")


def _has_values(entity: Any, expected: Mapping[str, Any]) -> bool:
    return all(
        plain(getattr(entity, name)) == plain(value) for name, value in expected.items()
    )


class InMemoryRepository(Generic[M]):
    """Dict-backed ``Repository`` with unique constraints and CAS updates."""

    def __init__(
        self,
        model: type[M],
        *,
        name: str,
        constraints: Sequence[UniqueConstraint] = (),
        default_order: Sequence[OrderBy] = NEWEST_FIRST,
    ) -> None:
        """Initialize an empty store for ``model`` records."""
        self._model = model
        self._name = name
        self._constraints = tuple(constraints)
        self._default_order = tuple(default_order)
        self._records: dict[UUID, M] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        """Logical table name."""
        return self._name

    def _check_constraints(self, candidate: M) -> None:
        candidate_id = getattr(candidate, "id")
        for constraint in self._constraints:
            if not _has_values(candidate, constraint.where):
                continue
            key = tuple(plain(getattr(candidate, c)) for c in constraint.columns)
            for other in self._records.values():
                if getattr(other, "id") == candidate_id:
                    continue
                if not _has_values(other, constraint.where):
                    continue
                if tuple(plain(getattr(other, c)) for c in constraint.columns) == key:
                    raise DuplicateKeyError(constraint.name)

    def _apply(self, current: M, changes: Mapping[str, Any]) -> M:
        data = current.model_dump()
        data.update(changes)
        return self._model.model_validate(data)

    def _select(self, filters: Sequence[Filter]) -> list[M]:
        return [r for r in self._records.values() if all(matches(r, f) for f in filters)]

    @beartype
    async def find_by_id(self, entity_id: UUID) -> M | None:
        """Return the entity or ``None``."""
        return self._records.get(entity_id)

    @beartype
    async def find(
        self,
        filters: Sequence[Filter] = (),
        *,
        order_by: Sequence[OrderBy] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[M]:
        """Return entities matching every filter, sorted and sliced."""
        rows = self._select(filters)
        # Stable sorts applied from the least significant key
        for key in reversed(tuple(order_by or self._default_order)):
            rows.sort(
                key=lambda r, c=key.column: (
                    getattr(r, c) is None,
                    plain(getattr(r, c)),
                ),
                reverse=key.descending,
            )
        end = None if limit is None else offset + limit
        return rows[offset:end]

    @beartype
    async def count(self, filters: Sequence[Filter] = ()) -> int:
        """Count entities matching every filter."""
        return len(self._select(filters))

    @beartype
    async def sum(self, column: str, filters: Sequence[Filter] = ()) -> Decimal:
        """Sum a numeric column over the matching entities."""
        return sum(
            (Decimal(getattr(r, column)) for r in self._select(filters)),
            Decimal("0"),
        )

    @beartype
    async def insert(self, entity: M) -> M:
        """Persist a new entity."""
        async with self._lock:
            entity_id = getattr(entity, "id")
            if entity_id in self._records:
                raise DuplicateKeyError(f"{self._name}_pkey")
            self._check_constraints(entity)
            self._records[entity_id] = entity
            return entity

    @beartype
    async def update(self, entity_id: UUID, changes: Mapping[str, Any]) -> M | None:
        """Apply ``changes`` unconditionally."""
        async with self._lock:
            current = self._records.get(entity_id)
            if current is None:
                return None
            updated = self._apply(current, changes)
            self._check_constraints(updated)
            self._records[entity_id] = updated
            return updated

    @beartype
    async def update_where(
        self,
        entity_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> M | None:
        """Apply ``changes`` only while the stored values equal ``expected``."""
        async with self._lock:
            current = self._records.get(entity_id)
            if current is None or not _has_values(current, expected):
                return None
            updated = self._apply(current, changes)
            self._check_constraints(updated)
            self._records[entity_id] = updated
            return updated

    @beartype
    async def delete(self, entity_id: UUID) -> bool:
        """Remove an entity."""
        async with self._lock:
            return self._records.pop(entity_id, None) is not None
