# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""PostgreSQL repository backend on top of the asyncpg ``Database`` wrapper.

Column names mirror model field names; nested models are stored as JSONB.
Uniqueness is enforced by the schema (see the initial Alembic migration)
and surfaced as ``DuplicateKeyError``.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Final, Generic
from uuid import UUID

import asyncpg
from beartype import beartype
from pydantic import BaseModel

from ..core.database import Database
from ..core.logging_utils import get_logger
from .base import (
    NEWEST_FIRST,
    AnyOf,
    Condition,
    DuplicateKeyError,
    Filter,
    M,
    Op,
    OrderBy,
    plain,
    text_of,
)

logger = get_logger(__name__)

_SQL_OPERATORS: Final[dict[Op, str]] = {
    Op.EQ: "=",
    Op.NE: "<>",
    Op.GT: ">",
    Op.GTE: ">=",
    Op.LT: "<",
    Op.LTE: "<=",
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresRepository(Generic[M]):
    """``Repository`` implementation issuing parameterized SQL."""

    def __init__(
        self,
        db: Database,
        model: type[M],
        *,
        table: str,
        json_columns: Sequence[str] = (),
        default_order: Sequence[OrderBy] = NEWEST_FIRST,
    ) -> None:
        """Initialize repository for one table."""
        if not db or not hasattr(db, "fetch"):
            raise ValueError("Database connection required")

        self._db = db
        self._model = model
        self._table = table
        self._json_columns = frozenset(json_columns)
        self._columns = tuple(model.model_fields)
        self._default_order = tuple(default_order)

    @property
    def name(self) -> str:
        """Table name."""
        return self._table

    def _column(self, name: str) -> str:
        if name not in self._columns:
            raise ValueError(f"Unknown column {name!r} for table {self._table}")
        return f'"{name}"'

    def _to_db(self, name: str, value: Any) -> Any:
        if name in self._json_columns and isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        return plain(value)

    def _row_to_model(self, row: asyncpg.Record) -> M:
        return self._model.model_validate(dict(row))

    def _render(self, condition: Filter, params: list[Any]) -> str:
        if isinstance(condition, AnyOf):
            inner = " OR ".join(self._render(c, params) for c in condition.conditions)
            return f"({inner})"

        column = self._column(condition.column)
        if condition.op == Op.IS_NULL:
            return f"{column} IS NULL" if condition.value else f"{column} IS NOT NULL"
        if condition.op == Op.ICONTAINS:
            params.append(f"%{_escape_like(text_of(condition.value))}%")
            return f"{column}::text ILIKE ${len(params)}"
        if condition.op == Op.IN:
            params.append([plain(v) for v in condition.value])
            return f"{column} = ANY(${len(params)})"

        params.append(plain(condition.value))
        return f"{column} {_SQL_OPERATORS[condition.op]} ${len(params)}"

    def _where(self, filters: Sequence[Filter], params: list[Any]) -> str:
        if not filters:
            return ""
        return " WHERE " + " AND ".join(self._render(f, params) for f in filters)

    def _order(self, order_by: Sequence[OrderBy]) -> str:
        if not order_by:
            return ""
        keys = ", ".join(
            f"{self._column(o.column)} {'DESC' if o.descending else 'ASC'}"
            for o in order_by
        )
        return f" ORDER BY {keys}"

    @beartype
    async def find_by_id(self, entity_id: UUID) -> M | None:
        """Return the entity or ``None``."""
        row = await self._db.fetchrow(
            f"SELECT * FROM {self._table} WHERE id = $1", entity_id  # nosec B608
        )
        return self._row_to_model(row) if row else None

    @beartype
    async def find(
        self,
        filters: Sequence[Filter] = (),
        *,
        order_by: Sequence[OrderBy] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[M]:
        """Return entities matching every filter."""
        params: list[Any] = []
        query_parts = [f"SELECT * FROM {self._table}"]  # nosec B608
        query_parts.append(self._where(filters, params))
        query_parts.append(self._order(order_by or self._default_order))
        if limit is not None:
            params.append(limit)
            query_parts.append(f" LIMIT ${len(params)}")
        if offset:
            params.append(offset)
            query_parts.append(f" OFFSET ${len(params)}")

        rows = await self._db.fetch("".join(query_parts), *params)
        return [self._row_to_model(row) for row in rows]

    @beartype
    async def count(self, filters: Sequence[Filter] = ()) -> int:
        """Count entities matching every filter."""
        params: list[Any] = []
        query = f"SELECT COUNT(*) FROM {self._table}" + self._where(filters, params)  # nosec B608
        return int(await self._db.fetchval(query, *params))

    @beartype
    async def sum(self, column: str, filters: Sequence[Filter] = ()) -> Decimal:
        """Sum a numeric column over the matching entities."""
        params: list[Any] = []
        query = (
            f"SELECT COALESCE(SUM({self._column(column)}), 0) FROM {self._table}"  # nosec B608
            + self._where(filters, params)
        )
        return Decimal(await self._db.fetchval(query, *params))

    @beartype
    async def insert(self, entity: M) -> M:
        """Persist a new entity."""
        data = entity.model_dump()
        columns = [c for c in self._columns if c in data]
        values = [self._to_db(c, getattr(entity, c)) for c in columns]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = f"""
            INSERT INTO {self._table} ({", ".join(self._column(c) for c in columns)})
            VALUES ({placeholders})
            RETURNING *
        """  # nosec B608

        try:
            row = await self._db.fetchrow(query, *values)
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateKeyError(exc.constraint_name or self._table) from exc
        if row is None:
            raise RuntimeError(f"Insert into {self._table} returned no row")
        return self._row_to_model(row)

    async def _update(
        self,
        entity_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> M | None:
        if not changes:
            raise ValueError("No changes supplied")

        params: list[Any] = [entity_id]
        assignments = []
        for name, value in changes.items():
            params.append(self._to_db(name, value))
            assignments.append(f"{self._column(name)} = ${len(params)}")

        conditions = ["id = $1"]
        for name, value in expected.items():
            params.append(self._to_db(name, value))
            conditions.append(f"{self._column(name)} = ${len(params)}")

        query = f"""
            UPDATE {self._table}
            SET {", ".join(assignments)}
            WHERE {" AND ".join(conditions)}
            RETURNING *
        """  # nosec B608

        try:
            row = await self._db.fetchrow(query, *params)
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateKeyError(exc.constraint_name or self._table) from exc
        return self._row_to_model(row) if row else None

    @beartype
    async def update(self, entity_id: UUID, changes: Mapping[str, Any]) -> M | None:
        """Apply ``changes`` unconditionally."""
        return await self._update(entity_id, {}, changes)

    @beartype
    async def update_where(
        self,
        entity_id: UUID,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> M | None:
        """Apply ``changes`` only while the stored values equal ``expected``."""
        return await self._update(entity_id, expected, changes)

    @beartype
    async def delete(self, entity_id: UUID) -> bool:
        """Remove an entity."""
        result = await self._db.execute(
            f"DELETE FROM {self._table} WHERE id = $1", entity_id  # nosec B608
        )
        deleted = result.endswith(" 1")
        if deleted:
            logger.debug("Deleted %s from %s", entity_id, self._table)
        return deleted
