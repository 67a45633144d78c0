# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Helpers shared by the service layer."""

from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.config import Settings
from ..core.errors import DomainError, from_validation_error
from ..core.result_types import Ok, Result

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce(
    model: type[ModelT], data: ModelT | Mapping[str, Any]
) -> Result[ModelT, DomainError]:
    """Accept a validated model or validate a raw mapping at the boundary."""
    if isinstance(data, model):
        return Ok(data)
    try:
        return Ok(model.model_validate(data))
    except ValidationError as e:
        return from_validation_error(e)


def page_window(
    settings: Settings, page: int, limit: int | None
) -> tuple[int, int, int]:
    """Resolve ``(page, limit, offset)`` with the configured default and cap."""
    size = settings.default_page_size if limit is None else limit
    size = max(1, min(size, settings.max_page_size))
    page = max(1, page)
    return page, size, (page - 1) * size


def start_of_day(day: date) -> datetime:
    """UTC midnight at the start of ``day``."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Exclusive upper bound for "through end of ``day``"."""
    if day == date.max:
        return datetime.max.replace(tzinfo=timezone.utc)
    return start_of_day(day + timedelta(days=1))
