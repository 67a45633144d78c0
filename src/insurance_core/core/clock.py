# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Injectable time source."""

from datetime import date, datetime, timezone
from typing import Protocol, runtime_checkable

from beartype import beartype


@runtime_checkable
class Clock(Protocol):
    """Supplies "now" to the services."""

    def now(self) -> datetime:
        """Current timezone-aware UTC timestamp."""
        ...

    def today(self) -> date:
        """Current UTC calendar date."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    @beartype
    def now(self) -> datetime:
        """Current timezone-aware UTC timestamp."""
        return datetime.now(timezone.utc)

    @beartype
    def today(self) -> date:
        """Current UTC calendar date."""
        return self.now().date()
