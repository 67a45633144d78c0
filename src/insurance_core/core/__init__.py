# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Core infrastructure components for the insurance core."""

from .clock import Clock, SystemClock
from .config import Settings, get_settings
from .database import Database
from .errors import DomainError, ErrorCode, ErrorKind
from .result_types import Err, Ok, Result
from .security import Security

__all__ = [
    "Clock",
    "Database",
    "DomainError",
    "Err",
    "ErrorCode",
    "ErrorKind",
    "Ok",
    "Result",
    "Security",
    "Settings",
    "SystemClock",
    "get_settings",
]
