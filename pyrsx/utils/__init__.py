"""
pyrsx Utils Package
===================

Structured logging and string helpers.
"""

from __future__ import annotations

from pyrsx.utils.logger import (
    Logger,
    LogLevel,
    LogRecord,
    MemoryHandler,
    get_logger,
    configure_logging,
)
from pyrsx.utils.helpers import (
    pascal_case,
    escape_html,
    string_literal,
    is_identifier,
)

__all__ = [
    # Logging
    "Logger",
    "LogLevel",
    "LogRecord",
    "MemoryHandler",
    "get_logger",
    "configure_logging",
    # String helpers
    "pascal_case",
    "escape_html",
    "string_literal",
    "is_identifier",
]
