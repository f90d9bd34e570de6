"""
pyrsx Core Module
=================

Pieces shared by every stage of the compiler:
- Config: Layered configuration
- Errors: Diagnostic exception hierarchy with source spans
"""

from pyrsx.core.config import Config, get_config, set_config, config
from pyrsx.core.errors import (
    Span,
    RsxError,
    RsxSyntaxError,
    RsxSemanticError,
    ConfigurationError,
)

__all__ = [
    "Config",
    "get_config",
    "set_config",
    "config",
    "Span",
    "RsxError",
    "RsxSyntaxError",
    "RsxSemanticError",
    "ConfigurationError",
]
