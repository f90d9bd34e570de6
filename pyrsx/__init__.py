"""
pyrsx - HTML-like markup for reactive Python UIs
================================================

Compiles markup embedded in Python modules into builder calls against a
reactive DOM-construction runtime.

    from pyrsx import component, Reactive

    @component
    def greeting(text: Reactive[str]):
        return rsx("<h1>Hello {text}!</h1>")

Build step:
    from pyrsx import build
    build(["src/"])     # src/**/*.rsx.py -> src/**/*.py

Configuration:
    PYRSX_COMPILER__RUNTIME=dom
    PYRSX_COMPILER__OWNERSHIP=exclusive
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

from typing import TYPE_CHECKING

# Core imports (always available)
from pyrsx.core.config import Config, get_config
from pyrsx.core.errors import ConfigurationError, RsxError, RsxSemanticError, RsxSyntaxError
from pyrsx.engine.components import Reactive, component

# Lazy imports, the compiler loads the ast machinery
if TYPE_CHECKING:
    from pyrsx.engine.rsx_parser import RsxParser, parse_markup
    from pyrsx.engine.rsx_compiler import RsxCompiler, CompilerOptions, compile_markup
    from pyrsx.engine.transform import build, transform_file, transform_source
    from pyrsx.utils.logger import Logger, configure_logging, get_logger


def __getattr__(name: str):
    """Lazy loading of the compiler pipeline."""
    _imports = {
        # Parser
        "RsxParser": "pyrsx.engine.rsx_parser",
        "parse_markup": "pyrsx.engine.rsx_parser",
        # Compiler
        "RsxCompiler": "pyrsx.engine.rsx_compiler",
        "CompilerOptions": "pyrsx.engine.rsx_compiler",
        "compile_markup": "pyrsx.engine.rsx_compiler",
        # Transform
        "build": "pyrsx.engine.transform",
        "transform_file": "pyrsx.engine.transform",
        "transform_source": "pyrsx.engine.transform",
        # Utils
        "Logger": "pyrsx.utils.logger",
        "configure_logging": "pyrsx.utils.logger",
        "get_logger": "pyrsx.utils.logger",
    }

    if name in _imports:
        import importlib
        module = importlib.import_module(_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'pyrsx' has no attribute '{name}'")


__all__ = [
    # Metadata
    "__version__",
    "__license__",
    # Core (always loaded)
    "Config",
    "get_config",
    "RsxError",
    "RsxSyntaxError",
    "RsxSemanticError",
    "ConfigurationError",
    "Reactive",
    "component",
    # Compiler (lazy)
    "RsxParser",
    "parse_markup",
    "RsxCompiler",
    "CompilerOptions",
    "compile_markup",
    "build",
    "transform_file",
    "transform_source",
    # Utils (lazy)
    "Logger",
    "configure_logging",
    "get_logger",
]
