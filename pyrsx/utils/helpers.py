"""
pyrsx Helpers
=============

Small string utilities shared by the compiler and the component decorator.
"""

from __future__ import annotations

import keyword
import re


# =============================================================================
# Case Helpers
# =============================================================================

def pascal_case(text: str) -> str:
    """
    Convert text to PascalCase.

    Existing capitals are preserved, so an already PascalCase name maps
    to itself.

    Example:
        >>> pascal_case("greeting_card")
        'GreetingCard'
        >>> pascal_case("TodoList")
        'TodoList'
    """
    parts = re.split(r"[_\-\s]+", text)
    return "".join(p[:1].upper() + p[1:] for p in parts if p)


# =============================================================================
# Code Generation Helpers
# =============================================================================

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
}


def escape_html(text: str) -> str:
    """
    Escape text for use inside an HTML attribute value.

    Example:
        >>> escape_html('a < "b"')
        'a &lt; &quot;b&quot;'
    """
    return "".join(_HTML_ESCAPES.get(char, char) for char in text)


def string_literal(text: str) -> str:
    """
    Render text as a double-quoted Python string literal.

    Example:
        >>> string_literal('say "hi"')
        '"say \\\\"hi\\\\""'
    """
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def is_identifier(name: str) -> bool:
    """Check that name can be used as a Python keyword argument."""
    return name.isidentifier() and not keyword.iskeyword(name)
