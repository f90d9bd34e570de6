"""
pyrsx Errors
============

Exception hierarchy for markup compilation.

Every error raised while compiling a markup invocation derives from
RsxError and carries the offending span, so it can be rendered as a
compilation diagnostic:

    try:
        compile_markup(source)
    except RsxError as e:
        print(e.format())

Taxonomy:
    RsxSyntaxError     malformed markup (missing '<', '=', value, ...)
    RsxSemanticError   well-formed but meaningless markup (tag mismatch)
    ConfigurationError metadata tables missing or malformed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Span:
    """Half-open character range [start, end) in a markup source."""
    start: int
    end: int

    @classmethod
    def point(cls, offset: int) -> "Span":
        return cls(offset, offset)

    def shift(self, offset: int) -> "Span":
        """Move the span by offset characters."""
        return Span(self.start + offset, self.end + offset)


def locate(source: str, offset: int) -> Tuple[int, int]:
    """Resolve a character offset to a 1-based (line, column) pair."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


class RsxError(Exception):
    """Base exception for markup compilation errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        span: Optional[Span] = None,
        source: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.span = span
        self.source = source
        self.filename = filename

    @property
    def line(self) -> Optional[int]:
        if self.span is None or self.source is None:
            return None
        return locate(self.source, self.span.start)[0]

    @property
    def column(self) -> Optional[int]:
        if self.span is None or self.source is None:
            return None
        return locate(self.source, self.span.start)[1]

    def attach(
        self,
        source: str,
        filename: Optional[str] = None,
        offset: int = 0,
    ) -> "RsxError":
        """
        Bind the error to the source it was raised against.

        Args:
            source: Text the span (shifted by offset) points into
            filename: Optional file name for the diagnostic header
            offset: Added to the span, for markup embedded in a larger file

        Returns:
            Self for chaining (usually re-raised)
        """
        if self.span is not None and offset:
            self.span = self.span.shift(offset)
        self.source = source
        if filename is not None:
            self.filename = filename
        return self

    def format(self) -> str:
        """
        Render the error as a compilation diagnostic.

        Example output:
            app.py:4:9: syntax error: missing '=' after prop 'class'
                <div class "x">
                     ^^^^^
        """
        location = self.filename or "<markup>"
        if self.line is not None:
            location = f"{location}:{self.line}:{self.column}"

        output = f"{location}: {self.kind}: {self.message}"
        if self.span is None or self.source is None:
            return output

        line_start = self.source.rfind("\n", 0, self.span.start) + 1
        line_end = self.source.find("\n", self.span.start)
        if line_end == -1:
            line_end = len(self.source)
        excerpt = self.source[line_start:line_end]

        width = max(1, min(self.span.end, line_end) - self.span.start)
        marker = " " * (self.span.start - line_start) + "^" * width
        return f"{output}\n    {excerpt}\n    {marker}"

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


class RsxSyntaxError(RsxError):
    """Raised when markup is not a valid token sequence."""

    kind = "syntax error"


class RsxSemanticError(RsxError):
    """Raised when markup is well-formed but cannot be compiled."""

    kind = "semantic error"


class ConfigurationError(RsxError):
    """Raised when the metadata tables are missing or malformed."""

    kind = "configuration error"
