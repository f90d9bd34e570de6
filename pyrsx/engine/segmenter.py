"""
pyrsx Text Segmenter
====================

Splits a run of markup text into alternating literal and interpolated
sub-nodes:

    segment_text("Clicked {count} times")
    # [Text("Clicked "), Expression("count"), Text(" times")]

Rules:
    - "{{" and "}}" outside an interpolation are escapes for "{" and "}"
    - "{" opens an interpolation; braces inside it nest, so dict and set
      literals can be interpolated: "{ {'a': 1}['a'] }"
    - braces inside Python string literals within an interpolation are
      not counted: "{d[\"}\"]}"
    - the interpolation closes on the "}" that returns the depth to zero
    - a lone "}" outside an interpolation is literal text
    - end of input inside an interpolation is an error
"""

from __future__ import annotations

import ast
from typing import List, Optional, Union

from pyrsx.core.errors import RsxSyntaxError, Span
from pyrsx.engine.nodes import Expression, Text


Segment = Union[Text, Expression]


class TextSegmenter:
    """
    Character-level segmenter for text runs.

    Offsets of produced spans are relative to the markup source, using
    the offset the run starts at.
    """

    def __init__(self, raw: str, offset: int = 0) -> None:
        self.raw = raw
        self.offset = offset
        self.segments: List[Segment] = []
        self._buffer: List[str] = []
        self._buffer_start = 0

    def segment(self) -> List[Segment]:
        """Segment the whole run."""
        raw = self.raw
        depth = 0
        pos = 0
        open_pos = 0

        while pos < len(raw):
            char = raw[pos]
            following = raw[pos + 1] if pos + 1 < len(raw) else ""

            if depth == 0:
                if char == "{" and following == "{":
                    self._push("{", pos)
                    pos += 2
                    continue
                if char == "}" and following == "}":
                    self._push("}", pos)
                    pos += 2
                    continue
                if char == "{":
                    self._flush_text(pos)
                    depth = 1
                    open_pos = pos
                    self._buffer_start = pos + 1
                else:
                    self._push(char, pos)
                pos += 1
                continue

            if char in "\"'":
                end = skip_string(raw, pos)
                if end is None:
                    # Unterminated string, reported as an unterminated expression
                    self._buffer.append(raw[pos:])
                    pos = len(raw)
                    break
                self._buffer.append(raw[pos:end])
                pos = end
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    self._flush_expression(open_pos, pos)
                    pos += 1
                    continue
            self._buffer.append(char)
            pos += 1

        if depth != 0:
            raise RsxSyntaxError(
                "unterminated expression: expected '}', found end of input",
                Span(self.offset + open_pos, self.offset + len(raw)),
            )

        self._flush_text(len(raw))
        return self.segments

    def _push(self, char: str, pos: int) -> None:
        """Append literal text to the buffer."""
        if not self._buffer:
            self._buffer_start = pos
        self._buffer.append(char)

    def _flush_text(self, pos: int) -> None:
        if self._buffer:
            self.segments.append(Text(
                "".join(self._buffer),
                Span(self.offset + self._buffer_start, self.offset + pos),
            ))
        self._buffer = []

    def _flush_expression(self, open_pos: int, close_pos: int) -> None:
        source = "".join(self._buffer).strip()
        self._buffer = []
        if not source:
            return

        span = Span(self.offset + open_pos, self.offset + close_pos + 1)
        try:
            ast.parse(source, mode="eval")
        except SyntaxError as e:
            raise RsxSyntaxError(
                f"invalid embedded expression {{{source}}}: {e.msg}", span
            ) from e
        self.segments.append(Expression(source, span))


def segment_text(raw: str, offset: int = 0) -> List[Segment]:
    """
    Segment a text run into Text and Expression sub-nodes.

    Args:
        raw: Text as written in the markup
        offset: Position of the run in the markup source

    Returns:
        Sub-nodes in source order

    Raises:
        RsxSyntaxError: On an unterminated or invalid interpolation
    """
    return TextSegmenter(raw, offset).segment()


def skip_string(source: str, pos: int) -> Optional[int]:
    """Return the index just past the string literal whose quote is at pos."""
    quote = source[pos:pos + 3]
    if quote not in ('"""', "'''"):
        quote = source[pos]
    pos += len(quote)
    while pos < len(source):
        if source[pos] == "\\":
            pos += 2
            continue
        if source.startswith(quote, pos):
            return pos + len(quote)
        if len(quote) == 1 and source[pos] == "\n":
            return None
        pos += 1
    return None
