"""
pyrsx Markup Parser
===================

Recursive-descent parser turning RSX markup into an Element tree.

Grammar:
    Element := '<' Ident Prop* ( '/>' | '>' Node* '<' '/' Ident '>' )
    Prop    := Ident '=' Value
    Value   := StringLiteral | '{' PyExpr '}' | Atom
    Node    := '{' PyExpr '}' | Element | TextRun

Example:
    parser = RsxParser()
    root = parser.parse('<button onclick={handler}>Clicked {count} times</button>')
    print(root.to_dict())

Backtracking:
    Each alternative of a production runs on a fork of the cursor. A
    fork is just a position, so forking is cheap. When the alternative
    succeeds, the fork is committed back with advance_to(); when it
    fails, it returns None and the next alternative starts from the
    original position. Failures are recorded, and the one that got
    furthest into the source is raised if the root element can't be
    parsed at all.

    A closing tag that doesn't match its opening tag raises
    RsxSemanticError straight away. No alternative can recover from it.

Raw text:
    Children of raw-text tags (style, script) without a src prop are
    kept verbatim: braces are not interpolated, and a '<' that doesn't
    start an element or the closing tag is text.
"""

from __future__ import annotations

import ast
import re
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from pyrsx.core.errors import RsxError, RsxSemanticError, RsxSyntaxError, Span
from pyrsx.engine.nodes import Element, Expression, Node, Prop, Text
from pyrsx.engine.segmenter import segment_text, skip_string
from pyrsx.utils.logger import get_logger


T = TypeVar("T")

RAW_TEXT_TAGS = ("style", "script")

logger = get_logger("pyrsx.parser")


class Cursor:
    """
    Position in a markup source.

    Matches tag-level tokens on demand. Text content is read by the
    parser directly from the source so whitespace is preserved.
    """

    PATTERNS = {
        "whitespace": re.compile(r"\s+"),
        "ident": re.compile(r"[A-Za-z_][A-Za-z0-9_-]*"),
        "string_open": re.compile(r"[rRbBfFuU]{0,2}(\"\"\"|'''|\"|')"),
        "number": re.compile(
            r"[-+]?(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][-+]?\d+)?[jJ]?"
        ),
        "name": re.compile(r"[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*"),
    }

    __slots__ = ("source", "pos")

    def __init__(self, source: str, pos: int = 0) -> None:
        self.source = source
        self.pos = pos

    def fork(self) -> "Cursor":
        """Snapshot the current position."""
        return Cursor(self.source, self.pos)

    def advance_to(self, other: "Cursor") -> None:
        """Commit a fork's progress."""
        self.pos = other.pos

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.source)

    def peek(self, text: str) -> bool:
        """Check if text follows the current position."""
        return self.source.startswith(text, self.pos)

    def consume(self, text: str) -> bool:
        """Consume text if it follows the current position."""
        if self.peek(text):
            self.pos += len(text)
            return True
        return False

    def skip_whitespace(self) -> None:
        self.match("whitespace")

    def match(self, name: str) -> Optional[str]:
        """Consume pattern if it matches, return matched text."""
        match = self.PATTERNS[name].match(self.source, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group()

    def string_literal(self) -> Optional[str]:
        """Consume a Python string literal, prefix and quotes included."""
        opening = self.PATTERNS["string_open"].match(self.source, self.pos)
        if opening is None:
            return None
        end = skip_string(self.source, opening.start(1))
        if end is None:
            return None
        literal = self.source[self.pos:end]
        self.pos = end
        return literal

    def closing_brace(self, pos: Optional[int] = None) -> Optional[int]:
        """
        Find the "}" matching the "{" at pos.

        Braces inside Python string literals are skipped.

        Returns:
            Index of the matching brace, or None if unbalanced
        """
        pos = self.pos if pos is None else pos
        depth = 0
        while pos < len(self.source):
            char = self.source[pos]
            if char in "\"'":
                end = skip_string(self.source, pos)
                if end is None:
                    return None
                pos = end
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return pos
            pos += 1
        return None


class RsxParser:
    """
    Parser for RSX markup.

    One parser instance handles one source at a time; the resulting tree
    doesn't keep a reference to the parser.

    Args:
        trim_whitespace: Drop layout whitespace (runs that span lines)
            between and around elements
        raw_text_tags: Tags whose text content is kept verbatim
    """

    def __init__(
        self,
        trim_whitespace: bool = True,
        raw_text_tags: Iterable[str] = RAW_TEXT_TAGS,
    ) -> None:
        self.trim_whitespace = trim_whitespace
        self.raw_text_tags = frozenset(t.lower() for t in raw_text_tags)
        self.source = ""
        self.cursor = Cursor("")
        self._failure: Optional[RsxSyntaxError] = None
        self._failure_at = -1

    def parse(self, source: str) -> Element:
        """
        Parse markup into its root element.

        Args:
            source: Markup source, a single root element

        Returns:
            Root Element

        Raises:
            RsxSyntaxError: If the markup is malformed
            RsxSemanticError: If a closing tag doesn't match its opening tag
        """
        self.source = source
        self.cursor = Cursor(source)
        self._failure = None
        self._failure_at = -1

        try:
            self.cursor.skip_whitespace()
            root = self._element()
            if root is None:
                raise self._failure or RsxSyntaxError(
                    "expected an element", Span.point(self.cursor.pos)
                )

            self.cursor.skip_whitespace()
            if not self.cursor.at_end:
                raise RsxSyntaxError(
                    "unexpected content after the root element",
                    Span(self.cursor.pos, len(source)),
                )
        except RsxError as e:
            raise e.attach(source)

        logger.debug("Parsed markup", tag=root.tag, length=len(source))
        return root

    def _speculate(self, production: Callable[[], Optional[T]]) -> Optional[T]:
        """Run a production on a fork of the cursor, committing on success."""
        original = self.cursor
        self.cursor = original.fork()
        try:
            result = production()
            if result is not None:
                original.advance_to(self.cursor)
            return result
        finally:
            self.cursor = original

    def _fail(self, message: str, span: Span, at: Optional[int] = None) -> None:
        """Record a failed alternative, keeping the furthest one."""
        at = span.start if at is None else at
        if at >= self._failure_at:
            self._failure = RsxSyntaxError(message, span)
            self._failure_at = at
        return None

    def _node(self) -> Optional[List[Node]]:
        """Parse a child: braced expression, element or text run."""
        expression = self._speculate(self._braced_expression)
        if expression is not None:
            return [expression]

        element = self._speculate(self._element)
        if element is not None:
            return [element]

        return self._speculate(self._text_run)

    def _raw_node(self) -> Optional[List[Node]]:
        """Parse a child of a raw-text tag: element or verbatim text."""
        element = self._speculate(self._element)
        if element is not None:
            return [element]

        return self._speculate(self._raw_text_run)

    def _element(self) -> Optional[Element]:
        """Parse an element and its children."""
        cursor = self.cursor
        start = cursor.pos

        if not cursor.consume("<"):
            return self._fail("missing opening '<'", Span.point(start))

        cursor.skip_whitespace()
        tag = cursor.match("ident")
        if tag is None:
            return self._fail("missing tag identifier", Span.point(cursor.pos))

        props: List[Prop] = []
        while True:
            prop = self._speculate(self._prop)
            if prop is None:
                break
            props.append(prop)

        # Early close via "/>" skips children and the closing tag
        cursor.skip_whitespace()
        if cursor.consume("/>"):
            return Element(tag, tuple(props), (), Span(start, cursor.pos), True)

        if not cursor.consume(">"):
            return self._fail(
                f"expected '>' or '/>' to close <{tag}>", Span.point(cursor.pos)
            )

        raw = tag.lower() in self.raw_text_tags and not any(p.name == "src" for p in props)
        child = self._raw_node if raw else self._node

        children: List[Node] = []
        while True:
            nodes = self._speculate(child)
            if nodes is None:
                break
            children.extend(nodes)

        close_start = cursor.pos
        if cursor.at_end:
            return self._fail(
                f"unterminated element <{tag}>: expected '</{tag}>', "
                "found end of input",
                Span(start, start + len(tag) + 1),
                at=close_start,
            )

        if not cursor.consume("<"):
            return self._fail(f"expected '</{tag}>'", Span.point(close_start))
        cursor.skip_whitespace()
        if not cursor.consume("/"):
            return self._fail(f"expected '</{tag}>'", Span.point(close_start))

        cursor.skip_whitespace()
        close_tag = cursor.match("ident")
        if close_tag is None:
            return self._fail("missing tag identifier", Span.point(cursor.pos))

        if close_tag != tag:
            raise RsxSemanticError(
                f"mismatched closing tag: expected </{tag}>, found </{close_tag}>",
                Span(close_start, cursor.pos),
            )

        cursor.skip_whitespace()
        if not cursor.consume(">"):
            return self._fail(
                f"expected '>' after '</{tag}'", Span.point(cursor.pos)
            )

        return Element(tag, tuple(props), tuple(children), Span(start, cursor.pos))

    def _prop(self) -> Optional[Prop]:
        """Parse name=value."""
        cursor = self.cursor
        cursor.skip_whitespace()
        start = cursor.pos

        name = cursor.match("ident")
        if name is None:
            return self._fail("expected a prop name", Span.point(start))

        cursor.skip_whitespace()
        if not cursor.consume("="):
            return self._fail(
                f"missing '=' after prop '{name}'",
                Span(start, cursor.pos),
                at=cursor.pos,
            )

        cursor.skip_whitespace()
        value = self._prop_value()
        if value is None:
            return self._fail(
                f"missing value for prop '{name}'",
                Span(start, cursor.pos),
                at=cursor.pos,
            )

        return Prop(name, value, Span(start, cursor.pos))

    def _prop_value(self) -> Optional[Expression]:
        """Parse a string literal, braced expression or bare atom."""
        cursor = self.cursor
        start = cursor.pos

        if cursor.peek("{"):
            end = cursor.closing_brace()
            if end is None:
                return self._fail(
                    "unterminated expression: expected '}'",
                    Span(start, len(self.source)),
                    at=len(self.source),
                )
            cursor.pos = end + 1
            return self._expression(self.source[start + 1:end], Span(start, end + 1))

        literal = cursor.string_literal()
        if literal is None:
            literal = cursor.match("number") or cursor.match("name")
        if literal is None:
            return None
        return self._expression(literal, Span(start, cursor.pos))

    def _braced_expression(self) -> Optional[Expression]:
        """Parse '{' PyExpr '}' as a child node."""
        cursor = self.cursor
        start = cursor.pos

        # "{{" is an escaped brace, left to the text run
        if not cursor.peek("{") or cursor.peek("{{"):
            return self._fail("expected '{'", Span.point(start))

        end = cursor.closing_brace()
        if end is None:
            return self._fail(
                "unterminated expression: expected '}'",
                Span(start, len(self.source)),
            )

        cursor.pos = end + 1
        return self._expression(self.source[start + 1:end], Span(start, end + 1))

    def _expression(self, text: str, span: Span) -> Optional[Expression]:
        """Validate text as a Python expression."""
        source = text.strip()
        if not source:
            return self._fail("empty expression", span, at=span.end)
        try:
            ast.parse(source, mode="eval")
        except SyntaxError as e:
            return self._fail(
                f"invalid expression {source!r}: {e.msg}", span, at=span.end
            )
        return Expression(source, span)

    def _text_run(self) -> Optional[List[Node]]:
        """
        Parse text up to the next '<'.

        Interpolations inside the run are skipped over as whole groups, so
        "{a < b}" doesn't end the run, and are split out by the segmenter.
        """
        cursor = self.cursor
        source = self.source
        start = cursor.pos
        pos = start

        while pos < len(source) and source[pos] != "<":
            if source.startswith(("{{", "}}"), pos):
                pos += 2
            elif source[pos] == "{":
                end = cursor.closing_brace(pos)
                if end is None:
                    # Let the segmenter report the unterminated expression
                    end = source.find("<", pos)
                    pos = len(source) if end == -1 else end
                    break
                pos = end + 1
            else:
                pos += 1

        if pos == start:
            return self._fail("expected markup content", Span.point(start))

        cursor.pos = pos
        raw = source[start:pos]
        offset = start

        trimmed = self._trim(raw, offset)
        if trimmed is None:
            return []
        return segment_text(*trimmed)

    def _raw_text_run(self) -> Optional[List[Node]]:
        """Parse verbatim text up to the next '<', or the closing tag."""
        cursor = self.cursor
        source = self.source
        start = cursor.pos

        if cursor.peek("</"):
            return self._fail("expected raw text", Span.point(start))

        # A '<' that didn't start an element is text
        pos = source.find("<", start + 1)
        if pos == -1:
            pos = len(source)
        if pos == start:
            return self._fail("expected raw text", Span.point(start))

        cursor.pos = pos
        trimmed = self._trim(source[start:pos], start)
        if trimmed is None:
            return []
        raw, offset = trimmed
        return [Text(raw, Span(offset, offset + len(raw)))]

    def _trim(self, raw: str, offset: int) -> Optional[Tuple[str, int]]:
        """Drop layout whitespace; None when the whole run is layout."""
        if not self.trim_whitespace:
            return raw, offset
        if not raw.strip() and "\n" in raw:
            return None
        leading = raw[:len(raw) - len(raw.lstrip())]
        if "\n" in leading:
            raw = raw[len(leading):]
            offset += len(leading)
        trailing = raw[len(raw.rstrip()):]
        if "\n" in trailing:
            raw = raw[:len(raw) - len(trailing)]
        return raw, offset


def parse_markup(
    source: str,
    trim_whitespace: bool = True,
    raw_text_tags: Iterable[str] = RAW_TEXT_TAGS,
) -> Element:
    """Parse markup source with a fresh parser."""
    return RsxParser(trim_whitespace, raw_text_tags).parse(source)
