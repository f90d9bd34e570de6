"""
pyrsx Markup AST
================

Node types produced by the RSX parser and consumed by the compiler.

A markup invocation such as:

    <div class="counter">
        Clicked {count} times
        <button onclick={lambda e: count.set(count.get() + 1)}>+1</button>
    </div>

parses into:

    Element(tag="div",
            props=(Prop("class", Expression('"counter"')),),
            children=(Text("Clicked "),
                      Expression("count"),
                      Text(" times"),
                      Element(tag="button", ...)))

Nodes are frozen dataclasses holding tuples, so a tree can't be mutated
once the parser has built it.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple, Union

from pyrsx.core.errors import Span


class NodeType(Enum):
    """AST node types."""
    ELEMENT = auto()
    TEXT = auto()
    EXPRESSION = auto()


@dataclass(frozen=True)
class Expression:
    """
    Opaque Python expression.

    The source is passed through to the generated code unevaluated. The
    parser guarantees it parses with ast.parse(source, mode="eval").
    """
    source: str
    span: Optional[Span] = field(default=None, compare=False)

    type = NodeType.EXPRESSION

    def tree(self) -> ast.expr:
        """Parse the source into an ast expression node."""
        return ast.parse(self.source.strip(), mode="eval").body

    @property
    def is_string_literal(self) -> bool:
        """Whether the expression is a (possibly formatted) string literal."""
        node = self.tree()
        if isinstance(node, ast.Constant):
            return isinstance(node.value, str)
        return isinstance(node, ast.JoinedStr)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.name, "source": self.source}


@dataclass(frozen=True)
class Text:
    """Literal text, already un-escaped ("{{" -> "{")."""
    value: str
    span: Optional[Span] = field(default=None, compare=False)

    type = NodeType.TEXT

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.name, "value": self.value}


@dataclass(frozen=True)
class Prop:
    """A name=value pair on an element."""
    name: str
    value: Expression
    span: Optional[Span] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value.source}


@dataclass(frozen=True)
class Element:
    """
    Markup element.

    Tags starting with an uppercase letter are component invocations,
    everything else is a native DOM element.
    """
    tag: str
    props: Tuple[Prop, ...] = ()
    children: Tuple["Node", ...] = ()
    span: Optional[Span] = field(default=None, compare=False)
    self_closing: bool = False

    type = NodeType.ELEMENT

    @property
    def is_component(self) -> bool:
        return self.tag[:1].isupper()

    def get_prop(self, name: str) -> Optional[Prop]:
        """Get the first prop with the given name."""
        for prop in self.props:
            if prop.name == name:
                return prop
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert element to dictionary representation."""
        return {
            "type": self.type.name,
            "tag": self.tag,
            "props": [p.to_dict() for p in self.props],
            "children": [c.to_dict() for c in self.children],
            "self_closing": self.self_closing,
        }


Node = Union[Element, Text, Expression]
