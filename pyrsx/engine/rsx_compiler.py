"""
pyrsx Markup Compiler
=====================

Lowers a parsed markup tree into one Python expression of builder calls
against a reactive DOM-construction runtime:

    <div class="counter">
        Clicked {count} times
        <button onclick={lambda e: count.set(count.get() + 1)}>+1</button>
    </div>

compiles to (wrapped here for reading):

    (dom.element("div")
        .attribute("class", "counter")
        .children([
            dom.text("Clicked "),
            dom.text_reactive(count.signal().map(lambda value: f"{value}")),
            dom.text(" times"),
            dom.element("button")
                .event(events.Click, lambda e: count.set(count.get() + 1))
                .children([dom.text("+1")]),
        ]))

Lowering rules:
    - Uppercase tags are components: Foo(Foo.Props(bar=1))
    - Lowercase tags are native elements, one clause per prop chosen by
      the classifier (attribute, property or event)
    - style/script without a src prop keep their content as one text blob
    - Text children become dom.text(...), expression children become
      reactive text bound to the expression's value stream
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pyrsx.core.config import Config, get_config
from pyrsx.core.errors import ConfigurationError, RsxError, RsxSemanticError, Span
from pyrsx.engine.captures import CaptureAnalysis, CaptureAnalyzer
from pyrsx.engine.classifier import Binding, classify, event_type
from pyrsx.engine.metadata import Metadata, get_metadata
from pyrsx.engine.nodes import Element, Expression, Node, Text
from pyrsx.engine.rsx_parser import RsxParser
from pyrsx.utils.helpers import escape_html, is_identifier, string_literal
from pyrsx.utils.logger import get_logger


logger = get_logger("pyrsx.compiler")

OWNERSHIP_MODES = ("shared", "exclusive")

# Expressions that can be followed by ".attr" or "(...)" without parentheses.
# A tuple's source may lack its parentheses, so it is never a primary.
_PRIMARY = (ast.Name, ast.Attribute, ast.Call, ast.Subscript, ast.Constant,
            ast.List, ast.Dict, ast.Set, ast.ListComp, ast.SetComp,
            ast.DictComp, ast.JoinedStr)


@dataclass(frozen=True)
class CompilerOptions:
    """
    Code generation settings.

    Attributes:
        runtime: Name of the DOM builder namespace in generated code
        events: Name of the event type namespace in generated code
        ownership: "shared" emits handlers as written, "exclusive" wraps
            them so captured values are cloned before the closure is built
        clone_template: Clone expression for exclusive ownership
        stream_accessor: Method turning a reactive value into its stream
        stream_methods: Methods whose result already is a value stream
        raw_text_tags: Tags whose content is kept as a text blob
        trim_whitespace: Drop layout whitespace between elements
        strict_tags: Fail on tags missing from the element table
    """
    runtime: str = "dom"
    events: str = "events"
    ownership: str = "shared"
    clone_template: str = "{name}.clone()"
    stream_accessor: str = "signal"
    stream_methods: Tuple[str, ...] = ("signal", "signal_cloned", "signal_ref", "map", "map_ref")
    raw_text_tags: Tuple[str, ...] = ("style", "script")
    trim_whitespace: bool = True
    strict_tags: bool = False

    def __post_init__(self) -> None:
        if self.ownership not in OWNERSHIP_MODES:
            raise ConfigurationError(
                f"compiler.ownership must be one of {', '.join(OWNERSHIP_MODES)}, "
                f"got {self.ownership!r}"
            )
        if "{name}" not in self.clone_template:
            raise ConfigurationError(
                f"compiler.clone_template must contain '{{name}}', got {self.clone_template!r}"
            )

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "CompilerOptions":
        """Build options from the compiler.* configuration section."""
        config = config or get_config()
        return cls(
            runtime=config.get_str("compiler.runtime", cls.runtime),
            events=config.get_str("compiler.events", cls.events),
            ownership=config.get_str("compiler.ownership", cls.ownership),
            clone_template=config.get_str("compiler.clone_template", cls.clone_template),
            stream_accessor=config.get_str("compiler.stream_accessor", cls.stream_accessor),
            stream_methods=tuple(config.get_list("compiler.stream_methods", list(cls.stream_methods))),
            raw_text_tags=tuple(config.get_list("compiler.raw_text_tags", list(cls.raw_text_tags))),
            trim_whitespace=config.get_bool("compiler.trim_whitespace", cls.trim_whitespace),
            strict_tags=config.get_bool("compiler.strict_tags", cls.strict_tags),
        )


@dataclass
class CompiledMarkup:
    """
    Result of compiling one markup invocation.

    Attributes:
        name: Name of the invocation, used in diagnostics
        code: Generated Python expression
        components: Component names invoked, in first-use order
        events: Event types bound, in first-use order
        captures: Capture analysis of each event handler
        warnings: Non-fatal diagnostics
    """
    name: str
    code: str
    components: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    captures: List[CaptureAnalysis] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "components": list(self.components),
            "events": list(self.events),
            "captures": [c.to_dict() for c in self.captures],
            "warnings": list(self.warnings),
        }


class CompilerContext:
    """Per-compilation state."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.components: List[str] = []
        self.events: List[str] = []
        self.captures: List[CaptureAnalysis] = []
        self.warnings: List[str] = []

    def use_component(self, name: str) -> None:
        if name not in self.components:
            self.components.append(name)

    def use_event(self, name: str) -> None:
        if name not in self.events:
            self.events.append(name)

    def warn(self, message: str, span: Optional[Span] = None) -> None:
        self.warnings.append(message)
        logger.warning(message, markup=self.name, offset=span.start if span else None)


class RsxCompiler:
    """
    Compiles markup trees into builder-call expressions.

    Example:
        compiler = RsxCompiler(CompilerOptions(ownership="exclusive"))
        compiled = compiler.compile(parse_markup("<p>{message}</p>"))
        compiled.code
        # '(dom.element("p").children([dom.text_reactive(message.signal().map(...))]))'
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        metadata: Optional[Metadata] = None,
    ) -> None:
        self.options = options or CompilerOptions.from_config()
        self.metadata = metadata
        self.analyzer = CaptureAnalyzer()
        self.context: Optional[CompilerContext] = None

    def compile(self, element: Element, name: str = "markup") -> CompiledMarkup:
        """
        Compile a markup tree.

        Args:
            element: Root element
            name: Name used in diagnostics

        Returns:
            CompiledMarkup

        Raises:
            RsxSemanticError: If a component tag or prop name is not an
                identifier, or a tag is unknown and strict_tags is set
            ConfigurationError: If the element metadata can't be loaded
        """
        metadata = self.metadata or get_metadata()
        self.context = CompilerContext(name)
        code = f"({self._node(element, metadata)})"

        context = self.context
        self.context = None
        logger.debug(
            "Compiled markup",
            name=name,
            components=len(context.components),
            events=len(context.events),
        )
        return CompiledMarkup(
            name=name,
            code=code,
            components=context.components,
            events=context.events,
            captures=context.captures,
            warnings=context.warnings,
        )

    # -------------------------------------------------------------------------
    # Elements
    # -------------------------------------------------------------------------

    def _node(self, node: Node, metadata: Metadata) -> str:
        if isinstance(node, Element):
            if node.is_component:
                return self._component(node)
            return self._element(node, metadata)
        if isinstance(node, Text):
            return f"{self.options.runtime}.text({string_literal(node.value)})"
        return self._reactive_text(node)

    def _component(self, element: Element) -> str:
        """Emit Foo(Foo.Props(field=value, ...))."""
        assert self.context is not None
        if not is_identifier(element.tag):
            raise RsxSemanticError(
                f"component tag <{element.tag}> is not a valid Python identifier",
                element.span,
            )
        self.context.use_component(element.tag)

        fields: List[str] = []
        seen = set()
        for prop in element.props:
            if not is_identifier(prop.name):
                raise RsxSemanticError(
                    f"component <{element.tag}> prop '{prop.name}' is not a valid "
                    "Python identifier",
                    prop.span,
                )
            if prop.name in seen:
                raise RsxSemanticError(
                    f"duplicate prop '{prop.name}' on component <{element.tag}>",
                    prop.span,
                )
            seen.add(prop.name)
            fields.append(f"{prop.name}={self._argument(prop.value)}")

        if element.children:
            self.context.warn(
                f"children of component <{element.tag}> are ignored", element.span
            )

        return f"{element.tag}({element.tag}.Props({', '.join(fields)}))"

    def _element(self, element: Element, metadata: Metadata) -> str:
        """Emit a native element builder chain."""
        assert self.context is not None
        tag = element.tag

        if not metadata.is_known_element(tag) and "-" not in tag:
            message = f"unknown element <{tag}>"
            if self.options.strict_tags:
                raise RsxSemanticError(message, element.span)
            self.context.warn(message, element.span)

        chain = [f"{self.options.runtime}.element({string_literal(tag)})"]
        for prop in element.props:
            chain.append(self._prop_clause(tag, prop.name, prop.value, metadata))

        if not element.children:
            return "".join(chain)

        if tag.lower() in self.options.raw_text_tags and element.get_prop("src") is None:
            chain.append(f".text({string_literal(self._raw_content(element.children))})")
        else:
            children = ", ".join(self._node(child, metadata) for child in element.children)
            chain.append(f".children([{children}])")

        return "".join(chain)

    def _prop_clause(
        self,
        tag: str,
        name: str,
        value: Expression,
        metadata: Metadata,
    ) -> str:
        binding = classify(tag, name, value, metadata)

        if binding is Binding.EVENT:
            return f".event({self._event_type(name)}, {self._handler(value)})"

        method = "property" if binding is Binding.PROPERTY else "attribute"
        return f".{method}({string_literal(name)}, {self._argument(value)})"

    def _event_type(self, name: str) -> str:
        assert self.context is not None
        event = event_type(name)
        self.context.use_event(event)
        return f"{self.options.events}.{event}"

    def _handler(self, value: Expression) -> str:
        """Analyze captures and wrap the handler per the ownership mode."""
        assert self.context is not None
        analysis = self.analyzer.analyze(value)
        self.context.captures.append(analysis)

        if self.options.ownership == "exclusive" and analysis.needs_clones:
            return analysis.wrap(self.options.clone_template)
        return self._argument(value)

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def _reactive_text(self, expression: Expression) -> str:
        """Emit a text child bound to the expression's value stream."""
        stream = self._primary(expression)
        if not self._is_stream(expression):
            stream = f"{stream}.{self.options.stream_accessor}()"
        return (
            f"{self.options.runtime}.text_reactive("
            f'{stream}.map(lambda value: f"{{value}}"))'
        )

    def _is_stream(self, expression: Expression) -> bool:
        """Check if the outermost call is a stream-producing method."""
        tree = expression.tree()
        return (
            isinstance(tree, ast.Call)
            and isinstance(tree.func, ast.Attribute)
            and tree.func.attr in self.options.stream_methods
        )

    def _raw_content(self, children: Tuple[Node, ...]) -> str:
        """Reconstruct child markup as text, for style and script."""
        parts: List[str] = []
        for child in children:
            if isinstance(child, Text):
                parts.append(child.value)
            elif isinstance(child, Expression):
                parts.append(f"{{{child.source}}}")
            else:
                attributes = "".join(
                    f' {prop.name}="{self._raw_value(prop.value)}"' for prop in child.props
                )
                if child.children:
                    parts.append(
                        f"<{child.tag}{attributes}>"
                        f"{self._raw_content(child.children)}</{child.tag}>"
                    )
                else:
                    parts.append(f"<{child.tag}{attributes}/>")
        return "".join(parts)

    @staticmethod
    def _raw_value(value: Expression) -> str:
        tree = value.tree()
        if isinstance(tree, ast.Constant) and isinstance(tree.value, str):
            return escape_html(tree.value)
        return value.source

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    @staticmethod
    def _argument(value: Expression) -> str:
        """Render an expression so it is valid as a call argument."""
        tree = value.tree()
        if isinstance(tree, (ast.NamedExpr, ast.GeneratorExp, ast.Tuple)) or "\n" in value.source:
            return f"({value.source})"
        return value.source

    @staticmethod
    def _primary(value: Expression) -> str:
        """Render an expression so a method call can follow it."""
        tree = value.tree()
        if isinstance(tree, _PRIMARY) and not (
            isinstance(tree, ast.Constant) and isinstance(tree.value, (int, float, complex))
        ) and "\n" not in value.source:
            return value.source
        return f"({value.source})"


def compile_markup(
    source: str,
    name: str = "markup",
    options: Optional[CompilerOptions] = None,
    metadata: Optional[Metadata] = None,
) -> CompiledMarkup:
    """
    Parse and compile a markup source.

    Args:
        source: Markup source, a single root element
        name: Name used in diagnostics
        options: Compiler options (default: from configuration)
        metadata: Element metadata (default: process-wide metadata)

    Returns:
        CompiledMarkup

    Raises:
        RsxSyntaxError: If the markup is malformed
        RsxSemanticError: If the markup can't be compiled
        ConfigurationError: If the element metadata can't be loaded
    """
    options = options or CompilerOptions.from_config()
    root = RsxParser(options.trim_whitespace, options.raw_text_tags).parse(source)
    try:
        return RsxCompiler(options, metadata).compile(root, name)
    except RsxError as e:
        if e.source is None and e.span is not None:
            e.attach(source)
        raise
