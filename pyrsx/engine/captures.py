"""
pyrsx Capture Analyzer
======================

Finds the free variables of an event handler expression and prepares the
handler for targets where a closure must own what it captures.

    analysis = CaptureAnalyzer().analyze("lambda e: counter.set(counter.get() + 1)")
    analysis.captured           # ["counter"]
    analysis.rewritten          # "lambda e: counter_clone.set(counter_clone.get() + 1)"
    analysis.wrap()
    # "(lambda counter_clone: (lambda e: counter_clone.set(counter_clone.get() + 1)))(counter.clone())"

The wrapper evaluates each clone once, before the handler closure is
built, and leaves the original names usable by sibling handlers.

Scoping:
    - lambda parameters (positional, keyword-only, *args, **kwargs) shadow
      outer names inside the lambda body; defaults belong to the
      enclosing scope
    - comprehension targets are bound inside the comprehension; the first
      iterable is evaluated in the enclosing scope
    - walrus targets are bound in the nearest non-comprehension scope
    - builtins (len, print, ...) are never captures
"""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple, Union

from pyrsx.engine.nodes import Expression


BUILTIN_NAMES = frozenset(dir(builtins))

DEFAULT_CLONE_TEMPLATE = "{name}.clone()"

_Comprehension = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)


class _ScopeWalker(ast.NodeTransformer):
    """
    Walks an expression tracking which names are bound by enclosing
    lambdas and comprehensions. Free name loads go to on_free().
    """

    def __init__(self) -> None:
        # (kind, names); the bottom scope belongs to the handler itself
        self._scopes: List[Tuple[str, Set[str]]] = [("handler", set())]

    def on_free(self, node: ast.Name) -> ast.AST:
        return node

    def _is_bound(self, name: str) -> bool:
        return any(name in names for _, names in self._scopes)

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if isinstance(node.ctx, ast.Load) and not self._is_bound(node.id):
            return self.on_free(node)
        return node

    def visit_Lambda(self, node: ast.Lambda) -> ast.AST:
        args = node.args
        args.defaults = [self.visit(d) for d in args.defaults]
        args.kw_defaults = [self.visit(d) if d is not None else None for d in args.kw_defaults]

        params = {a.arg for a in args.posonlyargs + args.args + args.kwonlyargs}
        if args.vararg:
            params.add(args.vararg.arg)
        if args.kwarg:
            params.add(args.kwarg.arg)

        self._scopes.append(("lambda", params))
        try:
            node.body = self.visit(node.body)
        finally:
            self._scopes.pop()
        return node

    def visit_NamedExpr(self, node: ast.NamedExpr) -> ast.AST:
        node.value = self.visit(node.value)
        for kind, names in reversed(self._scopes):
            if kind != "comprehension":
                names.add(node.target.id)
                break
        return node

    def _visit_comprehension(self, node: ast.AST, results: Tuple[str, ...]) -> ast.AST:
        generators: List[ast.comprehension] = node.generators  # type: ignore[attr-defined]
        generators[0].iter = self.visit(generators[0].iter)

        self._scopes.append(("comprehension", set()))
        try:
            for index, generator in enumerate(generators):
                if index:
                    generator.iter = self.visit(generator.iter)
                self._scopes[-1][1].update(
                    n.id for n in ast.walk(generator.target) if isinstance(n, ast.Name)
                )
                generator.ifs = [self.visit(condition) for condition in generator.ifs]
            for name in results:
                setattr(node, name, self.visit(getattr(node, name)))
        finally:
            self._scopes.pop()
        return node

    def visit_ListComp(self, node: ast.ListComp) -> ast.AST:
        return self._visit_comprehension(node, ("elt",))

    def visit_SetComp(self, node: ast.SetComp) -> ast.AST:
        return self._visit_comprehension(node, ("elt",))

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> ast.AST:
        return self._visit_comprehension(node, ("elt",))

    def visit_DictComp(self, node: ast.DictComp) -> ast.AST:
        return self._visit_comprehension(node, ("key", "value"))


class _FreeNameCollector(_ScopeWalker):
    def __init__(self) -> None:
        super().__init__()
        self.free: List[str] = []

    def on_free(self, node: ast.Name) -> ast.AST:
        if node.id not in BUILTIN_NAMES and node.id not in self.free:
            self.free.append(node.id)
        return node


class _CloneRewriter(_ScopeWalker):
    def __init__(self, renames: Dict[str, str]) -> None:
        super().__init__()
        self.renames = renames

    def on_free(self, node: ast.Name) -> ast.AST:
        if node.id in self.renames:
            return ast.copy_location(ast.Name(id=self.renames[node.id], ctx=ast.Load()), node)
        return node


@dataclass
class CaptureAnalysis:
    """
    Result of analyzing one event handler.

    Attributes:
        handler: Handler source as written
        captured: Free names in first-seen order
        clone_bindings: (clone name, captured name) pairs, in capture order
        rewritten: Handler source with captured names replaced by clones
    """
    handler: str
    captured: List[str] = field(default_factory=list)
    clone_bindings: List[Tuple[str, str]] = field(default_factory=list)
    rewritten: str = ""

    @property
    def needs_clones(self) -> bool:
        return bool(self.captured)

    def clone_name(self, name: str) -> str:
        for clone, original in self.clone_bindings:
            if original == name:
                return clone
        raise KeyError(name)

    def wrap(self, clone_template: str = DEFAULT_CLONE_TEMPLATE) -> str:
        """
        Render the handler with its clone bindings.

        Args:
            clone_template: Clone expression, "{name}" is the captured name

        Returns:
            The handler unchanged when nothing is captured, otherwise an
            immediately-invoked lambda binding every clone
        """
        if not self.needs_clones:
            return self.handler

        params = ", ".join(clone for clone, _ in self.clone_bindings)
        clones = ", ".join(
            clone_template.format(name=original) for _, original in self.clone_bindings
        )
        return f"(lambda {params}: ({self.rewritten}))({clones})"

    def to_dict(self) -> Dict[str, object]:
        return {
            "handler": self.handler,
            "captured": list(self.captured),
            "clone_bindings": [list(b) for b in self.clone_bindings],
            "rewritten": self.rewritten,
        }


class CaptureAnalyzer:
    """
    Free-variable analysis and clone-binding synthesis for handlers.

    Example:
        analyzer = CaptureAnalyzer()
        analysis = analyzer.analyze(prop.value)
        code = analysis.wrap("{name}.copy()")
    """

    def __init__(self, suffix: str = "_clone") -> None:
        self.suffix = suffix

    def analyze(self, handler: Union[Expression, str]) -> CaptureAnalysis:
        """
        Analyze a handler expression.

        Args:
            handler: Expression node or expression source

        Returns:
            CaptureAnalysis
        """
        source = handler.source if isinstance(handler, Expression) else handler
        source = source.strip()

        collector = _FreeNameCollector()
        collector.visit(ast.parse(source, mode="eval"))
        if not collector.free:
            return CaptureAnalysis(handler=source, rewritten=source)

        renames = self._clone_names(source, collector.free)
        tree = _CloneRewriter(renames).visit(ast.parse(source, mode="eval"))

        return CaptureAnalysis(
            handler=source,
            captured=list(collector.free),
            clone_bindings=[(renames[name], name) for name in collector.free],
            rewritten=ast.unparse(tree.body),
        )

    def _clone_names(self, source: str, captured: List[str]) -> Dict[str, str]:
        """Pick clone names that don't collide with names in the handler."""
        taken: Set[str] = set()
        for node in ast.walk(ast.parse(source, mode="eval")):
            if isinstance(node, ast.Name):
                taken.add(node.id)
            elif isinstance(node, ast.arg):
                taken.add(node.arg)

        renames: Dict[str, str] = {}
        for name in captured:
            clone = f"{name}{self.suffix}"
            while clone in taken:
                clone += "_"
            taken.add(clone)
            renames[name] = clone
        return renames
