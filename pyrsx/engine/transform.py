"""
pyrsx Source Transform
======================

Build step that compiles markup embedded in Python modules.

A module written as:

    # counter.rsx.py
    def counter(count):
        return rsx('''
            <button onclick={lambda e: count.set(count.get() + 1)}>
                Clicked {count} times
            </button>
        ''')

is rewritten to counter.py with every rsx("...") call replaced by the
generated builder expression. Everything outside the calls is kept
byte for byte.

    build(["src/"])                  # every *.rsx.py and *.pyrsx below src/
    transform_file("counter.rsx.py") # -> counter.py

The marker name comes from the transform.marker configuration key. Its
argument must be a single string literal. Errors abort the file being
transformed and nothing is written for it.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pyrsx.core.config import get_config
from pyrsx.core.errors import ConfigurationError, RsxError, RsxSyntaxError, Span
from pyrsx.engine.metadata import Metadata
from pyrsx.engine.rsx_compiler import CompiledMarkup, CompilerOptions, compile_markup
from pyrsx.utils.logger import get_logger


logger = get_logger("pyrsx.transform")

SOURCE_SUFFIXES = (".rsx.py", ".pyrsx")

_STRING_PREFIX = re.compile(r"([rRuU]?)(\"\"\"|'''|\"|')")


@dataclass
class MarkupCall:
    """
    One marker call found in a module.

    Attributes:
        markup: Markup source (the literal's value)
        start: Offset of the call in the module source
        end: Offset just past the call
        line: Line of the call
        markup_offset: Offset of the markup's first character in the
            module, or None when the literal uses escapes or implicit
            concatenation and positions can't be mapped back
    """
    markup: str
    start: int
    end: int
    line: int
    markup_offset: Optional[int] = None


@dataclass
class TransformResult:
    """Transformed module source and what was compiled into it."""
    source: str
    compiled: List[CompiledMarkup] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [w for c in self.compiled for w in c.warnings]


class SourceTransformer:
    """
    Finds marker calls in a Python module and splices in compiled markup.

    Example:
        transformer = SourceTransformer(marker="rsx")
        result = transformer.transform(source, "app.rsx.py")
        result.source
    """

    def __init__(
        self,
        marker: Optional[str] = None,
        options: Optional[CompilerOptions] = None,
        metadata: Optional[Metadata] = None,
    ) -> None:
        self.marker = marker or get_config().get_str("transform.marker", "rsx")
        self.options = options or CompilerOptions.from_config()
        self.metadata = metadata

    def find_calls(self, source: str, filename: str = "<string>") -> List[MarkupCall]:
        """
        Locate marker calls in module source.

        Raises:
            RsxSyntaxError: If the module is not valid Python, or a marker
                call doesn't take exactly one string literal
        """
        try:
            tree = ast.parse(source, filename=filename)
        except SyntaxError as e:
            raise RsxSyntaxError(
                f"invalid Python module: {e.msg}",
                Span.point(_offset(source, e.lineno or 1, 0)),
                source,
                filename,
            ) from e

        calls: List[MarkupCall] = []
        for node in ast.walk(tree):
            if not (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Name)
                and node.func.id == self.marker
            ):
                continue

            start = _offset(source, node.lineno, node.col_offset, byte_col=True)
            end = _offset(source, node.end_lineno, node.end_col_offset, byte_col=True)

            argument = node.args[0] if len(node.args) == 1 else None
            if (
                node.keywords
                or not isinstance(argument, ast.Constant)
                or not isinstance(argument.value, str)
            ):
                raise RsxSyntaxError(
                    f"{self.marker}() takes exactly one string literal",
                    Span(start, end),
                    source,
                    filename,
                )

            calls.append(MarkupCall(
                markup=argument.value,
                start=start,
                end=end,
                line=node.lineno,
                markup_offset=_markup_offset(source, argument),
            ))

        calls.sort(key=lambda call: call.start)
        return calls

    def transform(self, source: str, filename: str = "<string>") -> TransformResult:
        """
        Compile every marker call in a module.

        Args:
            source: Python module source
            filename: Used in diagnostics

        Returns:
            TransformResult

        Raises:
            RsxError: On the first markup that fails to compile
        """
        calls = self.find_calls(source, filename)
        compiled: List[CompiledMarkup] = []

        for index, call in enumerate(calls):
            name = f"{filename}:{call.line}"
            try:
                compiled.append(compile_markup(call.markup, name, self.options, self.metadata))
            except ConfigurationError:
                # Not tied to this markup
                raise
            except RsxError as e:
                if call.markup_offset is not None and e.span is not None:
                    raise e.attach(source, filename, offset=call.markup_offset)
                raise e.attach(call.markup, f"{filename} ({self.marker}() at line {call.line})")
            logger.debug("Compiled markup invocation", name=name, index=index)

        # Splice last to first so earlier offsets stay valid
        output = source
        for call, result in reversed(list(zip(calls, compiled))):
            output = output[:call.start] + result.code + output[call.end:]

        return TransformResult(source=output, compiled=compiled)


def _offset(source: str, line: int, col: int, byte_col: bool = False) -> int:
    """Convert a 1-based line and a column to a character offset."""
    lines = source.splitlines(keepends=True)
    offset = sum(len(text) for text in lines[:line - 1])
    if byte_col and line - 1 < len(lines):
        # ast columns count UTF-8 bytes
        col = len(lines[line - 1].encode("utf-8")[:col].decode("utf-8", errors="ignore"))
    return offset + col


def _markup_offset(source: str, literal: ast.Constant) -> Optional[int]:
    """Offset of a string literal's content, if it maps 1:1 onto the value."""
    segment = ast.get_source_segment(source, literal)
    if segment is None:
        return None

    match = _STRING_PREFIX.match(segment)
    if match is None:
        return None

    prefix, quote = match.groups()
    body = segment[match.end():len(segment) - len(quote)]
    if body != literal.value:
        return None
    if "\\" in body and "r" not in prefix.lower():
        return None

    start = _offset(source, literal.lineno, literal.col_offset, byte_col=True)
    return start + match.end()


def transform_source(
    source: str,
    filename: str = "<string>",
    options: Optional[CompilerOptions] = None,
    metadata: Optional[Metadata] = None,
) -> str:
    """
    Replace marker calls in a Python module with compiled markup.

    Args:
        source: Python module source
        filename: Used in diagnostics
        options: Compiler options (default: from configuration)
        metadata: Element metadata (default: process-wide metadata)

    Returns:
        Transformed module source
    """
    return SourceTransformer(options=options, metadata=metadata).transform(source, filename).source


def output_path(path: Union[str, Path]) -> Path:
    """
    Derive the generated module path from a markup module path.

    Example:
        output_path("app/views.rsx.py")   # app/views.py
        output_path("app/views.pyrsx")    # app/views.py
    """
    path = Path(path)
    for suffix in SOURCE_SUFFIXES:
        if path.name.endswith(suffix):
            return path.with_name(path.name[:-len(suffix)] + ".py")
    raise ValueError(
        f"Cannot derive an output path for {path}: expected one of "
        f"{', '.join(SOURCE_SUFFIXES)}"
    )


def transform_file(
    path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
    transformer: Optional[SourceTransformer] = None,
) -> Path:
    """
    Transform one module and write the result.

    Args:
        path: Markup module (*.rsx.py or *.pyrsx)
        output: Destination (default: derived with output_path())
        transformer: Transformer to reuse across files

    Returns:
        Path written

    Raises:
        RsxError: If the module fails to transform; nothing is written
    """
    path = Path(path)
    destination = Path(output) if output is not None else output_path(path)
    if destination.resolve() == path.resolve():
        raise ValueError(f"Refusing to overwrite the input module {path}")

    transformer = transformer or SourceTransformer()
    result = transformer.transform(path.read_text(encoding="utf-8"), str(path))

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(result.source, encoding="utf-8")

    logger.info(
        "Transformed module",
        path=str(path),
        output=str(destination),
        invocations=len(result.compiled),
        warnings=len(result.warnings),
    )
    return destination


def collect_sources(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """Expand directories into the markup modules they contain."""
    sources: List[Path] = []
    for entry in paths:
        entry = Path(entry)
        if entry.is_dir():
            found = {
                candidate
                for suffix in SOURCE_SUFFIXES
                for candidate in entry.rglob(f"*{suffix}")
                if candidate.is_file()
            }
            sources.extend(sorted(found))
        else:
            sources.append(entry)
    return sources


def build(
    paths: Iterable[Union[str, Path]],
    options: Optional[CompilerOptions] = None,
) -> List[Path]:
    """
    Transform every markup module under the given paths.

    Args:
        paths: Files and/or directories
        options: Compiler options (default: from configuration)

    Returns:
        Paths written, in processing order

    Raises:
        RsxError: On the first module that fails; modules already written
            are kept
    """
    transformer = SourceTransformer(options=options)
    written: List[Path] = []

    for source in collect_sources(paths):
        try:
            written.append(transform_file(source, transformer=transformer))
        except RsxError as e:
            logger.error("Transform failed", exception=e, path=str(source))
            raise

    logger.info("Build finished", modules=len(written))
    return written
