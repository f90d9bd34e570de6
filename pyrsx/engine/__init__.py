"""
pyrsx Engine Module
===================

The markup compiler:
- RSX Parser: Parses markup into an Element tree
- Segmenter: Splits text runs into literal and interpolated parts
- Classifier: Attribute, property or event binding per prop
- Capture Analyzer: Free variables and clone bindings of handlers
- RSX Compiler: Lowers the tree into builder calls
- Transform: Build step over Python modules
- Components: The @component decorator

Names are resolved on first access, so importing the decorator from
pyrsx.engine.components doesn't load the parser and the compiler.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyrsx.engine.nodes import Element, Expression, Node, NodeType, Prop, Text
    from pyrsx.engine.rsx_parser import Cursor, RsxParser, parse_markup
    from pyrsx.engine.segmenter import TextSegmenter, segment_text
    from pyrsx.engine.classifier import Binding, EVENT_TYPES, classify, event_type
    from pyrsx.engine.metadata import Metadata, get_metadata, load_metadata, set_metadata
    from pyrsx.engine.captures import CaptureAnalysis, CaptureAnalyzer
    from pyrsx.engine.rsx_compiler import CompiledMarkup, CompilerOptions, RsxCompiler, compile_markup
    from pyrsx.engine.transform import (
        SourceTransformer,
        TransformResult,
        build,
        transform_file,
        transform_source,
    )
    from pyrsx.engine.components import Reactive, component

_imports = {
    # Nodes
    "Element": "pyrsx.engine.nodes",
    "Expression": "pyrsx.engine.nodes",
    "Node": "pyrsx.engine.nodes",
    "NodeType": "pyrsx.engine.nodes",
    "Prop": "pyrsx.engine.nodes",
    "Text": "pyrsx.engine.nodes",
    # Parser
    "Cursor": "pyrsx.engine.rsx_parser",
    "RsxParser": "pyrsx.engine.rsx_parser",
    "parse_markup": "pyrsx.engine.rsx_parser",
    "TextSegmenter": "pyrsx.engine.segmenter",
    "segment_text": "pyrsx.engine.segmenter",
    # Classifier and metadata
    "Binding": "pyrsx.engine.classifier",
    "EVENT_TYPES": "pyrsx.engine.classifier",
    "classify": "pyrsx.engine.classifier",
    "event_type": "pyrsx.engine.classifier",
    "Metadata": "pyrsx.engine.metadata",
    "get_metadata": "pyrsx.engine.metadata",
    "load_metadata": "pyrsx.engine.metadata",
    "set_metadata": "pyrsx.engine.metadata",
    # Compiler
    "CaptureAnalysis": "pyrsx.engine.captures",
    "CaptureAnalyzer": "pyrsx.engine.captures",
    "CompiledMarkup": "pyrsx.engine.rsx_compiler",
    "CompilerOptions": "pyrsx.engine.rsx_compiler",
    "RsxCompiler": "pyrsx.engine.rsx_compiler",
    "compile_markup": "pyrsx.engine.rsx_compiler",
    # Transform
    "SourceTransformer": "pyrsx.engine.transform",
    "TransformResult": "pyrsx.engine.transform",
    "build": "pyrsx.engine.transform",
    "transform_file": "pyrsx.engine.transform",
    "transform_source": "pyrsx.engine.transform",
    # Components
    "Reactive": "pyrsx.engine.components",
    "component": "pyrsx.engine.components",
}


def __getattr__(name: str):
    """Lazy loading of engine names."""
    if name in _imports:
        module = importlib.import_module(_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'pyrsx.engine' has no attribute '{name}'")


__all__ = list(_imports)
