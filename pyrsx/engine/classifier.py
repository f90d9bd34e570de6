"""
pyrsx Attribute Classifier
==========================

Decides how a prop on a native element is applied:

    Binding.ATTRIBUTE  element.attribute(name, value)
    Binding.PROPERTY   element.property(name, value)
    Binding.EVENT      element.event(type, handler)

Rules, first match wins:
    1. spellcheck, draggable, translate and form are always attributes;
       their DOM properties are booleans (or read-only for form), so
       setting "false" through them would be coerced to true
    2. <input list>, <textarea type> and width/height on embedded content
       (img, video, canvas, source) must be set as attributes
    3. on<event> with a string value is a native inline handler: attribute
    4. on<event> with any other value is an event binding
    5. anything the metadata table lists for the tag is a property,
       everything else an attribute
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Optional, Union

from pyrsx.engine.metadata import Metadata, get_metadata
from pyrsx.engine.nodes import Expression


class Binding(Enum):
    """How a prop is applied to a native element."""
    ATTRIBUTE = "attribute"
    PROPERTY = "property"
    EVENT = "event"


ALWAYS_ATTRIBUTES = frozenset({"spellcheck", "draggable", "translate", "form"})

TAG_ATTRIBUTES = {
    "input": frozenset({"list"}),
    "textarea": frozenset({"type"}),
    "img": frozenset({"width", "height"}),
    "video": frozenset({"width", "height"}),
    "canvas": frozenset({"width", "height"}),
    "source": frozenset({"width", "height"}),
}

NATIVE_EVENT = re.compile(r"^on[a-z]")

GENERIC_EVENT = "Event"

# Handler prop name -> event type of the runtime's events namespace
EVENT_TYPES: Dict[str, str] = {
    "onclick": "Click",
    "onmousedown": "MouseDown",
    "onmouseup": "MouseUp",
    "onmousemove": "MouseMove",
    "onmouseenter": "MouseEnter",
    "onmouseleave": "MouseLeave",
    "ondblclick": "DoubleClick",
    "oncontextmenu": "ContextMenu",
    "onpointerover": "PointerOver",
    "onpointerenter": "PointerEnter",
    "onpointerdown": "PointerDown",
    "onpointermove": "PointerMove",
    "onpointerup": "PointerUp",
    "onpointercancel": "PointerCancel",
    "onpointerout": "PointerOut",
    "onpointerleave": "PointerLeave",
    "ongotpointercapture": "GotPointerCapture",
    "onlostpointercapture": "LostPointerCapture",
    "onkeydown": "KeyDown",
    "onkeyup": "KeyUp",
    "onfocus": "Focus",
    "onblur": "Blur",
    "onfocusin": "FocusIn",
    "onfocusout": "FocusOut",
    "ondragstart": "DragStart",
    "ondrag": "Drag",
    "ondragend": "DragEnd",
    "ondragover": "DragOver",
    "ondragenter": "DragEnter",
    "ondragleave": "DragLeave",
    "ondrop": "Drop",
    "oninput": "Input",
    "onbeforeinput": "BeforeInput",
    "onanimationstart": "AnimationStart",
    "onanimationiteration": "AnimationIteration",
    "onanimationcancel": "AnimationCancel",
    "onanimationend": "AnimationEnd",
    "onwheel": "Wheel",
    "onload": "Load",
    "onerror": "Error",
    "onscroll": "Scroll",
    "onscrollend": "ScrollEnd",
    "onsubmit": "Submit",
    "onresize": "Resize",
    "onselectionchange": "SelectionChange",
    "onchange": "Change",
    "ontouchcancel": "TouchCancel",
    "ontouchend": "TouchEnd",
    "ontouchmove": "TouchMove",
    "ontouchstart": "TouchStart",
}


def is_event_name(name: str) -> bool:
    """Check if a prop name looks like a native event handler (on + lowercase)."""
    return NATIVE_EVENT.match(name) is not None


def event_type(name: str) -> str:
    """Resolve a handler prop name to its event type."""
    return EVENT_TYPES.get(name, GENERIC_EVENT)


def classify(
    tag: str,
    name: str,
    value: Union[Expression, bool],
    metadata: Optional[Metadata] = None,
) -> Binding:
    """
    Classify a prop of a native element.

    Args:
        tag: Element tag name
        name: Prop name
        value: Prop value, or a flag telling whether it is a string literal
        metadata: Attribute table (default: process-wide metadata)

    Returns:
        Binding
    """
    tag = tag.lower()
    is_string = value if isinstance(value, bool) else value.is_string_literal

    if name in ALWAYS_ATTRIBUTES:
        return Binding.ATTRIBUTE

    if name in TAG_ATTRIBUTES.get(tag, ()):
        return Binding.ATTRIBUTE

    if is_event_name(name):
        return Binding.ATTRIBUTE if is_string else Binding.EVENT

    metadata = metadata or get_metadata()
    if metadata.is_property(name, tag):
        return Binding.PROPERTY
    return Binding.ATTRIBUTE
