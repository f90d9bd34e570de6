"""Tests for the attribute/property/event decision table."""

import pytest

from pyrsx.engine.classifier import (
    ALWAYS_ATTRIBUTES,
    EVENT_TYPES,
    Binding,
    classify,
    event_type,
    is_event_name,
)
from pyrsx.engine.metadata import Metadata
from pyrsx.engine.nodes import Expression


HANDLER = Expression("lambda e: None")
STRING = Expression('"text"')
NUMBER = Expression("3")


class TestClassify:

    def test_input_list_is_attribute(self, metadata):
        assert classify("input", "list", STRING, metadata) is Binding.ATTRIBUTE
        assert classify("input", "list", Expression("options_id"), metadata) is Binding.ATTRIBUTE

    def test_input_value_is_property(self, metadata):
        assert classify("input", "value", Expression("name"), metadata) is Binding.PROPERTY

    def test_div_handler_is_event(self, metadata):
        assert classify("div", "onclick", HANDLER, metadata) is Binding.EVENT

    def test_inline_handler_string_is_attribute(self, metadata):
        assert classify("div", "onclick", Expression('"alert(1)"'), metadata) is Binding.ATTRIBUTE

    @pytest.mark.parametrize("name", sorted(ALWAYS_ATTRIBUTES))
    def test_enumerated_attributes_never_properties(self, metadata, name):
        assert classify("input", name, Expression("flag"), metadata) is Binding.ATTRIBUTE

    @pytest.mark.parametrize("tag, name", [
        ("textarea", "type"),
        ("img", "width"),
        ("img", "height"),
        ("video", "width"),
        ("canvas", "height"),
        ("source", "width"),
    ])
    def test_tag_overrides(self, metadata, tag, name):
        assert classify(tag, name, NUMBER, metadata) is Binding.ATTRIBUTE

    def test_width_elsewhere_follows_table(self, metadata):
        assert classify("iframe", "width", NUMBER, metadata) is Binding.PROPERTY

    def test_unlisted_attribute(self, metadata):
        assert classify("div", "class", STRING, metadata) is Binding.ATTRIBUTE
        assert classify("div", "value", Expression("v"), metadata) is Binding.ATTRIBUTE

    def test_uppercase_on_is_not_an_event(self, metadata):
        assert classify("div", "onClick", HANDLER, metadata) is Binding.ATTRIBUTE

    def test_bool_value_shape(self, metadata):
        assert classify("div", "onclick", True, metadata) is Binding.ATTRIBUTE
        assert classify("div", "onclick", False, metadata) is Binding.EVENT

    def test_f_string_counts_as_string(self, metadata):
        assert classify("div", "onclick", Expression('f"go({n})"'), metadata) is Binding.ATTRIBUTE

    def test_tag_is_case_insensitive(self, metadata):
        assert classify("INPUT", "value", Expression("v"), metadata) is Binding.PROPERTY

    def test_custom_metadata(self):
        table = Metadata(properties={"checked": frozenset({"x-toggle"})}, elements=frozenset())
        assert classify("x-toggle", "checked", Expression("on"), table) is Binding.PROPERTY
        assert classify("input", "checked", Expression("on"), table) is Binding.ATTRIBUTE

    def test_uses_process_metadata_by_default(self):
        assert classify("input", "value", Expression("v")) is Binding.PROPERTY


class TestEventTypes:

    @pytest.mark.parametrize("name, expected", [
        ("onclick", "Click"),
        ("onmousedown", "MouseDown"),
        ("ondblclick", "DoubleClick"),
        ("onkeyup", "KeyUp"),
        ("ontouchstart", "TouchStart"),
        ("oninput", "Input"),
    ])
    def test_known_events(self, name, expected):
        assert event_type(name) == expected

    def test_unknown_event_falls_back(self):
        assert event_type("onmadeup") == "Event"

    def test_all_table_keys_are_event_names(self):
        assert all(is_event_name(name) for name in EVENT_TYPES)
