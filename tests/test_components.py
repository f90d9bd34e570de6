"""Tests for the @component decorator."""

import dataclasses
import sys

import pytest

from pyrsx.core.errors import ConfigurationError
from pyrsx.engine.components import Reactive, component, is_reactive, resolve_factory
from pyrsx.engine.rsx_compiler import CompilerOptions, compile_markup


class Box:
    """Stand-in reactive value for tests."""

    def __init__(self, value):
        self.value = value

    def signal(self):
        return self.value


@component
def greeting(text: Reactive[str], size: int = 1):
    return (text, size)


@component(reactive=Box)
def counter(count: Reactive[int], label: str):
    return (count, label)


class TestDecorator:

    def test_wrapper_is_pascal_case_and_bound(self):
        assert greeting.__name__ == "Greeting"
        assert sys.modules[__name__].Greeting is greeting
        assert sys.modules[__name__].GreetingProps is greeting.Props

    def test_props_dataclass(self):
        props = greeting.Props(text="hi")
        assert type(props).__name__ == "GreetingProps"
        assert props.size == 1
        with pytest.raises(dataclasses.FrozenInstanceError):
            props.size = 2

    def test_props_are_keyword_only(self):
        with pytest.raises(TypeError):
            greeting.Props("hi")

    def test_call_with_props(self):
        assert greeting(greeting.Props(text="hi", size=2)) == ("hi", 2)

    def test_call_with_keywords(self):
        assert greeting(text="hi") == ("hi", 1)

    def test_reactive_parameters_detected(self):
        assert greeting.reactive_params == ("text",)
        assert counter.reactive_params == ("count",)

    def test_original_function_kept(self):
        assert greeting.render("a", 3) == ("a", 3)


class TestReactiveConversion:

    def test_plain_value_is_wrapped(self):
        count, label = counter(counter.Props(count=3, label="clicks"))
        assert isinstance(count, Box)
        assert count.value == 3
        assert label == "clicks"

    def test_reactive_value_passes_through(self):
        box = Box(5)
        count, _ = counter(count=box, label="x")
        assert count is box

    def test_without_factory_values_pass_through(self):
        assert greeting(text="plain")[0] == "plain"

    def test_factory_from_config(self, fresh_config):
        fresh_config.set("components.reactive_factory", f"{__name__}:Box")
        text, _ = greeting(text="hi")
        assert isinstance(text, Box)

    def test_bad_factory_path(self, fresh_config):
        fresh_config.set("components.reactive_factory", "nowhere.module:Thing")
        with pytest.raises(ConfigurationError, match="cannot import reactive factory"):
            greeting(text="hi")

    def test_resolve_dotted_path(self):
        assert resolve_factory(f"{__name__}.Box") is Box

    def test_is_reactive(self):
        assert is_reactive(Reactive[int])
        assert is_reactive(Reactive)
        assert not is_reactive(int)


class TestInvalidUse:

    def test_var_args_rejected(self):
        with pytest.raises(TypeError, match="plain or keyword-only"):
            @component
            def bad(*children):
                return children

    def test_wrong_props_type(self):
        with pytest.raises(TypeError, match="expects GreetingProps"):
            greeting(counter.Props(count=1, label="x"))

    def test_props_and_keywords(self):
        with pytest.raises(TypeError, match="not both"):
            greeting(greeting.Props(text="a"), size=2)

    def test_custom_name(self):
        @component(name="Fancy")
        def plain_button(label: str):
            return label

        assert plain_button.__name__ == "Fancy"
        assert plain_button.Props.__name__ == "FancyProps"


class TestCompiledInvocation:

    def test_markup_calls_component(self, metadata):
        code = compile_markup(
            '<Greeting text={name} size=2/>', options=CompilerOptions(), metadata=metadata
        ).code
        assert eval(code, {"Greeting": greeting, "name": "Ada"}) == ("Ada", 2)
