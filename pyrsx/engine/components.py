"""
pyrsx Components
================

Turns a plain function into a component the compiler can invoke.

    @component
    def greeting(text: Reactive[str], size: int = 1):
        return rsx('<h1 class={f"size-{size}"}>Hello {text}!</h1>')

defines:

    GreetingProps        frozen dataclass with fields text and size
    Greeting(props)      calls greeting(text=..., size=...)
    Greeting.Props       GreetingProps

Greeting is also bound in the defining module, so markup in that module
can write <Greeting text={name} size=2/>, which compiles to
Greeting(Greeting.Props(text=name, size=2)).

Parameters annotated Reactive[T] accept either a reactive value or a
plain T. Plain values (anything without the stream accessor, "signal" by
default) are converted with the reactive factory before the function is
called. The factory is the `reactive` argument of the decorator, or the
object named by the components.reactive_factory configuration key
("package.module:Name").
"""

from __future__ import annotations

import functools
import importlib
import inspect
import sys
from dataclasses import make_dataclass, field as dataclass_field
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, get_origin, get_type_hints

from pyrsx.core.config import get_config
from pyrsx.core.errors import ConfigurationError
from pyrsx.utils.helpers import pascal_case
from pyrsx.utils.logger import get_logger


T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger("pyrsx.components")


class Reactive(Generic[T]):
    """
    Annotation marking a component parameter as a reactive value of T.

    Only used in annotations; values are never instances of Reactive.
    """


def is_reactive(annotation: Any) -> bool:
    """Check if an annotation is Reactive[T] (or bare Reactive)."""
    return annotation is Reactive or get_origin(annotation) is Reactive


def resolve_factory(path: str) -> Callable[[Any], Any]:
    """
    Import a reactive factory from "package.module:Name" or "package.module.Name".

    Raises:
        ConfigurationError: If the object can't be imported or isn't callable
    """
    module_name, _, attribute = path.partition(":") if ":" in path else path.rpartition(".")
    if not module_name or not attribute:
        raise ConfigurationError(f"invalid reactive factory path {path!r}")

    try:
        factory = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"cannot import reactive factory {path!r}: {e}") from e

    if not callable(factory):
        raise ConfigurationError(f"reactive factory {path!r} is not callable")
    return factory


class ComponentDefinition:
    """Props dataclass and parameter info derived from a component function."""

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None) -> None:
        self.func = func
        self.name = name or pascal_case(func.__name__)
        self.reactive: List[str] = []

        try:
            hints = get_type_hints(func)
        except NameError as e:
            raise TypeError(f"cannot resolve annotations of {func.__qualname__}: {e}") from e

        fields: List[Tuple[str, Any, Any]] = []
        for param in inspect.signature(func).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD, param.POSITIONAL_ONLY):
                raise TypeError(
                    f"component {func.__qualname__} parameter '{param.name}' must be "
                    "a plain or keyword-only parameter"
                )

            annotation = hints.get(param.name, Any)
            if is_reactive(annotation):
                self.reactive.append(param.name)

            if param.default is param.empty:
                fields.append((param.name, annotation, dataclass_field()))
            else:
                fields.append((param.name, annotation, dataclass_field(default=param.default)))

        self.props = make_dataclass(f"{self.name}Props", fields, frozen=True, kw_only=True)
        self.props.__module__ = func.__module__
        self.props.__qualname__ = f"{self.name}Props"

    def arguments(self, props: Any, factory: Optional[Callable[[Any], Any]], accessor: str) -> Dict[str, Any]:
        """Unpack props into call arguments, converting reactive parameters."""
        arguments = {name: getattr(props, name) for name in self.props.__dataclass_fields__}
        if factory is None:
            return arguments

        for name in self.reactive:
            value = arguments[name]
            if not hasattr(value, accessor):
                arguments[name] = factory(value)
        return arguments


def component(
    func: Optional[F] = None,
    *,
    reactive: Optional[Callable[[Any], Any]] = None,
    name: Optional[str] = None,
) -> Any:
    """
    Declare a component.

    Args:
        func: Component function, returning a builder
        reactive: Factory converting plain values for Reactive[T] parameters
        name: Component name (default: PascalCase of the function name)

    Returns:
        The component callable, taking a Props instance (or keyword args)

    Example:
        @component
        def card(title: str, open: Reactive[bool] = False):
            ...

        @component(reactive=Mutable)
        def counter(count: Reactive[int]):
            ...
    """
    def decorator(func: F) -> Any:
        definition = ComponentDefinition(func, name)
        props_type = definition.props

        @functools.wraps(func)
        def wrapper(props: Any = None, **kwargs: Any) -> Any:
            if props is None:
                props = props_type(**kwargs)
            elif kwargs:
                raise TypeError(f"{definition.name}() takes props or keyword arguments, not both")
            elif not isinstance(props, props_type):
                raise TypeError(
                    f"{definition.name}() expects {props_type.__name__}, "
                    f"got {type(props).__name__}"
                )

            factory = reactive
            if factory is None and definition.reactive:
                path = get_config().get("components.reactive_factory")
                factory = resolve_factory(path) if path else None
            accessor = get_config().get_str("compiler.stream_accessor", "signal")

            return func(**definition.arguments(props, factory, accessor))

        wrapper.__name__ = definition.name
        wrapper.__qualname__ = definition.name
        wrapper.Props = props_type  # type: ignore[attr-defined]
        wrapper.render = func  # type: ignore[attr-defined]
        wrapper.reactive_params = tuple(definition.reactive)  # type: ignore[attr-defined]

        module = sys.modules.get(func.__module__)
        if module is not None:
            setattr(module, definition.name, wrapper)
            setattr(module, props_type.__name__, props_type)

        logger.debug(
            "Registered component",
            component=definition.name,
            props=len(props_type.__dataclass_fields__),
            reactive=len(definition.reactive),
        )
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
