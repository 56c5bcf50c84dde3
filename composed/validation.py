"""
Module that validates values against type hints.

Validation is structural: a value is valid if it is an instance of the type, and for data
classes and collections, if its members are valid instances of their declared types. Value
constraints (minimum, pattern, length, ...) are not validated.
"""

import dataclasses
import inspect
import types
import typing
import wrapt

from collections.abc import Callable, Iterable, Mapping
from composed.types import is_instance, is_subclass, strip_annotations
from contextlib import contextmanager
from types import NoneType
from typing import Any


class ValidationError(ValueError):
    """Error raised when validation fails."""

    __slots__ = {"message", "path"}

    def __init__(self, message: str | None = None, path: list[str | int] | None = None):
        self.message = message
        self.path = path

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, {self.path!r})"

    def __str__(self):
        result = []
        if self.message is not None:
            result.append(str(self.message))
        if self.path:
            result.append(f"({'.'.join((str(a) for a in self.path))})")
        return " ".join(result)


@contextmanager
def validation_error_path(segment: Any):
    try:
        yield
    except ValidationError as ve:
        ve.path = [segment, *(ve.path or [])]
        raise


def _validate_union(value, args):
    if value is None and NoneType in args:
        return
    for arg in args:
        try:
            return validate(value, arg)
        except ValidationError:
            continue
    raise ValidationError(f"expecting: union of {args}; received: {type(value)} ({value})")


def _validate_literal(value, args):
    for arg in args:
        if arg == value and type(arg) is type(value):
            return
    raise ValidationError(f"expecting one of: {args}; received: {value}")


def _validate_mapping(value, args):
    key_type, value_type = args or (Any, Any)
    for key, item in value.items():
        validate(key, key_type)
        with validation_error_path(key):
            validate(item, value_type)


def _validate_iterable(value, args):
    item_type = args[0] if args else Any
    for index, item in enumerate(value):
        with validation_error_path(index):
            validate(item, item_type)


def _validate_dataclass(value, python_type):
    hints = typing.get_type_hints(python_type, include_extras=True)
    for field in dataclasses.fields(python_type):
        with validation_error_path(field.name):
            validate(getattr(value, field.name), hints[field.name])


def validate(value: Any, type_hint: Any) -> NoneType:
    """Validate a value is a structurally valid instance of a type."""

    python_type = strip_annotations(type_hint)
    origin = typing.get_origin(python_type)
    args = typing.get_args(python_type)

    if python_type is Any:
        return

    match origin:
        case types.UnionType | typing.Union:
            return _validate_union(value, args)
        case typing.Literal:
            return _validate_literal(value, args)

    if python_type is None:
        python_type = NoneType

    # basic type validation
    if origin and not is_instance(value, origin):
        raise ValidationError(f"expecting {origin.__name__}; received {type(value)}")
    elif not origin and not is_instance(value, python_type):
        raise ValidationError(f"expecting {python_type}; received {type(value)}")
    elif python_type is int and is_instance(value, bool):  # bool is subclass of int
        raise ValidationError("expecting int; received bool")
    elif is_subclass(origin, Iterable) and is_instance(value, (str, bytes, bytearray)):
        raise ValidationError(f"expecting Iterable; received {type(value)}")

    # structured type validation
    if is_subclass(origin, Mapping):
        return _validate_mapping(value, args)
    elif is_subclass(origin, Iterable) and not is_subclass(origin, tuple):
        return _validate_iterable(value, args)
    elif dataclasses.is_dataclass(python_type):
        return _validate_dataclass(value, python_type)


def is_valid(value: Any, type_hint: Any) -> bool:
    """Return if a value is valid for specified type."""

    try:
        validate(value, type_hint)
    except ValidationError:
        return False
    return True


def validate_arguments(callable: Callable):
    """Decorate a function to validate its arguments using type annotations."""

    sig = inspect.signature(callable)

    positional_params = [
        p.name
        for p in sig.parameters.values()
        if p.kind in {p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD}
    ]

    def _validate(instance, args, kwargs):
        hints = typing.get_type_hints(callable, include_extras=True)
        if instance:
            args = (instance, *args)
        params = {
            **{p: v for p, v in zip(positional_params, args)},
            **kwargs,
        }
        for param in (p for p in sig.parameters.values() if p.name in params):
            if param.kind is param.VAR_POSITIONAL:
                continue
            if hint := hints.get(param.name):
                with validation_error_path(param.name):
                    validate(params[param.name], hint)

    @wrapt.decorator
    def decorator(wrapped, instance, args, kwargs):
        _validate(instance, args, kwargs)
        return wrapped(*args, **kwargs)

    return decorator(callable)
