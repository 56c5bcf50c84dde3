"""Module to inspect types and type hints."""

import types
import typing

from types import NoneType
from typing import Any


def split_annotated(type_hint: Any) -> tuple[Any, tuple[Any, ...]]:
    """Return a tuple separating the python type and annotations."""
    if not typing.get_origin(type_hint) is typing.Annotated:
        return type_hint, ()
    args = typing.get_args(type_hint)
    return args[0], args[1:]


def strip_annotations(type_hint: Any) -> Any:
    """Return the python type of a type hint, with any Annotated wrapper removed."""
    return split_annotated(type_hint)[0]


def is_union(type_hint: Any) -> bool:
    """Return if the specified type hint is a union type."""
    return typing.get_origin(strip_annotations(type_hint)) in {types.UnionType, typing.Union}


def is_optional(type_hint: Any) -> bool:
    """
    Return if the specified type is optional.

    A type is optional if its type hint matches any of the following:
    • None
    • Optional[...]
    • Union[..., None]
    • ... | None
    """
    python_type = strip_annotations(type_hint)
    if not is_union(python_type):
        return python_type is NoneType
    for arg in typing.get_args(python_type):
        if is_optional(arg):
            return True
    return False


def is_subclass(cls: Any, class_or_tuple: type | tuple[type, ...]) -> bool:
    """A more forgiving issubclass."""
    try:
        return issubclass(cls, class_or_tuple)
    except TypeError:
        return False


def is_instance(obj: Any, class_or_tuple: type | tuple[type, ...]) -> bool:
    """A more forgiving isinstance."""
    try:
        return isinstance(obj, class_or_tuple)
    except TypeError:
        return False


def type_name(type_hint: Any) -> str:
    """
    Return a name for a type hint, suitable for use in error messages and as a default
    discriminator value. Classes are named by their class name; None by "null".
    """
    python_type = strip_annotations(type_hint)
    if python_type is NoneType:
        return "null"
    if isinstance(python_type, type) and not typing.get_origin(python_type):
        return python_type.__name__
    return str(python_type)
