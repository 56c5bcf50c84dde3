"""Data class module."""

import dataclasses
import functools
import typing

from composed.types import is_optional
from typing import Any


class _MISSING:
    pass


def _datacls_init(dc: Any):

    fields = {field.name: field for field in dataclasses.fields(dc) if field.init}

    def __init__(self, **kwargs):
        hints = {k: v for k, v in typing.get_type_hints(dc).items() if k in fields}
        for key in kwargs:
            if key not in fields:
                raise TypeError(f"__init__() got an unexpected keyword argument '{key}'")
        missing = [
            f"'{key}'"
            for key, hint in hints.items()
            if not is_optional(hint)
            and key not in kwargs
            and fields[key].default is dataclasses.MISSING
            and fields[key].default_factory is dataclasses.MISSING
        ]
        if missing:
            raise TypeError(
                f"__init__() missing {len(missing)} required keyword-only "
                + (
                    f"arguments: {', '.join(missing[0:-1])} and {missing[-1]}"
                    if len(missing) > 1
                    else f"argument: {missing[0]}"
                )
            )
        for key, field in fields.items():
            value = kwargs.get(key, _MISSING)
            if value is _MISSING:
                if field.default is not dataclasses.MISSING:
                    value = field.default
                elif field.default_factory is not dataclasses.MISSING:
                    value = field.default_factory()
                else:
                    value = None
            setattr(self, key, value)

    return __init__


def datacls(cls: type = None, *, init: bool = True, strict: bool | None = None, **kwargs):
    """
    Decorate a class to be a data class. This decorator wraps the dataclasses.dataclass
    decorator, with the following changes to the generated __init__ method:

    • initialization method only processes keyword arguments
    • fields (with default values or not) can be declared in any order
    • Optional[...] fields default to None if no default value is specified

    Parameters:
    • init: generate the keyword-only initialization method
    • strict: reject undeclared properties when decoding  [inherited, or False]

    A strict data class cannot be decoded from a JSON object that contains properties not
    declared as fields. A permissive data class ignores such properties, or captures them
    if it declares an `additional_properties: dict[str, Any] | None` field. If strict is not
    specified, it is inherited from the base data class.

    The decorator can be applied with or without arguments.
    """

    if cls is None:
        return functools.partial(datacls, init=init, strict=strict, **kwargs)

    dc = dataclasses.dataclass(cls, init=False, **kwargs)
    if init:
        dc.__init__ = _datacls_init(dc)
    dc.__strict__ = getattr(cls, "__strict__", False) if strict is None else strict
    return dc
