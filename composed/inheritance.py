"""
Polymorphic (allOf) data classes.

A polymorphic hierarchy is rooted in a data class that declares the discriminator property;
each subclass registers itself under a discriminator value (its type id). Subclasses can be
bases of further subclasses:

    @polymorphic("pet_type")
    @datacls
    class GrandparentAnimal:
        pet_type: str | None

    @subtype
    @datacls
    class ParentPet(GrandparentAnimal):
        pass

    @subtype
    @datacls
    class ChildCat(ParentPet):
        name: str | None

Decoding any class of the hierarchy resolves the class identified by the type id, within
that class's subtree, and decodes the value as that class. The discriminator is mandatory.
"""

import functools

from composed.codec import DataclassJSONCodec, EncodeError, JSONCodec, JSONType, PT
from composed.dispatch import resolve_subtype
from composed.error import NullNotAllowedError
from composed.registry import registry
from composed.types import strip_annotations
from composed.validation import validate_arguments
from dataclasses import is_dataclass
from typing import Any


@validate_arguments
def polymorphic(property_name: str, *, type_id: str | None = None):
    """
    Decorate a data class to be the root of a polymorphic hierarchy.

    Parameters:
    • property_name: name of the discriminator property
    • type_id: discriminator value that identifies the root class  [class name]

    The strictness of the root data class is inherited by subclasses that do not declare
    their own.
    """

    def decorator(cls):
        if not is_dataclass(cls):
            raise TypeError(f"{cls} must be a data class")
        cls.__discriminator__ = property_name
        registry.register_subtype(cls, type_id or cls.__name__, property_name)
        return cls

    return decorator


def subtype(cls: type = None, *, type_id: str | None = None):
    """
    Decorate a subclass of a polymorphic data class to register it in the hierarchy.

    Parameters:
    • type_id: discriminator value that identifies the class  [class name]

    The decorator can be applied with or without arguments.
    """

    if cls is None:
        return functools.partial(subtype, type_id=type_id)

    property_name = getattr(cls, "__discriminator__", None)
    if property_name is None or not is_dataclass(cls):
        raise TypeError(f"{cls} must be a data class that extends a polymorphic data class")
    registry.register_subtype(cls, type_id or cls.__name__, property_name)
    return cls


@functools.cache
def _codec(python_type: type) -> DataclassJSONCodec:
    return DataclassJSONCodec(python_type)


class PolymorphicJSONCodec(JSONCodec[PT]):
    """
    JSON codec for polymorphic data classes. A value is decoded as the subclass identified by
    its discriminator value. A value is encoded as its own class; the discriminator property
    is set to the type id of its class if the value does not set it.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_dataclass(python_type) and hasattr(python_type, "__discriminator__")

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        result = _codec(type(value)).encode(value)
        if type(value) in registry:
            spec = registry.get(type(value)).discriminator
            for type_id, candidate in spec.mapping.items():
                if candidate.python_type is type(value):
                    result.setdefault(spec.property_name, type_id)
        return result

    def decode(self, value: JSONType) -> PT:
        descriptor = registry.get(self.raw_type)
        if value is None:
            raise NullNotAllowedError(descriptor.name)
        candidate = resolve_subtype(descriptor, value)
        return _codec(candidate.python_type).decode(value)
