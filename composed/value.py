"""
Composed value module.

A composed schema is represented by a subclass of ComposedValue, decorated with `one_of` or
`any_of` to declare its candidates:

    @one_of(AppleReq, BananaReq, nullable=True)
    class FruitReq(ComposedValue):
        pass

A composed value holds exactly one instance of a candidate type, or none if null. It is
transparent when encoded: its JSON representation is that of its instance.
"""

import json

from collections.abc import Mapping
from composed.codec import DecodeError, EncodeError, JSONCodec, JSONType, PT
from composed.dispatch import resolve
from composed.error import InvalidInstanceError
from composed.registry import registry
from composed.schema import (
    DEFAULT_LOOKUP,
    DEFAULT_ON_MISS,
    CompositionDescriptor,
    DiscriminatorSpec,
    Fallback,
    Kind,
    TypeDescriptor,
)
from composed.types import is_optional, is_subclass, strip_annotations
from composed.validation import validate_arguments
from typing import Any


def _member(descriptor: CompositionDescriptor, instance: Any, seen=None):
    """
    Return the candidate through which an instance is a member of a composed schema and the
    instance as the composed value holds it, or None if the instance is not a member. An
    instance that is a member through a nested composed schema is wrapped in the nested
    composed value.
    """
    seen = (seen or set()) | {descriptor.python_type}
    targets = list(descriptor.candidates)
    if descriptor.discriminator:
        targets.extend(descriptor.discriminator.mapping.values())
    for candidate in targets:
        if candidate.python_type is descriptor.python_type:
            continue
        if candidate.accepts(instance):
            return candidate, instance
        nested = candidate.python_type
        if is_subclass(nested, ComposedValue) and nested in registry and nested not in seen:
            member = _member(registry.get(nested), instance, seen)
            if member is not None:
                return candidate, nested._resolved(*member)
    return None


class ComposedValue:
    """
    Base class for composed values.

    Attributes:
    • instance: the instance of the candidate type, or None

    The type of the instance is validated to be a candidate of the composed schema,
    including candidates of nested composed schemas. Composed values support structural
    pattern matching on their instance:

        match fruit:
            case FruitReq(AppleReq() as apple): ...
            case FruitReq(BananaReq() as banana): ...
    """

    __slots__ = ("_instance", "_variant")
    __match_args__ = ("instance",)

    def __init__(self, instance: Any = None):
        self.set_instance(instance)

    @classmethod
    def descriptor(cls) -> CompositionDescriptor:
        """Return the descriptor of the composed schema."""
        return registry.get(cls)

    @classmethod
    def _resolved(cls, candidate: TypeDescriptor | None, instance: Any):
        result = cls.__new__(cls)
        result._instance = instance
        result._variant = candidate.name if candidate and instance is not None else None
        return result

    def get_instance(self) -> Any:
        """Return the instance of the candidate type, or None if the value is null."""
        return self._instance

    def set_instance(self, instance: Any) -> None:
        """
        Set the instance of the candidate type. Raises InvalidInstanceError if the instance
        is not of a candidate type, or is None and the composed schema is not nullable.
        """
        descriptor = self.descriptor()
        member = _member(descriptor, instance) if instance is not None else None
        if member is None and (instance is not None or not descriptor.nullable):
            raise InvalidInstanceError(
                descriptor.name, [c.name for c in descriptor.candidates]
            )
        candidate, self._instance = member or (None, None)
        self._variant = candidate.name if candidate else None

    instance = property(get_instance, set_instance)

    @property
    def kind(self) -> Kind:
        """Kind of the composed schema."""
        return self.descriptor().kind

    @property
    def variant(self) -> str | None:
        """Name of the candidate that the instance is a member of, or None if null."""
        return self._variant

    @classmethod
    def decode(cls, value: JSONType):
        """Decode a composed value from its JSON object model representation."""
        return decode(cls, value)

    def encode(self) -> JSONType:
        """Encode the composed value into its JSON object model representation."""
        return encode(self)

    @classmethod
    def from_json(cls, text: str | bytes):
        """Decode a composed value from a JSON document."""
        try:
            value = json.loads(text)
        except ValueError as ve:
            raise DecodeError(f"invalid JSON: {ve}") from ve
        return cls.decode(value)

    def to_json(self) -> str:
        """Encode the composed value into a JSON document."""
        return json.dumps(self.encode())

    def __eq__(self, other: Any) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._instance == other._instance

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._instance!r})"


def decode(python_type: Any, value: JSONType) -> Any:
    """
    Decode a raw JSON value as a registered composed type.

    Parameters:
    • python_type: composed value class or polymorphic class
    • value: raw JSON value to decode

    A composed value class decodes to an instance of the class; a polymorphic (allOf) class
    decodes to an instance of the subtype identified by the discriminator value.
    """
    descriptor = registry.get(python_type)
    if descriptor.kind is Kind.ALL_OF:
        return JSONCodec.get(python_type).decode(value)
    candidate, instance = resolve(descriptor, value)
    return python_type._resolved(candidate, instance)


def encode(value: Any) -> JSONType:
    """
    Encode a value into its raw JSON representation. A composed value is encoded as its
    instance; a null composed value is encoded as None.
    """
    if isinstance(value, ComposedValue):
        value = value.get_instance()
    try:
        codec = JSONCodec.get(type(value))
    except TypeError as te:
        raise EncodeError(f"cannot encode value of type {type(value).__name__}") from te
    return codec.encode(value)


def _nullable(python_type: Any) -> bool:
    if is_optional(python_type):
        return True
    if is_subclass(python_type, ComposedValue) and python_type in registry:
        return registry.get(python_type).nullable
    return False


def _target(target: Any, descriptors: tuple[TypeDescriptor, ...]) -> TypeDescriptor:
    if isinstance(target, TypeDescriptor):
        return target
    for descriptor in descriptors:
        if descriptor.python_type is target:
            return descriptor
    return TypeDescriptor.of(target)


def _compose(
    kind: Kind,
    candidates: tuple[Any, ...],
    nullable: bool,
    discriminator: str | None,
    mapping: Mapping[str, Any] | None,
    lookup: bool,
    on_miss: Fallback,
    name: str | None,
):
    if not candidates:
        raise TypeError(f"{kind} requires at least one candidate")

    def decorator(cls):
        if not is_subclass(cls, ComposedValue):
            raise TypeError(f"{cls} must be a subclass of ComposedValue")
        descriptors = tuple(TypeDescriptor.of(c) for c in candidates)
        spec = None
        if discriminator is not None:
            targets = mapping if mapping is not None else {d.name: d for d in descriptors}
            spec = DiscriminatorSpec(
                property_name=discriminator,
                mapping={tag: _target(t, descriptors) for tag, t in targets.items()},
                lookup=lookup,
                on_miss=on_miss,
            )
        registry.register(
            CompositionDescriptor(
                name=name or cls.__name__,
                python_type=cls,
                kind=kind,
                candidates=descriptors,
                nullable=nullable or any(_nullable(d.python_type) for d in descriptors),
                discriminator=spec,
            )
        )
        return cls

    return decorator


@validate_arguments
def one_of(
    *candidates: Any,
    nullable: bool = False,
    discriminator: str | None = None,
    mapping: Mapping[str, Any] | None = None,
    lookup: bool = DEFAULT_LOOKUP,
    on_miss: Fallback = DEFAULT_ON_MISS,
    name: str | None = None,
):
    """
    Decorate a ComposedValue subclass to register it as a oneOf composed schema. A value
    must match exactly one candidate.

    Parameters:
    • candidates: candidate types, in declared order
    • nullable: whether null is a valid value
    • discriminator: name of the discriminator property
    • mapping: discriminator values mapped to types  [candidate names]
    • lookup: resolve candidates through the discriminator before matching values
    • on_miss: policy when a discriminator value is absent or not mapped
    • name: name of the composed schema  [class name]

    The composed schema is also nullable if any candidate is None or a nullable composed
    type.
    """
    return _compose(
        Kind.ONE_OF, candidates, nullable, discriminator, mapping, lookup, on_miss, name
    )


@validate_arguments
def any_of(
    *candidates: Any,
    nullable: bool = False,
    discriminator: str | None = None,
    mapping: Mapping[str, Any] | None = None,
    lookup: bool = DEFAULT_LOOKUP,
    on_miss: Fallback = DEFAULT_ON_MISS,
    name: str | None = None,
):
    """
    Decorate a ComposedValue subclass to register it as an anyOf composed schema. A value
    resolves to the first candidate, in declared order, that it matches. Parameters are as
    specified for the one_of decorator.
    """
    return _compose(
        Kind.ANY_OF, candidates, nullable, discriminator, mapping, lookup, on_miss, name
    )


class ComposedJSONCodec(JSONCodec[PT]):
    """JSON codec for composed values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, ComposedValue)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        return encode(value)

    def decode(self, value: JSONType) -> PT:
        return decode(self.raw_type, value)
