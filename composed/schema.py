"""
Descriptors of composed schemas.

A composed schema is described by a CompositionDescriptor: its kind (oneOf, anyOf or
allOf), its ordered candidate types and, optionally, a discriminator. Descriptors are
immutable; they are created once when a composed type is registered and never mutated.
"""

from collections.abc import Mapping
from composed.codec import DecodeError, JSONCodec
from composed.types import type_name
from composed.validation import is_valid
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any


class Kind(StrEnum):
    """Kind of composed schema."""

    ONE_OF = "oneOf"
    ANY_OF = "anyOf"
    ALL_OF = "allOf"


class Fallback(StrEnum):
    """Policy applied when a discriminator value cannot be resolved through its mapping."""

    MATCH = "match"  # fall through to matching values against candidates
    FAIL = "fail"  # fail with DiscriminatorUnresolvedError


# default configuration of discriminators
DEFAULT_LOOKUP = True
DEFAULT_ON_MISS = Fallback.MATCH


@dataclass(frozen=True, slots=True)
class Trial:
    """
    Outcome of decoding a value as a single candidate type.

    Attributes:
    • ok: whether the value was decoded
    • value: the decoded value, if ok
    • reason: why the value could not be decoded, if not ok
    """

    ok: bool
    value: Any = None
    reason: str | None = None


@dataclass(frozen=True)
class DiscriminatorSpec:
    """
    Discriminator of a composed schema.

    Attributes:
    • property_name: name of the property that carries the type tag
    • mapping: tag values mapped to candidate types
    • lookup: resolve candidates through the mapping before matching values
    • on_miss: policy when a tag is absent or not mapped

    Tags are matched to mapping keys exactly, including case.
    """

    property_name: str
    mapping: Mapping[str, "TypeDescriptor"] = field(default_factory=dict)
    lookup: bool = DEFAULT_LOOKUP
    on_miss: Fallback = DEFAULT_ON_MISS

    def __post_init__(self):
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))

    def tag(self, value: Any) -> str | None:
        """Return the tag carried in a raw JSON value, or None if it carries no tag."""
        if not isinstance(value, Mapping):
            return None
        tag = value.get(self.property_name)
        return tag if isinstance(tag, str) else None

    def resolve(self, value: Any) -> "TypeDescriptor | None":
        """Return the candidate type mapped to the tag in a raw JSON value, or None."""
        return self.mapping.get(self.tag(value))


@dataclass(frozen=True)
class TypeDescriptor:
    """
    Candidate type participating in a composed schema.

    Attributes:
    • name: unique name of the candidate
    • python_type: Python type hint of the candidate
    • strict: whether undeclared properties cause decoding to fail
    • discriminator: discriminator of the candidate's own subtypes, in inheritance chains
    """

    name: str
    python_type: Any
    strict: bool = False
    discriminator: DiscriminatorSpec | None = None

    @classmethod
    def of(cls, python_type: Any, name: str | None = None, **kwargs) -> "TypeDescriptor":
        """Return a descriptor for a Python type, inferring its name and strictness."""
        return cls(
            name=name or type_name(python_type),
            python_type=python_type,
            strict=getattr(python_type, "__strict__", False),
            **kwargs,
        )

    @property
    def codec(self) -> JSONCodec:
        return JSONCodec.get(self.python_type)

    def decode(self, value: Any) -> Trial:
        """Decode a raw JSON value as the candidate type, returning the outcome as a trial."""
        try:
            return Trial(True, self.codec.decode(value))
        except DecodeError as de:
            return Trial(False, reason=str(de))

    def encode(self, value: Any) -> Any:
        """Encode a value of the candidate type to its raw JSON representation."""
        return self.codec.encode(value)

    def accepts(self, instance: Any) -> bool:
        """Return if an instance is a valid value of the candidate type."""
        return is_valid(instance, self.python_type)


@dataclass(frozen=True)
class CompositionDescriptor:
    """
    Describes a composed schema.

    Attributes:
    • name: name of the composed schema
    • python_type: Python type that represents the composed schema
    • kind: kind of composition
    • candidates: candidate types, in declared order
    • nullable: whether null is a valid value
    • discriminator: discriminator to resolve candidates by tag

    The order of candidates is significant: anyOf compositions resolve to the first matching
    candidate, and errors enumerate candidates in this order.
    """

    name: str
    python_type: Any
    kind: Kind
    candidates: tuple[TypeDescriptor, ...] = ()
    nullable: bool = False
    discriminator: DiscriminatorSpec | None = None

    def __post_init__(self):
        object.__setattr__(self, "candidates", tuple(self.candidates))
        names = [c.name for c in self.candidates]
        if len(set(names)) != len(names):
            raise ValueError(f"{self.name} has duplicate candidate names: {names}")

    def candidate(self, name: str) -> TypeDescriptor | None:
        """Return the candidate with the specified name, or None if no such candidate."""
        for candidate in self.candidates:
            if candidate.name == name:
                return candidate
        return None
