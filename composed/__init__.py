"""Runtime decoding and encoding of OpenAPI composed schemas (oneOf, anyOf, allOf)."""

__version__ = "1.0.0"

from composed.data import datacls
from composed.error import (
    AmbiguousMatchError,
    CompositionError,
    DiscriminatorUnresolvedError,
    InvalidInstanceError,
    NoMatchError,
    NullNotAllowedError,
    UnresolvedTypeIdError,
)
from composed.inheritance import polymorphic, subtype
from composed.registry import registry
from composed.schema import Fallback, Kind
from composed.value import ComposedValue, any_of, decode, encode, one_of
