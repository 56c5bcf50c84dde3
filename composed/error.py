"""
Composition error module.

Errors raised when a value cannot be resolved to a candidate of a composed schema. Their
messages are stable; consumers match on them:

• "<Name> cannot be null"
• "Failed deserialization for <Name>: <N> classes match result, expected 1"
• "Could not resolve type id '<id>' as a subtype of <Name>"
• "Failed to lookup discriminator value '<tag>' for <Name>"
• "Invalid instance type for <Name>. Must be <Candidate>, <Candidate>, ..."

Failures to decode an individual candidate are not errors at this level; they are counted
by the matching engine and only surface in aggregate.
"""

from composed.codec import CodecError, DecodeError, EncodeError


class CompositionError(CodecError):
    """
    Base class for composition errors.

    Attributes:
    • schema: name of the composed schema
    """

    def __init__(self, schema: str, message: str, path: list[str | int] | None = None):
        super().__init__(message, path)
        self.schema = schema


class NullNotAllowedError(CompositionError, DecodeError):
    """Null value decoded against a composed schema that is not nullable."""

    def __init__(self, schema: str):
        super().__init__(schema, f"{schema} cannot be null")


class NoMatchError(CompositionError, DecodeError):
    """Value matches none of the candidates of a composed schema."""

    count = 0

    def __init__(self, schema: str, expected: str = "1"):
        super().__init__(
            schema,
            f"Failed deserialization for {schema}: 0 classes match result, expected {expected}",
        )


class AmbiguousMatchError(CompositionError, DecodeError):
    """
    Value matches more than one candidate of a oneOf composed schema.

    Attributes:
    • count: number of candidates that match the value
    """

    def __init__(self, schema: str, count: int):
        super().__init__(
            schema,
            f"Failed deserialization for {schema}: {count} classes match result, expected 1",
        )
        self.count = count


class UnresolvedTypeIdError(CompositionError, DecodeError):
    """
    Discriminator value of a polymorphic type is absent or identifies no registered subtype.

    Attributes:
    • type_id: the discriminator value, or None if absent
    """

    def __init__(self, schema: str, type_id: str | None, property_name: str | None = None):
        if type_id is None:
            message = f"Could not resolve type id: missing property '{property_name}' for {schema}"
        else:
            message = f"Could not resolve type id {type_id!r} as a subtype of {schema}"
        super().__init__(schema, message)
        self.type_id = type_id


class DiscriminatorUnresolvedError(UnresolvedTypeIdError):
    """Discriminator value of a oneOf or anyOf composed schema is absent or not mapped."""

    def __init__(self, schema: str, type_id: str | None, property_name: str | None = None):
        super().__init__(schema, type_id, property_name)
        if type_id is None:
            self.message = f"Failed to lookup discriminator property '{property_name}' for {schema}"
        else:
            self.message = f"Failed to lookup discriminator value {type_id!r} for {schema}"


class InvalidInstanceError(CompositionError, EncodeError):
    """
    Instance assigned to a composed value is not of one of the composed schema candidates.

    Attributes:
    • candidates: names of the candidates of the composed schema
    """

    def __init__(self, schema: str, candidates: list[str]):
        super().__init__(
            schema, f"Invalid instance type for {schema}. Must be {', '.join(candidates)}"
        )
        self.candidates = candidates
