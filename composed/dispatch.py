"""
Discriminator dispatch.

Resolves a raw JSON value to a candidate type directly from the value of its discriminator
property, without decoding the value as every candidate.
"""

import logging

from collections.abc import Mapping
from composed.codec import DecodeError
from composed.error import DiscriminatorUnresolvedError, UnresolvedTypeIdError
from composed.matching import Resolution, match
from composed.schema import CompositionDescriptor, Fallback, TypeDescriptor
from typing import Any


_logger = logging.getLogger(__name__)


def dispatch(descriptor: CompositionDescriptor, value: Any) -> Resolution:
    """
    Resolve a raw JSON value to a candidate of a oneOf or anyOf composed schema through its
    discriminator.

    If the discriminator value is mapped to a candidate, the value is decoded as that
    candidate, even if it would also match other candidates; an error decoding the mapped
    candidate is raised. If the mapped candidate is itself a composed type, resolution
    continues in that type.

    If the discriminator property is absent, or its value is not mapped, or it is mapped to
    the composed type itself, the discriminator's fallback policy applies: candidates are
    matched (Fallback.MATCH) or DiscriminatorUnresolvedError is raised (Fallback.FAIL).
    """
    spec = descriptor.discriminator
    tag = spec.tag(value)
    candidate = spec.mapping.get(tag) if tag is not None else None
    if candidate is not None and candidate.python_type is not descriptor.python_type:
        _logger.debug(
            "%s: %s=%r resolves to %s", descriptor.name, spec.property_name, tag, candidate.name
        )
        return candidate, candidate.codec.decode(value)
    _logger.debug("%s: %s=%r is not resolved", descriptor.name, spec.property_name, tag)
    if spec.on_miss is Fallback.FAIL:
        raise DiscriminatorUnresolvedError(descriptor.name, tag, spec.property_name)
    return match(descriptor, value)


def resolve(descriptor: CompositionDescriptor, value: Any) -> Resolution:
    """
    Resolve a raw JSON value to a candidate of a oneOf or anyOf composed schema.

    Null values, and values of composed schemas without a discriminator or with discriminator
    lookup disabled, are resolved by matching candidates; otherwise they are dispatched
    through the discriminator.
    """
    spec = descriptor.discriminator
    if value is None or spec is None or not spec.lookup:
        return match(descriptor, value)
    return dispatch(descriptor, value)


def resolve_subtype(descriptor: CompositionDescriptor, value: Any) -> TypeDescriptor:
    """
    Return the subtype of a polymorphic (allOf) type identified by the discriminator value
    in a raw JSON value.

    The discriminator is mandatory: if the discriminator property is absent, or its value
    does not identify a registered subtype, UnresolvedTypeIdError is raised.
    """
    if not isinstance(value, Mapping):
        raise DecodeError(f"expecting object for {descriptor.name}")
    spec = descriptor.discriminator
    candidate = spec.resolve(value)
    if candidate is None:
        tag = value.get(spec.property_name)
        raise UnresolvedTypeIdError(
            descriptor.name, None if tag is None else str(tag), spec.property_name
        )
    _logger.debug("%s: %s resolves to %s", descriptor.name, spec.property_name, candidate.name)
    return candidate
