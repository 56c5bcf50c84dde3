"""
Candidate matching engine.

Resolves a raw JSON value to a candidate of a oneOf or anyOf composed schema by decoding the
value as each candidate type in turn. A candidate matches if the value decodes into its
structural field set; value constraints are not considered. Each trial is independent: a
candidate that fails to decode the value is counted as a non-match, and its failure does not
propagate.
"""

import logging

from composed.error import AmbiguousMatchError, NoMatchError, NullNotAllowedError
from composed.schema import CompositionDescriptor, Kind, TypeDescriptor
from typing import Any


_logger = logging.getLogger(__name__)


Resolution = tuple[TypeDescriptor | None, Any]


def _trials(descriptor: CompositionDescriptor, value: Any):
    for candidate in descriptor.candidates:
        trial = candidate.decode(value)
        if _logger.isEnabledFor(logging.DEBUG):
            if trial.ok:
                _logger.debug("%s: %s matches", descriptor.name, candidate.name)
            else:
                _logger.debug(
                    "%s: %s does not match: %s", descriptor.name, candidate.name, trial.reason
                )
        yield candidate, trial


def _one_of(descriptor: CompositionDescriptor, value: Any) -> Resolution:
    matches = [(c, t.value) for c, t in _trials(descriptor, value) if t.ok]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NoMatchError(descriptor.name)
    raise AmbiguousMatchError(descriptor.name, len(matches))


def _any_of(descriptor: CompositionDescriptor, value: Any) -> Resolution:
    for candidate, trial in _trials(descriptor, value):
        if trial.ok:
            return candidate, trial.value
    raise NoMatchError(descriptor.name, expected="at least 1")


def match(descriptor: CompositionDescriptor, value: Any) -> Resolution:
    """
    Resolve a raw JSON value to a candidate of a composed schema.

    Parameters:
    • descriptor: descriptor of a oneOf or anyOf composed schema
    • value: raw JSON value to resolve

    Returns a tuple of the matching candidate and the decoded value. A null value resolves
    to (None, None) if the composed schema is nullable.

    A oneOf value must match exactly one candidate. An anyOf value resolves to the first
    candidate, in declared order, that it matches.
    """
    if value is None:
        if descriptor.nullable:
            return None, None
        raise NullNotAllowedError(descriptor.name)
    match descriptor.kind:
        case Kind.ONE_OF:
            return _one_of(descriptor, value)
        case Kind.ANY_OF:
            return _any_of(descriptor, value)
    raise ValueError(f"cannot match candidates of {descriptor.kind} schema {descriptor.name}")
