"""
Registry of composed schemas.

The registry maps each composed Python type to its CompositionDescriptor. It has a two-phase
lifecycle:

• registration: decorators register composed types as modules are imported
• query: decoding and encoding look up descriptors, concurrently and without locking

Registration is serialized; each registration publishes a new read-only snapshot, which
readers reference atomically. Entries are never removed or replaced. Calling `freeze` ends
the registration phase; registering afterwards is an error.

Polymorphic (allOf) hierarchies are registered class by class. The descriptor of each class
in a hierarchy is derived from the registered classes in its subtree when a snapshot is
published.
"""

import logging
import threading

from collections.abc import Iterator, Mapping
from composed.schema import CompositionDescriptor, DiscriminatorSpec, Kind, TypeDescriptor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any


_logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Error raised when a composed type cannot be registered."""


@dataclass(frozen=True)
class _Subtype:
    python_type: type
    type_id: str
    property_name: str


def _hierarchies(subtypes: Mapping[type, _Subtype]) -> dict[type, CompositionDescriptor]:
    """
    Derive the descriptors of registered polymorphic classes.

    Classes are visited deepest first, so the descriptor of every strict descendant of a class
    exists before the class itself is described. A class with descendants appears in the
    mappings of its bases with its own discriminator; within its own mapping it is a leaf.
    """
    nested = {}
    result = {}
    for python_type in sorted(subtypes, key=lambda t: len(t.__mro__), reverse=True):
        subtree = [s for s in subtypes.values() if issubclass(s.python_type, python_type)]
        spec = DiscriminatorSpec(
            property_name=subtypes[python_type].property_name,
            mapping={
                s.type_id: (
                    TypeDescriptor.of(python_type)
                    if s.python_type is python_type
                    else nested[s.python_type]
                )
                for s in subtree
            },
        )
        nested[python_type] = TypeDescriptor.of(
            python_type, discriminator=spec if len(subtree) > 1 else None
        )
        result[python_type] = CompositionDescriptor(
            name=python_type.__name__,
            python_type=python_type,
            kind=Kind.ALL_OF,
            candidates=tuple(spec.mapping.values()),
            discriminator=spec,
        )
    return {python_type: result[python_type] for python_type in subtypes}


class Registry:
    """Registry of composed schema descriptors, keyed by composed Python type."""

    def __init__(self):
        self._lock = threading.Lock()
        self._frozen = False
        self._compositions = {}
        self._subtypes = {}
        self._hierarchies = {}
        self._snapshot = MappingProxyType({})

    @property
    def frozen(self) -> bool:
        """Whether the registration phase has ended."""
        return self._frozen

    def freeze(self) -> None:
        """End the registration phase."""
        with self._lock:
            self._frozen = True
        _logger.debug("registry frozen with %d composed types", len(self._snapshot))

    def _check(self, python_type: Any) -> None:
        if self._frozen:
            raise RegistryError(f"cannot register {python_type}; registry is frozen")
        if python_type in self._compositions or python_type in self._subtypes:
            raise RegistryError(f"{python_type} is already registered")

    def register(self, descriptor: CompositionDescriptor) -> None:
        """Register the descriptor of a oneOf or anyOf composed type."""
        if descriptor.kind is Kind.ALL_OF:
            raise RegistryError("allOf types are registered through register_subtype")
        with self._lock:
            self._check(descriptor.python_type)
            compositions = {**self._compositions, descriptor.python_type: descriptor}
            self._publish(compositions, self._subtypes, self._hierarchies)
        _logger.debug("registered %s %s", descriptor.kind, descriptor.name)

    def register_subtype(self, python_type: type, type_id: str, property_name: str) -> None:
        """
        Register a class of a polymorphic (allOf) hierarchy.

        Parameters:
        • python_type: the class to register
        • type_id: discriminator value that identifies the class
        • property_name: name of the discriminator property of the hierarchy

        Discriminator values must be unique within a hierarchy. If the descriptors of the
        hierarchy cannot be derived, the registry is left unchanged.
        """
        with self._lock:
            self._check(python_type)
            root = self._root(python_type)
            for other in self._subtypes.values():
                if other.type_id == type_id and self._root(other.python_type) is root:
                    raise RegistryError(
                        f"type id {type_id!r} of {python_type.__name__} is already "
                        f"registered by {other.python_type.__name__}"
                    )
            subtypes = {
                **self._subtypes,
                python_type: _Subtype(python_type, type_id, property_name),
            }
            self._publish(self._compositions, subtypes, _hierarchies(subtypes))
        _logger.debug("registered subtype %s as %r", python_type.__name__, type_id)

    def _root(self, python_type: type) -> type:
        root = python_type
        for cls in python_type.__mro__:
            if cls in self._subtypes:
                root = cls
        return root

    def _publish(self, compositions: dict, subtypes: dict, hierarchies: dict) -> None:
        snapshot = MappingProxyType({**compositions, **hierarchies})
        self._compositions = compositions
        self._subtypes = subtypes
        self._hierarchies = hierarchies
        self._snapshot = snapshot

    def get(self, python_type: Any) -> CompositionDescriptor:
        """
        Return the descriptor of a composed type. Raises LookupError if the type is not
        registered.
        """
        try:
            return self._snapshot[python_type]
        except (KeyError, TypeError):
            raise LookupError(f"{python_type} is not a registered composed type") from None

    def __contains__(self, python_type: Any) -> bool:
        try:
            return python_type in self._snapshot
        except TypeError:
            return False

    def __iter__(self) -> Iterator[Any]:
        return iter(self._snapshot)

    def __len__(self) -> int:
        return len(self._snapshot)


registry = Registry()
