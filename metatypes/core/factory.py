"""Kind Dispatch — single entry point turning descriptors into meta instances.

Invariants:
    - meta() with no argument or an empty mapping returns a default primitive
    - meta(instance) returns the same object (idempotent passthrough)
    - Any non-mapping literal (1, [], None, True, 'x') raises InvalidDescriptorError naming it
    - An explicit `kind` wins over structural markers

Design Decisions:
    - Explicit marker table over chained isinstance checks: dispatch order is data, not code
    - Kind classes are looked up in the descriptor registry; kinds.py is imported at the
      bottom of this module so the registry is always populated once meta() is reachable
"""

from typing import Any, Mapping

from metatypes.core.descriptor import (
    Meta, MetaKind, coerce_kind, is_meta, kind_class,
)
from metatypes.core.errors import InvalidDescriptorError

_NO_DESCRIPTOR: Any = object()

# Structural markers checked in order when `kind` is absent.
_STRUCTURAL_MARKERS: tuple[tuple[str, MetaKind], ...] = (
    ("array_of", MetaKind.ARRAY),
    ("attributes", MetaKind.OBJECT),
    ("arguments", MetaKind.FUNCTION),
    ("result", MetaKind.PROMISE),
    ("types", MetaKind.UNION),
    ("variants", MetaKind.VARIANT),
)


def classify(descriptor: Mapping[str, Any]) -> MetaKind:
    """Decide which kind a plain descriptor describes."""
    kind = descriptor.get("kind")
    if kind is not None:
        return coerce_kind(kind, descriptor)
    for key, marker_kind in _STRUCTURAL_MARKERS:
        if key in descriptor:
            return marker_kind
    return MetaKind.PRIMITIVE


def meta(descriptor: Any = _NO_DESCRIPTOR) -> Meta:
    """Materialize a descriptor (or pass an instance through)."""
    if descriptor is _NO_DESCRIPTOR:
        return Meta()
    if is_meta(descriptor):
        return descriptor
    if not isinstance(descriptor, Mapping):
        raise InvalidDescriptorError(descriptor)
    return kind_class(classify(descriptor)).from_descriptor(descriptor)


from metatypes.core import kinds as _kinds  # noqa: E402,F401  registers composite kinds
