"""Identity Generator — deterministic structural fingerprint for meta instances.

Invariants:
    - Same structural content always yields the same id (across instances and processes)
    - Any difference in canonical content yields a different id
    - Nested instances contribute their id, never their object identity
    - canonicalize() never raises and never merges two distinguishable values:
      objects without a stable encoding contribute their object identity

Design Decisions:
    - Sorted-key tuple encoding + blake2b (16 bytes, hex): stable, fast, stdlib only
    - Tagged byte stream per value type: "1" (int) and 1 (int) vs "1" (str) never collide
    - Schema version folded into the hash so a future encoding change cannot alias old ids
    - Objects exposing ``canonical_key()`` (converter states) choose their own encoding
    - Anonymous callables (lambdas, closures) and opaque objects fall back to id(obj):
      stable for the life of the object only, but never a collision
"""

import dataclasses
import inspect
from datetime import date, time
from decimal import Decimal
from enum import Enum
from hashlib import blake2b
from math import isfinite
from typing import Any, Mapping
from uuid import UUID

MetaId = str

ID_SCHEMA_VERSION = 1
ID_DIGEST_SIZE = 16


def _qualified_name(obj: Any) -> str:
    module = getattr(obj, "__module__", None) or "?"
    qualname = getattr(obj, "__qualname__", None) or type(obj).__qualname__
    return f"{module}.{qualname}"


def _canonical_callable(value: Any) -> Any:
    if inspect.ismethod(value):
        return ("method", _qualified_name(value), canonicalize(value.__self__))
    name = _qualified_name(value)
    named = inspect.isfunction(value) or inspect.isbuiltin(value) or isinstance(value, type)
    if "<" in name or not named:
        # <lambda>, <locals> and callable instances share names across distinct objects
        return ("callable", name, id(value))
    return ("callable", name)


def canonicalize(value: Any) -> Any:
    """Normalize a value into a hashable, order-stable structure.

    Mappings become key-sorted tuples of pairs, sequences become tuples,
    objects exposing ``get_id()`` become ``("meta", id)`` and named callables
    become ``("callable", "module.qualname")``. Dates, decimals and UUIDs are
    encoded by value under a type tag.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Enum):
        return ("enum", _qualified_name(type(value)), value.name)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not isfinite(value):
            return ("float", repr(value))
        # -0.0 and 0.0 are the same default
        return value if value != 0.0 else 0.0
    if isinstance(value, (date, time)):
        return (type(value).__name__, value.isoformat())
    if isinstance(value, Decimal):
        return ("decimal", str(value))
    if isinstance(value, UUID):
        return ("uuid", str(value))
    if isinstance(value, (bytes, bytearray)):
        return ("bytes", bytes(value).hex())
    if isinstance(value, Mapping):
        return tuple(
            (str(k), canonicalize(v))
            for k, v in sorted(value.items(), key=lambda item: str(item[0]))
        )
    if isinstance(value, (list, tuple)):
        return tuple(canonicalize(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return ("set", tuple(sorted(repr(canonicalize(v)) for v in value)))
    # hooks are looked up on the class, never on instance attributes
    if callable(getattr(type(value), "get_id", None)):
        return ("meta", value.get_id())
    if callable(getattr(type(value), "canonical_key", None)):
        return ("keyed", _qualified_name(type(value)), canonicalize(value.canonical_key()))
    if callable(value):
        return _canonical_callable(value)
    if dataclasses.is_dataclass(value):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return ("dataclass", _qualified_name(type(value)), canonicalize(fields))
    return ("object", _qualified_name(type(value)), id(value))


def _update_hash(hasher: "blake2b", value: Any) -> None:
    """Append one canonical value to the hash stream."""
    if value is None:
        hasher.update(b"n")
        return
    if isinstance(value, bool):
        hasher.update(b"b1" if value else b"b0")
        return
    if isinstance(value, int):
        hasher.update(b"i")
        hasher.update(str(value).encode("ascii"))
        return
    if isinstance(value, float):
        hasher.update(b"f")
        hasher.update(f"{value:.17g}".encode("ascii"))
        return
    if isinstance(value, str):
        encoded = value.encode("utf-8")
        hasher.update(b"s")
        hasher.update(str(len(encoded)).encode("ascii"))
        hasher.update(b":")
        hasher.update(encoded)
        return
    # canonicalize() only produces tuples beyond the scalars above
    hasher.update(b"t[")
    for item in value:
        _update_hash(hasher, item)
        hasher.update(b",")
    hasher.update(b"]")


def compute_meta_id(
    kind: str,
    structure: Mapping[str, Any],
    *,
    schema_version: int = ID_SCHEMA_VERSION,
    digest_size: int = ID_DIGEST_SIZE,
) -> MetaId:
    """Compute the derived id of a meta instance.

    Parameters
    ----------
    kind : str
        Kind tag of the instance.
    structure : Mapping[str, Any]
        Structural facets (info, editor, default, lineage, kind-specific
        fields). Never contains the instance's own id.
    schema_version : int, optional
        Version of the canonical encoding.
    digest_size : int, optional
        blake2b digest size in bytes.

    Returns
    -------
    MetaId
        Hex digest.
    """
    h = blake2b(digest_size=digest_size)
    h.update(f"v{schema_version}".encode("ascii"))
    h.update(b"|kind:")
    h.update(str(getattr(kind, "value", kind)).encode("utf-8"))
    h.update(b"|structure:")
    _update_hash(h, canonicalize(structure))
    return h.hexdigest()
