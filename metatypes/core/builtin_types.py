"""Builtin Types — base meta instances every user type is refined from.

Invariants:
    - Builtins carry literal, non-fixed ids: refining one derives a new id whose
      lineage starts at the builtin id (STRING_TYPE.description(...).extends(STRING_TYPE))
    - BUILTIN_TYPES maps id -> instance; serializer skips these ids and resolves them back
"""

from metatypes.core.descriptor import Meta, MetaKind
from metatypes.core.factory import meta
from metatypes.core.kinds import DEFAULT_INVARIANT

UNKNOWN_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "unknown"})
ANY_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "any"})
VOID_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "void"})
NULL_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "null"})
BOOLEAN_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "boolean"})
NUMBER_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "number"})
STRING_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "string"})
DATE_TYPE = meta({"kind": MetaKind.PRIMITIVE, "id": "date"})
OBJECT_TYPE = meta({"kind": MetaKind.OBJECT, "id": "object"})
PROMISE_TYPE = meta({"kind": MetaKind.PROMISE, "id": "promise", "result": VOID_TYPE})
FUNCTION_TYPE = meta({"kind": MetaKind.FUNCTION, "id": "function"})
ARRAY_TYPE = meta({"kind": MetaKind.ARRAY, "id": "array", "array_of": VOID_TYPE})
UNION_TYPE = meta({"kind": MetaKind.UNION, "id": "union"})
VARIANT_TYPE = meta({
    "kind": MetaKind.VARIANT, "id": "variant", "invariant": DEFAULT_INVARIANT,
})
RESOURCE_TYPE = meta({
    "kind": MetaKind.RESOURCE,
    "id": "resource",
    "invariant": DEFAULT_INVARIANT,
    "inherits": ("variant",),
})

BUILTIN_TYPES: dict[str, Meta] = {
    instance.get_id(): instance
    for instance in (
        UNKNOWN_TYPE, ANY_TYPE, VOID_TYPE, NULL_TYPE, BOOLEAN_TYPE, NUMBER_TYPE,
        STRING_TYPE, DATE_TYPE, OBJECT_TYPE, PROMISE_TYPE, FUNCTION_TYPE,
        ARRAY_TYPE, UNION_TYPE, VARIANT_TYPE, RESOURCE_TYPE,
    )
}

BASE_IDS: frozenset[str] = frozenset(BUILTIN_TYPES)
