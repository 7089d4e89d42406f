"""Builtin Types — tests for the base instances and their registry.

Tests cover:
    - Literal ids and kinds of every builtin
    - BUILTIN_TYPES / BASE_IDS registry consistency
    - Refinements derive new ids rooted at the builtin
"""

import pytest

from metatypes.core.builtin_types import (
    ARRAY_TYPE, BASE_IDS, BUILTIN_TYPES, OBJECT_TYPE, RESOURCE_TYPE, STRING_TYPE, VOID_TYPE,
)
from metatypes.core.descriptor import MetaKind


@pytest.mark.parametrize("meta_id,kind", [
    ("unknown", MetaKind.PRIMITIVE),
    ("any", MetaKind.PRIMITIVE),
    ("void", MetaKind.PRIMITIVE),
    ("null", MetaKind.PRIMITIVE),
    ("boolean", MetaKind.PRIMITIVE),
    ("number", MetaKind.PRIMITIVE),
    ("string", MetaKind.PRIMITIVE),
    ("date", MetaKind.PRIMITIVE),
    ("object", MetaKind.OBJECT),
    ("promise", MetaKind.PROMISE),
    ("function", MetaKind.FUNCTION),
    ("array", MetaKind.ARRAY),
    ("union", MetaKind.UNION),
    ("variant", MetaKind.VARIANT),
    ("resource", MetaKind.RESOURCE),
])
def test_builtin_ids_and_kinds(meta_id, kind):
    instance = BUILTIN_TYPES[meta_id]
    assert instance.get_id() == meta_id
    assert instance.kind == kind
    assert not instance.id_fixed


def test_base_ids_match_registry():
    assert BASE_IDS == frozenset(BUILTIN_TYPES)
    assert len(BASE_IDS) == 15


def test_builtin_array_of_void():
    assert ARRAY_TYPE.get_item_meta() is VOID_TYPE


def test_refinement_derives_new_id():
    refined = STRING_TYPE.description("Name")
    assert refined.get_id() not in BASE_IDS
    assert refined.get_inherits() == ("string",)


def test_object_refinement_rooted_at_object():
    refined = OBJECT_TYPE.attributes({"name": STRING_TYPE})
    assert refined.get_base_type() == "object"


def test_resource_declares_variant_lineage():
    assert RESOURCE_TYPE.get_base_type() == "variant"
