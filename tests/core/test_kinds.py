"""Composite Kinds — tests for array, object, function, promise, union, variant, resource.

Tests cover:
    - Nested instances reused by reference, descriptors materialized
    - of() immutability for array, union and variant
    - Variant merge semantics and object-only variant values
    - Default suppression on function and promise kinds
    - Object default aggregation from attributes
    - Fixed id across variant merges
    - nested() traversal order
"""

import pytest

from metatypes.core.builtin_types import (
    BOOLEAN_TYPE, NUMBER_TYPE, OBJECT_TYPE, PROMISE_TYPE, RESOURCE_TYPE, STRING_TYPE,
    VARIANT_TYPE, VOID_TYPE,
)
from metatypes.core.descriptor import MetaKind
from metatypes.core.errors import InvalidDescriptorError
from metatypes.core.factory import meta
from metatypes.core.kinds import DEFAULT_INVARIANT


@pytest.fixture
def circle():
    return meta({"attributes": {"type": STRING_TYPE, "radius": NUMBER_TYPE}})


@pytest.fixture
def square():
    return meta({"attributes": {"type": STRING_TYPE, "side": NUMBER_TYPE}})


# --- Array -------------------------------------------------------------------

def test_array_reuses_item_reference():
    existing = STRING_TYPE.description("tag")
    assert meta({"array_of": existing}).get_item_meta() is existing


def test_array_materializes_descriptor_item():
    array = meta({"array_of": {"description": "tag"}})
    assert array.get_item_meta().get_description() == "tag"


def test_array_without_item_uses_default_primitive():
    assert meta({"kind": "array"}).get_item_meta().kind == MetaKind.PRIMITIVE


def test_array_of_is_immutable():
    array = meta({"array_of": STRING_TYPE})
    replaced = array.of(NUMBER_TYPE)
    assert array.get_item_meta() is STRING_TYPE
    assert replaced.get_item_meta() is NUMBER_TYPE
    assert replaced.get_id() != array.get_id()


def test_array_item_id_drives_array_id():
    first = meta({"array_of": STRING_TYPE.description("a")})
    second = meta({"array_of": STRING_TYPE.description("a")})
    third = meta({"array_of": STRING_TYPE.description("b")})
    assert first.get_id() == second.get_id()
    assert first.get_id() != third.get_id()


# --- Object ------------------------------------------------------------------

def test_object_attributes_keep_order_and_references(circle):
    assert list(circle.get_attributes()) == ["type", "radius"]
    assert circle.get_attributes()["type"] is STRING_TYPE


def test_object_attributes_read_only(circle):
    with pytest.raises(TypeError):
        circle.get_attributes()["extra"] = STRING_TYPE


def test_object_attributes_replace(circle):
    replaced = circle.attributes({"name": STRING_TYPE})
    assert list(replaced.get_attributes()) == ["name"]
    assert list(circle.get_attributes()) == ["type", "radius"]


def test_object_none_attribute_kept():
    instance = meta({"attributes": {"hole": None, "name": STRING_TYPE}})
    assert instance.get_attributes()["hole"] is None
    assert instance.nested() == (STRING_TYPE,)


def test_object_default_aggregates_attributes():
    instance = meta({"attributes": {
        "name": STRING_TYPE.default_value("anon"),
        "age": NUMBER_TYPE,
        "active": BOOLEAN_TYPE.default_value(False),
    }})
    assert instance.get_default_value() == {"name": "anon", "active": False}


def test_object_default_empty_mapping():
    assert OBJECT_TYPE.get_default_value() == {}


def test_object_own_default_wins():
    instance = meta({
        "attributes": {"name": STRING_TYPE.default_value("anon")},
        "default_value": {"name": "set"},
    })
    assert instance.get_default_value() == {"name": "set"}


def test_object_attributes_must_be_mapping():
    with pytest.raises(InvalidDescriptorError):
        meta({"attributes": [STRING_TYPE]})


# --- Function ----------------------------------------------------------------

def test_function_arguments_and_result():
    fn = meta({"kind": "function"}).arguments(STRING_TYPE, {"description": "n"}).result(NUMBER_TYPE)
    arguments = fn.get_arguments()
    assert arguments[0] is STRING_TYPE
    assert arguments[1].get_description() == "n"
    assert fn.get_result() is NUMBER_TYPE
    assert fn.nested() == (*arguments, NUMBER_TYPE)


def test_function_name():
    fn = meta({"kind": "function"}).name("convert")
    assert fn.get_name() == "convert"
    assert fn.get_id() != meta({"kind": "function"}).get_id()


def test_function_result_optional():
    fn = meta({"kind": "function"})
    assert fn.get_result() is None
    assert fn.nested() == ()


def test_function_arguments_must_be_sequence():
    with pytest.raises(InvalidDescriptorError):
        meta({"arguments": "abc"})


def test_function_default_suppressed():
    fn = meta({"kind": "function"})
    assert fn.default_value(42) is fn
    assert fn.default_value(42).get_default_value() is None
    assert meta({"kind": "function", "default_value": 42}).get_default_value() is None


# --- Promise -----------------------------------------------------------------

def test_promise_result_reference():
    promise = meta({"result": STRING_TYPE})
    assert promise.get_result() is STRING_TYPE
    assert promise.result(NUMBER_TYPE).get_result() is NUMBER_TYPE
    assert promise.get_result() is STRING_TYPE


def test_promise_default_suppressed():
    assert PROMISE_TYPE.default_value("x").get_default_value() is None
    assert meta({"result": {}, "default_value": "x"}).get_default_value() is None


def test_builtin_promise_resolves_void():
    assert PROMISE_TYPE.get_result() is VOID_TYPE


# --- Union -------------------------------------------------------------------

def test_union_of_replaces_list():
    union = meta({"types": [STRING_TYPE]})
    replaced = union.of([NUMBER_TYPE, BOOLEAN_TYPE])
    assert replaced.get_types() == (NUMBER_TYPE, BOOLEAN_TYPE)
    assert union.get_types() == (STRING_TYPE,)


def test_union_order_is_structural():
    first = meta({"types": [STRING_TYPE, NUMBER_TYPE]})
    second = meta({"types": [NUMBER_TYPE, STRING_TYPE]})
    assert first.get_id() != second.get_id()


# --- Variant -----------------------------------------------------------------

def test_variant_merge(circle, square):
    variant_a = meta({"variants": {"circle": circle}})
    merged = variant_a.of({"square": square})
    assert dict(merged.get_variants()) == {"circle": circle, "square": square}
    assert dict(variant_a.get_variants()) == {"circle": circle}


def test_variant_merge_overwrites_existing(circle, square):
    variant_a = meta({"variants": {"shape": circle}})
    assert variant_a.of({"shape": square}).get_variants()["shape"] is square
    assert variant_a.get_variants()["shape"] is circle


def test_variant_values_must_be_objects():
    with pytest.raises(InvalidDescriptorError, match="object type"):
        meta({"variants": {"bad": STRING_TYPE}})


def test_variant_values_must_be_mapping():
    with pytest.raises(InvalidDescriptorError):
        meta({"variants": [OBJECT_TYPE]})


def test_variant_invariant():
    assert VARIANT_TYPE.get_invariant() == DEFAULT_INVARIANT
    assert meta({"variants": {}}).get_invariant() == "type"
    renamed = VARIANT_TYPE.invariant("shape")
    assert renamed.get_invariant() == "shape"
    assert VARIANT_TYPE.get_invariant() == "type"


def test_fixed_id_survives_variant_merge(circle, square):
    pinned = meta({"variants": {"circle": circle}}).id("shapes")
    merged = pinned.of({"square": square})
    assert merged.get_id() == "shapes"
    assert set(merged.get_variants()) == {"circle", "square"}


def test_derived_id_changes_on_variant_merge(circle, square):
    variant_a = meta({"variants": {"circle": circle}})
    assert variant_a.of({"square": square}).get_id() != variant_a.get_id()


# --- Resource ----------------------------------------------------------------

def test_resource_is_variant():
    assert RESOURCE_TYPE.kind == MetaKind.RESOURCE
    assert RESOURCE_TYPE.is_(MetaKind.VARIANT)
    assert RESOURCE_TYPE.get_invariant() == "type"
    assert RESOURCE_TYPE.get_inherits() == ("variant",)


def test_resource_of_keeps_kind(circle):
    refined = RESOURCE_TYPE.of({"circle": circle})
    assert refined.kind == MetaKind.RESOURCE
    assert refined.is_(MetaKind.VARIANT)
    # declared lineage is carried as is, so refinements root at the variant base
    assert refined.extends(VARIANT_TYPE)
    assert refined.get_base_type() == "variant"
