"""Composite Kinds — array, object, function, promise, union, variant and resource shapes.

Invariants:
    - Nested fields accept descriptors or instances; instances are reused by reference
    - Attribute and variant maps are read-only (MappingProxyType), insertion order kept
    - Function and promise kinds never hold a default value
    - Variant maps only hold object-kind instances
    - of() never mutates the receiver: array/union replace, variant merges

Design Decisions:
    - One frozen dataclass per kind over a dynamic subclass chain: closed, inspectable set
    - Field names differ from builder names (item vs of(), attribute_map vs attributes())
      so every builder can keep the short public name
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Iterable, Mapping

from metatypes.core import factory
from metatypes.core.descriptor import Meta, MetaKind, register_kind
from metatypes.core.errors import InvalidDescriptorError

DEFAULT_INVARIANT = "type"


def _attribute_map(values: Mapping[str, Any] | None) -> Mapping[str, Meta | None]:
    if values is None:
        return MappingProxyType({})
    if not isinstance(values, Mapping):
        raise InvalidDescriptorError(values, "attributes must be a mapping")
    return MappingProxyType({
        str(name): None if value is None else factory.meta(value)
        for name, value in values.items()
    })


def _meta_tuple(values: Iterable[Any] | None, what: str) -> tuple[Meta, ...]:
    if values is None:
        return ()
    if isinstance(values, (str, bytes, Mapping)):
        raise InvalidDescriptorError(values, f"{what} must be a sequence of descriptors")
    return tuple(factory.meta(value) for value in values)


# ─── Array ───────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class ArrayMeta(Meta):
    """Homogeneous list of `item`."""

    KIND: ClassVar[MetaKind] = MetaKind.ARRAY

    item: Meta = field(default_factory=Meta)

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        item = descriptor.get("array_of")
        fields["item"] = factory.meta() if item is None else factory.meta(item)
        return fields

    def _kind_structure(self):
        return {"array_of": self.item}

    def to_descriptor(self):
        return {**super().to_descriptor(), "array_of": self.item}

    def of(self, item: Any) -> "ArrayMeta":
        """Replace the item type."""
        return self.clone({"array_of": item})

    def get_item_meta(self) -> Meta:
        return self.item

    def nested(self):
        return (self.item,)


# ─── Object ──────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class ObjectMeta(Meta):
    """Record of named attributes."""

    KIND: ClassVar[MetaKind] = MetaKind.OBJECT

    attribute_map: Mapping[str, Meta | None] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        fields["attribute_map"] = _attribute_map(descriptor.get("attributes"))
        return fields

    def _kind_structure(self):
        return {"attributes": self.attribute_map}

    def to_descriptor(self):
        return {**super().to_descriptor(), "attributes": self.attribute_map}

    def attributes(self, attributes: Mapping[str, Any]) -> "ObjectMeta":
        """Replace the attribute map."""
        return self.clone({"attributes": attributes})

    def get_attributes(self) -> Mapping[str, Meta | None]:
        return self.attribute_map

    def get_default_value(self) -> Any:
        """Own default, or the defaults collected from attributes ({} when none)."""
        if self.default is not None:
            return self.default
        result = {}
        for name, attribute in self.attribute_map.items():
            if attribute is None:
                continue
            value = attribute.get_default_value()
            if value is not None:
                result[name] = value
        return result

    def nested(self):
        return tuple(a for a in self.attribute_map.values() if a is not None)


# ─── Function ────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class FunctionMeta(Meta):
    """Callable with ordered argument types and an optional result type."""

    KIND: ClassVar[MetaKind] = MetaKind.FUNCTION
    ACCEPTS_DEFAULT: ClassVar[bool] = False

    argument_metas: tuple[Meta, ...] = ()
    result_meta: Meta | None = None
    function_name: str | None = None

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        result = descriptor.get("result")
        fields["argument_metas"] = _meta_tuple(descriptor.get("arguments"), "arguments")
        fields["result_meta"] = None if result is None else factory.meta(result)
        fields["function_name"] = descriptor.get("name")
        return fields

    def _kind_structure(self):
        return {
            "arguments": self.argument_metas,
            "result": self.result_meta,
            "name": self.function_name,
        }

    def to_descriptor(self):
        return {
            **super().to_descriptor(),
            "arguments": self.argument_metas,
            "result": self.result_meta,
            "name": self.function_name,
        }

    def arguments(self, *arguments: Any) -> "FunctionMeta":
        return self.clone({"arguments": arguments})

    def get_arguments(self) -> tuple[Meta, ...]:
        return self.argument_metas

    def result(self, result: Any) -> "FunctionMeta":
        return self.clone({"result": result})

    def get_result(self) -> Meta | None:
        return self.result_meta

    def name(self, name: str | None) -> "FunctionMeta":
        return self.clone({"name": name})

    def get_name(self) -> str | None:
        return self.function_name

    def default_value(self, value: Any) -> "FunctionMeta":
        return self

    def get_default_value(self) -> None:
        return None

    def nested(self):
        if self.result_meta is None:
            return self.argument_metas
        return (*self.argument_metas, self.result_meta)


# ─── Promise ─────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class PromiseMeta(Meta):
    """Deferred value resolving to `result_meta`."""

    KIND: ClassVar[MetaKind] = MetaKind.PROMISE
    ACCEPTS_DEFAULT: ClassVar[bool] = False

    result_meta: Meta = field(default_factory=Meta)

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        result = descriptor.get("result")
        fields["result_meta"] = factory.meta() if result is None else factory.meta(result)
        return fields

    def _kind_structure(self):
        return {"result": self.result_meta}

    def to_descriptor(self):
        return {**super().to_descriptor(), "result": self.result_meta}

    def result(self, result: Any) -> "PromiseMeta":
        return self.clone({"result": result})

    def get_result(self) -> Meta:
        return self.result_meta

    def default_value(self, value: Any) -> "PromiseMeta":
        return self

    def get_default_value(self) -> None:
        return None

    def nested(self):
        return (self.result_meta,)


# ─── Union ───────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class UnionMeta(Meta):
    """Value matching any one of the ordered alternatives."""

    KIND: ClassVar[MetaKind] = MetaKind.UNION

    type_metas: tuple[Meta, ...] = ()

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        fields["type_metas"] = _meta_tuple(descriptor.get("types"), "types")
        return fields

    def _kind_structure(self):
        return {"types": self.type_metas}

    def to_descriptor(self):
        return {**super().to_descriptor(), "types": self.type_metas}

    def of(self, types: Iterable[Any]) -> "UnionMeta":
        """Replace the whole list of alternatives."""
        return self.clone({"types": tuple(types)})

    def get_types(self) -> tuple[Meta, ...]:
        return self.type_metas

    def nested(self):
        return self.type_metas


# ─── Variant ─────────────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class VariantMeta(Meta):
    """Discriminated union: tag -> object type, selected by the `invariant` attribute."""

    KIND: ClassVar[MetaKind] = MetaKind.VARIANT

    variant_map: Mapping[str, Meta] = field(default_factory=lambda: MappingProxyType({}))
    invariant_field: str = DEFAULT_INVARIANT

    @classmethod
    def _fields_from_descriptor(cls, descriptor):
        fields = super()._fields_from_descriptor(descriptor)
        variants = descriptor.get("variants")
        if variants is not None and not isinstance(variants, Mapping):
            raise InvalidDescriptorError(variants, "variants must be a mapping")
        resolved = {}
        for tag, value in (variants or {}).items():
            variant = factory.meta(value)
            if not variant.is_(MetaKind.OBJECT):
                raise InvalidDescriptorError(value, f"variant {tag!r} must be an object type")
            resolved[str(tag)] = variant
        fields["variant_map"] = MappingProxyType(resolved)
        fields["invariant_field"] = descriptor.get("invariant") or DEFAULT_INVARIANT
        return fields

    def _kind_structure(self):
        return {"variants": self.variant_map, "invariant": self.invariant_field}

    def to_descriptor(self):
        return {
            **super().to_descriptor(),
            "variants": self.variant_map,
            "invariant": self.invariant_field,
        }

    def of(self, variants: Mapping[str, Any]) -> "VariantMeta":
        """Merge `variants` into the current map: new tags added, existing overwritten."""
        return self.clone({"variants": {**self.variant_map, **variants}})

    def get_variants(self) -> Mapping[str, Meta]:
        return self.variant_map

    def invariant(self, name: str) -> "VariantMeta":
        return self.clone({"invariant": name})

    def get_invariant(self) -> str:
        return self.invariant_field

    def nested(self):
        return tuple(self.variant_map.values())


@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class ResourceMeta(VariantMeta):
    """Variant specialization for resource references ({type, value})."""

    KIND: ClassVar[MetaKind] = MetaKind.RESOURCE
