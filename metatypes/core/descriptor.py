"""Descriptor Core — immutable base meta instance, kind tags and the kind relation table.

Invariants:
    - Kind is a class-level tag (Meta.KIND) and never changes after construction
    - Every builder returns a new instance; the receiver is never mutated
    - id is either fixed (id_fixed=True, copied through every clone) or derived
      (recomputed from structure on every clone; literal ids in raw descriptors are discarded)
    - Nested instances are reused by reference when unchanged
    - Kinds that forbid a default (ACCEPTS_DEFAULT=False) always hold default=None
    - Converter slots hold ConverterLike objects, carried by reference through every clone

Design Decisions:
    - Frozen dataclasses over mutable classes: immutability enforced by the runtime
    - Explicit KIND_IMPLIES table over isinstance checks: membership is queried by value
    - Registry of kind classes filled by @register_kind: the factory dispatches without
      importing every kind module at import time of this one
    - Lineage (inherits) is part of the derived id so instances refined from different
      base types never collide
    - ConverterLike is a Protocol: core never imports the loader service that implements it
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Protocol, TypeVar, runtime_checkable

from metatypes.core.errors import InvalidDescriptorError
from metatypes.core.identity import MetaId, compute_meta_id


# ─── Kinds ───────────────────────────────────────────────────────

class MetaKind(str, Enum):
    """Closed set of shapes a meta instance can describe."""
    PRIMITIVE = "primitive"
    ARRAY = "array"
    OBJECT = "object"
    FUNCTION = "function"
    PROMISE = "promise"
    UNION = "union"
    VARIANT = "variant"
    RESOURCE = "resource"


# kind -> kinds it specializes
KIND_IMPLIES: dict[MetaKind, frozenset[MetaKind]] = {
    MetaKind.RESOURCE: frozenset({MetaKind.VARIANT}),
}


def coerce_kind(value: Any, descriptor: Any = None) -> MetaKind:
    """Turn a kind tag (str or MetaKind) into MetaKind, or raise InvalidDescriptorError."""
    if isinstance(value, MetaKind):
        return value
    try:
        return MetaKind(value)
    except ValueError:
        raise InvalidDescriptorError(
            value if descriptor is None else descriptor, f"unknown kind {value!r}",
        ) from None


def kind_implies(kind: MetaKind, target: MetaKind) -> bool:
    """True when `kind` equals `target` or is declared a specialization of it."""
    if kind == target:
        return True
    return any(
        kind_implies(parent, target) for parent in KIND_IMPLIES.get(kind, frozenset())
    )


# ─── Facets ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class MetaGroup:
    """Visual group inside a category."""
    uid: str
    name: str


@dataclass(frozen=True)
class MetaInfo:
    """Presentation facets shown in property grids and palettes."""
    description: str | None = None
    title: str | None = None
    category: str | None = None
    group: MetaGroup | None = None
    order: int | None = None
    hidden: bool = False
    disabled: bool = False
    extended: str | None = None  # "" = shown on demand without a title


@dataclass(frozen=True)
class EditorBinding:
    """Opaque editor handle plus its read-only property table."""
    ref: Any
    props: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@runtime_checkable
class ConverterLike(Protocol):
    """Lazily loaded value converter (implemented by services.converter_loader.ConverterState)."""

    @property
    def ready(self) -> bool: ...

    async def load(self, value: Any = None) -> Any: ...

    def canonical_key(self) -> Any: ...


_EMPTY_PROPS: Mapping[str, Any] = MappingProxyType({})

INFO_KEYS = (
    "description", "title", "category", "group", "order", "hidden", "disabled", "extended",
)


def _coerce_group(value: Any) -> MetaGroup | None:
    if value is None or isinstance(value, MetaGroup):
        return value
    if isinstance(value, Mapping):
        uid = value["uid"]
        return MetaGroup(uid=uid, name=value.get("name") or uid)
    if isinstance(value, (list, tuple)) and value:
        uid = value[0]
        return MetaGroup(uid=uid, name=value[1] if len(value) > 1 else uid)
    raise InvalidDescriptorError(value, "group must be MetaGroup, mapping or (uid, name)")


def _coerce_converter(value: Any) -> ConverterLike | None:
    if value is None or isinstance(value, ConverterLike):
        return value
    raise InvalidDescriptorError(value, "converter must provide load() and canonical_key()")


def _freeze_props(props: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if props is None:
        return _EMPTY_PROPS
    if isinstance(props, MappingProxyType):
        return props
    return MappingProxyType(dict(props))


# ─── Kind registry ───────────────────────────────────────────────

_KIND_CLASSES: dict[MetaKind, type["Meta"]] = {}

M = TypeVar("M", bound="Meta")


def register_kind(cls: type[M]) -> type[M]:
    """Class decorator: make `cls` the constructor for its KIND."""
    _KIND_CLASSES[cls.KIND] = cls
    return cls


def kind_class(kind: MetaKind) -> type["Meta"]:
    try:
        return _KIND_CLASSES[kind]
    except KeyError:
        raise InvalidDescriptorError(kind, "no meta class registered for kind") from None


_MISSING: Any = object()


# ─── Base instance ───────────────────────────────────────────────

@register_kind
@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class Meta:
    """Immutable primitive meta instance and base of every composite kind.

    Fields are raw storage; use the withers (`description()`, `optional()`,
    ...) to derive new instances and the `get_*` accessors to read them.
    Passing ``meta_id=None`` asks for a derived id.
    """

    KIND: ClassVar[MetaKind] = MetaKind.PRIMITIVE
    ACCEPTS_DEFAULT: ClassVar[bool] = True

    meta_id: MetaId | None = None
    id_fixed: bool = False
    inherits: tuple[MetaId, ...] = ()
    required: bool = True
    info: MetaInfo = field(default_factory=MetaInfo)
    binding: EditorBinding | None = None
    default: Any = None
    converter_input: ConverterLike | None = None
    converter_output: ConverterLike | None = None
    convertable_check: ConverterLike | None = None

    def __post_init__(self) -> None:
        if self.default is not None and not self.ACCEPTS_DEFAULT:
            object.__setattr__(self, "default", None)
        if self.meta_id is None:
            object.__setattr__(
                self, "meta_id", compute_meta_id(self.KIND.value, self.structure()),
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.meta_id!r}, fixed={self.id_fixed})"

    # --- Construction --------------------------------------------------------

    @classmethod
    def from_descriptor(cls: type[M], descriptor: Mapping[str, Any]) -> M:
        """Build an instance of this kind from a plain descriptor mapping."""
        return cls(**cls._fields_from_descriptor(descriptor))

    @classmethod
    def _fields_from_descriptor(cls, descriptor: Mapping[str, Any]) -> dict[str, Any]:
        kind = descriptor.get("kind")
        if kind is not None and coerce_kind(kind, descriptor) != cls.KIND:
            raise InvalidDescriptorError(
                descriptor, f"kind {kind!r} does not match {cls.KIND.value!r}",
            )

        meta_id = descriptor.get("id") or None
        editor = descriptor.get("editor")
        props = descriptor.get("editor_props")
        binding = None
        if editor is not None or props:
            binding = EditorBinding(ref=editor, props=_freeze_props(props))

        return {
            "meta_id": meta_id,
            "id_fixed": bool(descriptor.get("fixed_id", False)) and meta_id is not None,
            "inherits": tuple(descriptor.get("inherits") or ()),
            "required": not descriptor.get("optional", False),
            "info": MetaInfo(
                description=descriptor.get("description"),
                title=descriptor.get("title"),
                category=descriptor.get("category"),
                group=_coerce_group(descriptor.get("group")),
                order=descriptor.get("order"),
                hidden=bool(descriptor.get("hidden", False)),
                disabled=bool(descriptor.get("disabled", False)),
                extended=descriptor.get("extended"),
            ),
            "binding": binding,
            "default": descriptor.get("default_value"),
            "converter_input": _coerce_converter(descriptor.get("value_converter_input")),
            "converter_output": _coerce_converter(descriptor.get("value_converter_output")),
            "convertable_check": _coerce_converter(descriptor.get("is_value_convertable")),
        }

    # --- Identity ------------------------------------------------------------

    def structure(self) -> dict[str, Any]:
        """Structural content the derived id is computed from (never the id itself)."""
        binding = self.binding
        result = {
            "info": asdict(self.info),
            "required": self.required,
            "editor": None if binding is None else {"ref": binding.ref, "props": binding.props},
            "default": (self.default is not None, self.default),
            "inherits": self.inherits,
            "converters": (self.converter_input, self.converter_output, self.convertable_check),
        }
        result.update(self._kind_structure())
        return result

    def _kind_structure(self) -> dict[str, Any]:
        return {}

    def id(self: M, value: MetaId = _MISSING) -> "MetaId | M":
        """Return the id, or with `value` a new instance pinned to that id."""
        if value is _MISSING:
            return self.meta_id
        if not isinstance(value, str) or not value:
            raise InvalidDescriptorError(value, "id must be a non-empty string")
        if value in self.inherits:
            raise InvalidDescriptorError(value, "cyclic inheritance")
        inherits = self.inherits
        if self.meta_id != value:
            inherits = (*inherits, self.meta_id)
        return self.clone({"id": value, "fixed_id": True, "inherits": inherits})

    def get_id(self) -> MetaId:
        return self.meta_id

    @property
    def kind(self) -> MetaKind:
        return self.KIND

    def is_(self, target: "MetaKind | str | Meta | type[Meta]") -> bool:
        """Kind membership: own kind equals target kind or specializes it."""
        if isinstance(target, Meta):
            target_kind = target.KIND
        elif isinstance(target, type) and issubclass(target, Meta):
            target_kind = target.KIND
        else:
            target_kind = coerce_kind(target)
        return kind_implies(self.KIND, target_kind)

    def extends(self, other: "Meta | Mapping[str, Any] | str") -> bool:
        """Lineage check: `other`'s id is this id or one of its base ids."""
        if isinstance(other, Meta):
            other_id = other.get_id()
        elif isinstance(other, Mapping):
            other_id = other.get("id")
        else:
            other_id = other
        if not other_id:
            return False
        return other_id == self.meta_id or other_id in self.inherits

    def get_inherits(self) -> tuple[MetaId, ...]:
        return self.inherits

    def get_base_type(self) -> MetaId:
        return self.inherits[0] if self.inherits else self.meta_id

    # --- Copying -------------------------------------------------------------

    def to_descriptor(self) -> dict[str, Any]:
        """Plain descriptor; nested fields are always materialized instances."""
        binding = self.binding
        info = self.info
        return {
            "kind": self.KIND,
            "id": self.meta_id,
            "fixed_id": self.id_fixed,
            "inherits": self.inherits,
            "optional": not self.required,
            "description": info.description,
            "title": info.title,
            "category": info.category,
            "group": info.group,
            "order": info.order,
            "hidden": info.hidden,
            "disabled": info.disabled,
            "extended": info.extended,
            "editor": None if binding is None else binding.ref,
            "editor_props": None if binding is None else binding.props,
            "default_value": self.default,
            "value_converter_input": self.converter_input,
            "value_converter_output": self.converter_output,
            "is_value_convertable": self.convertable_check,
        }

    def clone(self: M, overrides: Mapping[str, Any] | None = None) -> M:
        """New instance with `overrides` merged into this descriptor.

        The id is copied when fixed and re-derived otherwise.
        """
        overrides = dict(overrides or {})
        if "kind" in overrides and coerce_kind(overrides["kind"], overrides) != self.KIND:
            raise InvalidDescriptorError(overrides, "kind cannot change after construction")

        merged = {**self.to_descriptor(), **overrides}
        if not merged.get("inherits"):
            merged["inherits"] = (self.meta_id,)
        fixed = bool(overrides.get("fixed_id", self.id_fixed))
        merged["fixed_id"] = fixed
        merged["id"] = overrides.get("id", self.meta_id) if fixed else None
        return type(self).from_descriptor(merged)

    # --- Info withers --------------------------------------------------------

    def description(self: M, text: str | None) -> M:
        return self.clone({"description": text})

    def get_description(self) -> str | None:
        return self.info.description

    def title(self: M, text: str | None) -> M:
        return self.clone({"title": text})

    def get_title(self) -> str | None:
        return self.info.title

    def category(self: M, name: str | None) -> M:
        return self.clone({"category": name})

    def get_category(self) -> str | None:
        return self.info.category

    def in_group(self: M, uid: str, name: str | None = None) -> M:
        return self.clone({"group": MetaGroup(uid=uid, name=name or uid)})

    def get_group(self) -> MetaGroup | None:
        return self.info.group

    def order(self: M, position: int | None) -> M:
        return self.clone({"order": position})

    def get_order(self) -> int | None:
        return self.info.order

    def hidden(self: M) -> M:
        return self.clone({"hidden": True})

    def visible(self: M) -> M:
        return self.clone({"hidden": False})

    def is_hidden(self) -> bool:
        return self.info.hidden

    def disable(self: M) -> M:
        return self.clone({"disabled": True})

    def enable(self: M) -> M:
        return self.clone({"disabled": False})

    def is_disabled(self) -> bool:
        return self.info.disabled

    def extended(self: M, title: str = "") -> M:
        """Mark as shown on demand, optionally under `title`."""
        return self.clone({"extended": title})

    def get_extended(self) -> str | None:
        return self.info.extended

    # --- Requiredness --------------------------------------------------------

    def optional(self: M, flag: bool = True) -> M:
        return self.clone({"optional": flag})

    def is_optional(self) -> bool:
        return not self.required

    def is_required(self) -> bool:
        return self.required

    # --- Editor --------------------------------------------------------------

    def editor(self: M, ref: Any, props: Mapping[str, Any] | None = None) -> M:
        """Bind an editor handle; `ref=None` removes the binding."""
        if ref is None:
            return self.clone({"editor": None, "editor_props": None})
        return self.clone({"editor": ref, "editor_props": props})

    def editor_props(self: M, props: Mapping[str, Any] | None) -> M:
        """Merge `props` into the editor property table; None clears it."""
        if props is None:
            return self.clone({"editor_props": None})
        return self.clone({"editor_props": {**self.get_editor_props(), **props}})

    def get_editor(self) -> Any:
        return None if self.binding is None else self.binding.ref

    def get_editor_props(self) -> Mapping[str, Any]:
        return _EMPTY_PROPS if self.binding is None else self.binding.props

    # --- Default value -------------------------------------------------------

    def default_value(self: M, value: Any) -> M:
        return self.clone({"default_value": value})

    def get_default_value(self) -> Any:
        return self.default

    # --- Value converters ----------------------------------------------------

    def _with_converter(self: M, key: str, current: Any, converter: Any) -> M:
        if converter is current:
            return self
        return self.clone({key: converter})

    def value_converter_input(self: M, converter: ConverterLike | None) -> M:
        """Attach the converter applied to values entering the editor; None clears it."""
        return self._with_converter("value_converter_input", self.converter_input, converter)

    def get_value_converter_input(self) -> ConverterLike | None:
        return self.converter_input

    def value_converter_output(self: M, converter: ConverterLike | None) -> M:
        """Attach the converter applied to values leaving the editor; None clears it."""
        return self._with_converter("value_converter_output", self.converter_output, converter)

    def get_value_converter_output(self) -> ConverterLike | None:
        return self.converter_output

    def value_convertable_check(self: M, converter: ConverterLike | None) -> M:
        """Attach the predicate telling whether a value can be converted at all."""
        return self._with_converter("is_value_convertable", self.convertable_check, converter)

    def get_value_convertable_check(self) -> ConverterLike | None:
        return self.convertable_check

    def fingerprint(self) -> MetaId:
        """Derived id of the current structure, even when the id is fixed."""
        return compute_meta_id(self.KIND.value, self.structure())

    # --- Traversal -----------------------------------------------------------

    def nested(self) -> tuple["Meta", ...]:
        """Directly nested instances, in declaration order."""
        return ()


def is_meta(value: Any) -> bool:
    return isinstance(value, Meta)
