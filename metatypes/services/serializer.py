"""Meta Serializer — flatten meta trees into id-referencing records and back.

Invariants:
    - serialize() emits dependencies before dependants; each id at most once
    - Two structurally different instances sharing one id raise InvalidDescriptorError
    - Builtin ids (BASE_IDS) are never emitted; deserialize() resolves them from BUILTIN_TYPES
    - deserialize() keeps every recorded id, so ids survive a round trip
    - A reference to an id that is neither earlier in the list nor builtin raises InvalidDescriptorError

Design Decisions:
    - Depth-first walk over Meta.nested(): no per-kind traversal code here
    - pydantic_core reduces dates, decimals, UUIDs and enums by value; only callables
      and opaque objects are reduced to "module:qualname" handles
    - Converter slots are stored as loader import paths and reloaded lazily
"""

import logging
from typing import Any, Iterable, Mapping

from pydantic_core import to_jsonable_python

from metatypes.core.builtin_types import BASE_IDS, BUILTIN_TYPES
from metatypes.core.descriptor import INFO_KEYS, Meta, MetaKind
from metatypes.core.errors import InvalidDescriptorError
from metatypes.core.factory import meta
from metatypes.schemas.meta_record import MetaGroupRecord, MetaRecord, MetaRecordList
from metatypes.services.converter_loader import ConverterState

logger = logging.getLogger(__name__)


# ─── Value reduction ─────────────────────────────────────────────

def _handle_name(value: Any) -> str:
    module = getattr(value, "__module__", None) or type(value).__module__
    qualname = getattr(value, "__qualname__", None) or type(value).__qualname__
    return f"{module}:{qualname}"


def _fallback(value: Any) -> Any:
    if isinstance(value, Meta):
        return value.get_id()
    if isinstance(value, ConverterState):
        return value.loader_name or _handle_name(value)
    return _handle_name(value)


def _jsonable(value: Any) -> Any:
    """Reduce a value to JSON-compatible data."""
    if isinstance(value, Meta):
        return value.get_id()
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if callable(value) and not isinstance(value, type):
        return _handle_name(value)
    return to_jsonable_python(value, fallback=_fallback, bytes_mode="base64")


def _editor_name(ref: Any) -> str | None:
    if ref is None or isinstance(ref, str):
        return ref
    return _handle_name(ref)


def _converter_path(converter: Any) -> str | None:
    if converter is None:
        return None
    loader = getattr(converter, "loader", None)
    path = getattr(loader, "module_path", None)
    if isinstance(path, str):
        return path
    if loader is None:
        raise InvalidDescriptorError(converter, "converter without a loader cannot be serialized")
    return _handle_name(loader)


def _converter_state(path: str | None) -> ConverterState | None:
    return None if path is None else ConverterState(path)


# ─── Serialize ───────────────────────────────────────────────────

def _to_record(node: Meta) -> MetaRecord:
    descriptor = node.to_descriptor()
    group = descriptor["group"]
    fields: dict[str, Any] = {
        "kind": node.kind,
        "id": node.get_id(),
        "fixed_id": node.id_fixed,
        "inherits": list(node.get_inherits()),
        "optional": node.is_optional(),
        **{key: descriptor[key] for key in INFO_KEYS if key != "group"},
        "group": None if group is None else MetaGroupRecord(uid=group.uid, name=group.name),
        "editor": _editor_name(node.get_editor()),
        "editor_props": _jsonable(descriptor["editor_props"]) or None,
        "default_value": _jsonable(descriptor["default_value"]),
        "value_converter_input": _converter_path(node.get_value_converter_input()),
        "value_converter_output": _converter_path(node.get_value_converter_output()),
        "is_value_convertable": _converter_path(node.get_value_convertable_check()),
    }

    if node.is_(MetaKind.ARRAY):
        fields["array_of"] = node.get_item_meta().get_id()
    elif node.is_(MetaKind.OBJECT):
        fields["attributes"] = [
            (name, None if attribute is None else attribute.get_id())
            for name, attribute in node.get_attributes().items()
        ]
    elif node.is_(MetaKind.FUNCTION):
        result = node.get_result()
        fields["arguments"] = [argument.get_id() for argument in node.get_arguments()]
        fields["result"] = None if result is None else result.get_id()
        fields["name"] = node.get_name()
    elif node.is_(MetaKind.PROMISE):
        fields["result"] = node.get_result().get_id()
    elif node.is_(MetaKind.UNION):
        fields["types"] = [alternative.get_id() for alternative in node.get_types()]
    elif node.is_(MetaKind.VARIANT):
        fields["variants"] = [
            (tag, variant.get_id()) for tag, variant in node.get_variants().items()
        ]
        fields["invariant"] = node.get_invariant()
    return MetaRecord(**fields)


def serialize(root: Meta) -> list[MetaRecord]:
    """Flatten `root` into records, nested instances first."""
    records: list[MetaRecord] = []
    emitted: dict[str, Meta] = {}

    def visit(node: Meta) -> None:
        node_id = node.get_id()
        if node_id in BASE_IDS:
            return
        seen = emitted.get(node_id)
        if seen is not None:
            if seen is not node and seen.fingerprint() != node.fingerprint():
                raise InvalidDescriptorError(
                    node_id, "two structurally different instances share this id",
                )
            return
        emitted[node_id] = node
        for child in node.nested():
            visit(child)
        records.append(_to_record(node))

    visit(meta(root))
    return records


def to_json(root: Meta) -> str:
    return MetaRecordList.dump_json(serialize(root)).decode("utf-8")


# ─── Deserialize ─────────────────────────────────────────────────

def _resolve(ref: str | None, built: Mapping[str, Meta], owner: str) -> Meta | None:
    if ref is None:
        return None
    try:
        return built[ref]
    except KeyError:
        raise InvalidDescriptorError(ref, f"unresolved reference in {owner!r}") from None


def _descriptor_from_record(record: MetaRecord, built: Mapping[str, Meta]) -> dict[str, Any]:
    descriptor: dict[str, Any] = {
        "kind": record.kind,
        "id": record.id,
        "fixed_id": record.fixed_id,
        "inherits": tuple(record.inherits),
        "optional": record.optional,
        **{key: getattr(record, key) for key in INFO_KEYS if key != "group"},
        "group": None if record.group is None else (record.group.uid, record.group.name),
        "editor": record.editor,
        "editor_props": record.editor_props,
        "default_value": record.default_value,
        "value_converter_input": _converter_state(record.value_converter_input),
        "value_converter_output": _converter_state(record.value_converter_output),
        "is_value_convertable": _converter_state(record.is_value_convertable),
    }

    kind = record.kind
    if kind == MetaKind.ARRAY:
        descriptor["array_of"] = _resolve(record.array_of, built, record.id)
    elif kind == MetaKind.OBJECT:
        descriptor["attributes"] = {
            name: _resolve(ref, built, record.id) for name, ref in record.attributes or []
        }
    elif kind == MetaKind.FUNCTION:
        descriptor["arguments"] = [
            _resolve(ref, built, record.id) for ref in record.arguments or []
        ]
        descriptor["result"] = _resolve(record.result, built, record.id)
        descriptor["name"] = record.name
    elif kind == MetaKind.PROMISE:
        descriptor["result"] = _resolve(record.result, built, record.id)
    elif kind == MetaKind.UNION:
        descriptor["types"] = [_resolve(ref, built, record.id) for ref in record.types or []]
    elif kind in (MetaKind.VARIANT, MetaKind.RESOURCE):
        descriptor["variants"] = {
            tag: _resolve(ref, built, record.id) for tag, ref in record.variants or []
        }
        descriptor["invariant"] = record.invariant
    return descriptor


def deserialize(records: Iterable[MetaRecord | Mapping[str, Any]]) -> Meta:
    """Rebuild the tree whose root is the last record."""
    built: dict[str, Meta] = dict(BUILTIN_TYPES)
    root: Meta | None = None
    for raw in records:
        record = raw if isinstance(raw, MetaRecord) else MetaRecord.model_validate(raw)
        root = meta(_descriptor_from_record(record, built))
        built[record.id] = root
    if root is None:
        raise InvalidDescriptorError([], "no records to deserialize")
    logger.debug("Deserialized meta tree", extra={"meta_id": root.get_id()})
    return root


def from_json(text: str | bytes) -> Meta:
    return deserialize(MetaRecordList.validate_json(text))
