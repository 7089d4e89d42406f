"""Meta Record Schema — one flat, id-referencing row of a serialized meta tree.

Invariants:
    - Nested instances are referenced by id only (array_of, attributes, arguments,
      result, types, variants); a tree becomes a list of records, dependencies first
    - editor is a string: import path of a callable handle ("module:qualname") or the handle itself
    - editor_props and default_value hold JSON-compatible values only

Design Decisions:
    - Optional kind-specific columns over one model per kind: a single row type keeps
      the list homogeneous and trivially JSON-dumpable
    - Pairs as tuples: attribute order is preserved, unlike a JSON object in some stores
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from metatypes.core.descriptor import MetaKind


class MetaGroupRecord(BaseModel):
    """Group facet: stable uid + display name."""
    uid: str = Field(min_length=1)
    name: str


class MetaRecord(BaseModel):
    """Serialized form of a single meta instance."""
    model_config = ConfigDict(frozen=True)

    kind: MetaKind
    id: str = Field(min_length=1)
    fixed_id: bool = False
    inherits: list[str] = Field(default_factory=list)
    optional: bool = False

    # Info
    description: str | None = None
    title: str | None = None
    category: str | None = None
    group: MetaGroupRecord | None = None
    order: int | None = None
    hidden: bool = False
    disabled: bool = False
    extended: str | None = None

    # Editor / default
    editor: str | None = None
    editor_props: dict[str, Any] | None = None
    default_value: Any = None

    # Converter loaders, as import paths
    value_converter_input: str | None = None
    value_converter_output: str | None = None
    is_value_convertable: str | None = None

    # Kind-specific references
    array_of: str | None = None
    attributes: list[tuple[str, str | None]] | None = None
    arguments: list[str] | None = None
    result: str | None = None
    name: str | None = None
    types: list[str] | None = None
    variants: list[tuple[str, str]] | None = None
    invariant: str | None = None


MetaRecordList = TypeAdapter(list[MetaRecord])
