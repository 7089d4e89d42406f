"""Attribute Grouping — re-tag every attribute of an object map in one call.

Invariants:
    - Returns a NEW mapping with the same keys in the same order; input untouched
    - Only the targeted facet changes; editor handle and editor props are carried by reference
    - None attributes stay None
"""

from typing import Any, Callable, Mapping

from metatypes.core.descriptor import Meta
from metatypes.core.factory import meta


def _retag(
    attributes: Mapping[str, Any] | None, change: Callable[[Meta], Meta],
) -> dict[str, Meta | None]:
    result: dict[str, Meta | None] = {}
    for name, attribute in (attributes or {}).items():
        result[name] = None if attribute is None else change(meta(attribute))
    return result


def group(label: str, attributes: Mapping[str, Any] | None) -> dict[str, Meta | None]:
    """Move every attribute into category `label`."""
    return _retag(attributes, lambda attribute: attribute.category(label))


def subgroup(
    uid: str, attributes: Mapping[str, Any] | None, name: str | None = None,
) -> dict[str, Meta | None]:
    """Move every attribute into the group `uid` (displayed as `name`) of its category."""
    return _retag(attributes, lambda attribute: attribute.in_group(uid, name))


def extended(attributes: Mapping[str, Any] | None, title: str = "") -> dict[str, Meta | None]:
    """Mark every attribute as shown on demand."""
    return _retag(attributes, lambda attribute: attribute.extended(title))
