"""Field and label selectors used to narrow list results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .model import ObjectMeta


@dataclass(frozen=True)
class Selector:
    """Matches a set of key/value pairs when every requirement holds."""

    requirements: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @classmethod
    def from_set(cls, pairs: Mapping[str, str]) -> "Selector":
        return cls(tuple(sorted(pairs.items())))

    @classmethod
    def everything(cls) -> "Selector":
        return cls()

    @property
    def empty(self) -> bool:
        return not self.requirements

    def matches(self, fields: Optional[Mapping[str, str]]) -> bool:
        fields = fields or {}
        return all(key in fields and fields[key] == value for key, value in self.requirements)

    def __str__(self) -> str:
        return ",".join(f"{key}={value}" for key, value in self.requirements)


@dataclass
class ListOptions:
    label_selector: Optional[Selector] = None
    field_selector: Optional[Selector] = None


def object_meta_fields(meta: ObjectMeta, namespaced: bool) -> dict[str, str]:
    """Return the selectable fields of an object's metadata."""
    fields = {"metadata.name": meta.name}
    if namespaced:
        fields["metadata.namespace"] = meta.namespace
    return fields


def _meta(obj: Any) -> ObjectMeta:
    return obj if isinstance(obj, ObjectMeta) else obj.metadata


def filter_nodes(nodes: Iterable[Any], selector: Selector) -> list[Any]:
    """Keep the nodes whose metadata fields match the selector."""
    return [n for n in nodes if selector.matches(object_meta_fields(_meta(n), False))]


def filter_partial_object_metadata(objects: Iterable[Any], selector: Selector) -> list[Any]:
    """Keep the namespaced objects whose metadata fields match the selector."""
    return [o for o in objects if selector.matches(object_meta_fields(_meta(o), True))]