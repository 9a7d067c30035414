"""
hierarchy.py — Classification hierarchies (multi-parent "is-a" graphs)

Each axis (domain, kind, traits, or any custom axis) is a directed acyclic
graph of tag -> parent-set edges. A tag may have several parents, so
"iso/fiat" can be both an "iso" and a "fiat" kind at once.

Only "is-a" queries are exposed. Ancestor sets are computed once per tag and
memoized on the (immutable) Hierarchy instance.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .exceptions import ConfigurationError


__all__ = ["Hierarchy", "Hierarchies", "DOMAIN", "KIND", "TRAITS"]


DOMAIN = "domain"
KIND = "kind"
TRAITS = "traits"


def _normalize_tag(axis: str, tag: Any) -> str:
    text = str(tag).strip()
    if not text:
        raise ConfigurationError(f"Empty tag on axis {axis!r}", op="hierarchy", axis=axis)
    return text.upper() if axis == DOMAIN else text


@dataclass(frozen=True)
class Hierarchy:
    """
    Immutable DAG of tag -> parents.

    INVARIANTS:
    1. no cycles (derive() refuses edges that would close one)
    2. a tag is-a itself
    """
    axis: str
    parents: Mapping[str, frozenset[str]] = field(default_factory=dict)
    _ancestors: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parents", MappingProxyType(dict(self.parents)))

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_map(cls, axis: str, edges: Mapping[Any, Any] | None) -> Hierarchy:
        """
        Builds from {child: parent} or {child: [parent, ...]}.

        Children are processed in sorted order so that the same description
        always yields the same graph (and the same error on a cycle).
        """
        hierarchy = cls(axis)
        for child in sorted(edges or {}, key=str):
            parents = edges[child]
            if isinstance(parents, (str, bytes)) or not isinstance(parents, Iterable):
                parents = [parents]
            for parent in sorted(parents, key=str):
                hierarchy = hierarchy.derive(child, parent)
        return hierarchy

    def derive(self, child: Any, parent: Any) -> Hierarchy:
        """New hierarchy with the edge child -> parent added."""
        child = _normalize_tag(self.axis, child)
        parent = _normalize_tag(self.axis, parent)
        if child == parent or self.isa(parent, child):
            raise ConfigurationError(
                f"Cyclic derivation on axis {self.axis!r}: {child} -> {parent}",
                op="derive", axis=self.axis, child=child, parent=parent,
            )
        edges = dict(self.parents)
        edges[child] = edges.get(child, frozenset()) | {parent}
        return Hierarchy(self.axis, edges)

    def underive(self, child: Any, parent: Any) -> Hierarchy:
        """New hierarchy without the edge child -> parent."""
        child = _normalize_tag(self.axis, child)
        parent = _normalize_tag(self.axis, parent)
        edges = dict(self.parents)
        remaining = edges.get(child, frozenset()) - {parent}
        if remaining:
            edges[child] = remaining
        else:
            edges.pop(child, None)
        return Hierarchy(self.axis, edges)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def ancestors(self, tag: Any) -> frozenset[str]:
        """All tags reachable through parent edges (tag itself excluded)."""
        tag = _normalize_tag(self.axis, tag)
        cached = self._ancestors.get(tag)
        if cached is not None:
            return cached
        seen: set[str] = set()
        stack = list(self.parents.get(tag, ()))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.parents.get(current, ()))
        result = frozenset(seen)
        self._ancestors[tag] = result
        return result

    def descendants(self, tag: Any) -> frozenset[str]:
        tag = _normalize_tag(self.axis, tag)
        return frozenset(child for child in self.parents if tag in self.ancestors(child))

    def isa(self, tag: Any, ancestor: Any) -> bool:
        """True when tag equals ancestor or descends from it."""
        if tag is None or ancestor is None:
            return False
        tag = _normalize_tag(self.axis, tag)
        ancestor = _normalize_tag(self.axis, ancestor)
        return tag == ancestor or ancestor in self.ancestors(tag)

    def to_dict(self) -> dict[str, list[str]]:
        return {child: sorted(parents) for child, parents in sorted(self.parents.items())}

    def __len__(self) -> int:
        return len(self.parents)


@dataclass(frozen=True)
class Hierarchies:
    """Hierarchies keyed by axis name. A missing axis means exact matching only."""
    axes: Mapping[str, Hierarchy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "axes", MappingProxyType(dict(self.axes)))

    @classmethod
    def from_map(cls, data: Mapping[str, Mapping[Any, Any]] | None) -> Hierarchies:
        return cls({axis: Hierarchy.from_map(axis, edges) for axis, edges in (data or {}).items()})

    def get(self, axis: str) -> Hierarchy | None:
        return self.axes.get(axis)

    def isa(self, axis: str, tag: Any, ancestor: Any) -> bool:
        if tag is None or ancestor is None:
            return False
        hierarchy = self.axes.get(axis)
        if hierarchy is None:
            return _normalize_tag(axis, tag) == _normalize_tag(axis, ancestor)
        return hierarchy.isa(tag, ancestor)

    def derive(self, axis: str, child: Any, parent: Any) -> Hierarchies:
        hierarchy = self.axes.get(axis) or Hierarchy(axis)
        return self.with_axis(hierarchy.derive(child, parent))

    def with_axis(self, hierarchy: Hierarchy) -> Hierarchies:
        axes = dict(self.axes)
        axes[hierarchy.axis] = hierarchy
        return Hierarchies(axes)

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        return {axis: hierarchy.to_dict() for axis, hierarchy in sorted(self.axes.items())}
