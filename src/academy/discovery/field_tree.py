"""Explicit tree view of loosely-typed documents for field discovery.

A stored document becomes a ``FieldNode`` whose children are either nested
``FieldNode`` mappings or ``FieldLeaf`` values (primitives, sequences, dates
and ``None``). Discovery is then a structural recursion over this closed type.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

INTERNAL_KEYS = frozenset({"_id", "__v"})


@dataclass(frozen=True)
class FieldLeaf:
    value: Any


@dataclass(frozen=True)
class FieldNode:
    children: dict[str, FieldTree] = field(default_factory=dict)


FieldTree = Union[FieldLeaf, FieldNode]


def build_tree(document: Mapping[str, Any], skip_keys: frozenset[str] = frozenset()) -> FieldNode:
    """Convert a document to a tree, dropping internal and skipped keys at every level."""
    children: dict[str, FieldTree] = {}
    for key, value in document.items():
        if key in INTERNAL_KEYS or key in skip_keys:
            continue
        if isinstance(value, Mapping):
            children[key] = build_tree(value, skip_keys)
        else:
            children[key] = FieldLeaf(value)
    return FieldNode(children)


def iter_leaves(tree: FieldTree, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield ``(dotted_path, value)`` for every leaf in document order."""
    if isinstance(tree, FieldLeaf):
        yield prefix, tree.value
        return
    for key, child in tree.children.items():
        path = f"{prefix}.{key}" if prefix else key
        yield from iter_leaves(child, path)


class FieldSamples:
    """Ordered path -> sample map; the first non-null sample of a path wins."""

    def __init__(self) -> None:
        self._samples: dict[str, Any] = {}

    def offer(self, path: str, value: Any) -> None:
        if path not in self._samples or self._samples[path] is None:
            self._samples[path] = value

    def offer_tree(self, tree: FieldTree, prefix: str = "") -> None:
        for path, value in iter_leaves(tree, prefix):
            self.offer(path, value)

    def items(self) -> Iterator[tuple[str, Any]]:
        yield from self._samples.items()

    def __contains__(self, path: object) -> bool:
        return path in self._samples

    def __getitem__(self, path: str) -> Any:
        return self._samples[path]

    def __len__(self) -> int:
        return len(self._samples)
