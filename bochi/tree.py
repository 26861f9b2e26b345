"""
@file tree.py
@brief Immutable UI snapshot model: nodes stored in a pre-order arena.

Parent and child links are indices into the owning tree's node list, so a
snapshot never holds reference cycles. Node ``i``'s strict descendants are the
contiguous slice ``nodes[i + 1:node.end]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

Bounds = Tuple[int, int, int, int]

ATTRIBUTE_ALIASES: Dict[str, str] = {
    "content-desc": "contentDescription",
    "content_desc": "contentDescription",
    "content-description": "contentDescription",
    "resource-id": "resourceId",
    "resource_id": "resourceId",
    "long-clickable": "longClickable",
    "long_clickable": "longClickable",
}

_BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")


def normalize_attribute_name(name: str) -> str:
    """Map dump/selector spellings onto the canonical attribute name."""
    return ATTRIBUTE_ALIASES.get(name, name)


def parse_bounds(value: Optional[str]) -> Optional[Bounds]:
    """
    Parse the packed ``[l,t][r,b]`` form used by uiautomator dumps.

    @return (left, top, right, bottom) or None when the text is not a rectangle
    """
    if not value:
        return None
    m = _BOUNDS_PATTERN.search(value)
    if m is None:
        return None
    left, top, right, bottom = (int(g) for g in m.groups())
    return left, top, right, bottom


@dataclass(frozen=True, eq=False)
class UiNode:
    """One element of a snapshot. Only meaningful together with its UiTree."""
    index: int
    tag: str
    attributes: Mapping[str, str]
    bounds: Optional[Bounds]
    children: Tuple[int, ...]
    parent: Optional[int]
    end: int

    def get(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    @property
    def tap_point(self) -> Optional[Tuple[int, int]]:
        """Center of the bounding rectangle."""
        if self.bounds is None:
            return None
        left, top, right, bottom = self.bounds
        return (left + right) // 2, (top + bottom) // 2

    def describe(self) -> str:
        """Short human-readable label for logs and error messages."""
        parts = [self.attributes.get("class") or self.tag]
        for key in ("resourceId", "text", "contentDescription"):
            value = self.attributes.get(key)
            if value:
                parts.append(f"{key}={value!r}")
        if self.bounds is not None:
            parts.append("bounds=[{},{}][{},{}]".format(*self.bounds))
        return " ".join(parts)


class UiTree:
    """
    A single point-in-time snapshot.

    Nodes are stored in pre-order; ``nodes[0]`` is the root.
    """

    def __init__(self, nodes: Sequence[UiNode]):
        if not nodes:
            raise ValueError("UiTree requires at least a root node")
        self._nodes: Tuple[UiNode, ...] = tuple(nodes)

    @property
    def root(self) -> UiNode:
        return self._nodes[0]

    @property
    def nodes(self) -> Tuple[UiNode, ...]:
        return self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[UiNode]:
        """Iterate in pre-order (document order)."""
        return iter(self._nodes)

    def node(self, index: int) -> UiNode:
        return self._nodes[index]

    def parent_of(self, node: UiNode) -> Optional[UiNode]:
        if node.parent is None:
            return None
        return self._nodes[node.parent]

    def children_of(self, node: UiNode) -> List[UiNode]:
        return [self._nodes[i] for i in node.children]

    def descendants(self, node: UiNode) -> Tuple[UiNode, ...]:
        """Strict descendants of ``node`` in pre-order."""
        return self._nodes[node.index + 1:node.end]

    def to_dict(self, node: Optional[UiNode] = None) -> Dict[str, object]:
        """Nested plain-data rendering of a subtree (root by default)."""
        node = node if node is not None else self.root
        data: Dict[str, object] = {"tag": node.tag, "attributes": dict(node.attributes)}
        if node.bounds is not None:
            data["bounds"] = list(node.bounds)
        children = [self.to_dict(child) for child in self.children_of(node)]
        if children:
            data["children"] = children
        return data


@dataclass
class _PendingNode:
    index: int
    tag: str
    attributes: Dict[str, str]
    parent: Optional[int]
    children: List[int] = field(default_factory=list)


class TreeBuilder:
    """
    Builds a UiTree from a depth-first walk.

    Call ``open`` when entering an element and ``close`` when leaving it; node
    indices are assigned in the order elements are opened.
    """

    def __init__(self) -> None:
        self._slots: List[Optional[UiNode]] = []
        self._pending: List[_PendingNode] = []

    def open(self, tag: str, raw_attributes: Mapping[str, str]) -> int:
        index = len(self._slots)
        if not self._pending and self._slots:
            raise ValueError("a snapshot has exactly one root")
        parent = self._pending[-1] if self._pending else None
        if parent is not None:
            parent.children.append(index)
        self._slots.append(None)
        self._pending.append(_PendingNode(
            index=index,
            tag=tag,
            attributes={normalize_attribute_name(k): v for k, v in raw_attributes.items()},
            parent=parent.index if parent is not None else None,
        ))
        return index

    def close(self) -> UiNode:
        pending = self._pending.pop()
        node = UiNode(
            index=pending.index,
            tag=pending.tag,
            attributes=MappingProxyType(pending.attributes),
            bounds=parse_bounds(pending.attributes.get("bounds")),
            children=tuple(pending.children),
            parent=pending.parent,
            end=len(self._slots),
        )
        self._slots[node.index] = node
        return node

    def build(self) -> UiTree:
        if self._pending:
            raise ValueError("unclosed nodes remain")
        return UiTree([n for n in self._slots if n is not None])


def build_tree(data: Mapping[str, object]) -> UiTree:
    """
    Build a tree from nested plain data (the shape produced by ``UiTree.to_dict``).

    ``{"tag": "node", "attributes": {...}, "children": [...]}``; ``tag`` defaults to ``node``.
    """
    builder = TreeBuilder()

    def visit(item: Mapping[str, object]) -> None:
        builder.open(str(item.get("tag", "node")), dict(item.get("attributes") or {}))  # type: ignore[arg-type]
        for child in item.get("children") or []:  # type: ignore[union-attr]
            visit(child)
        builder.close()

    visit(data)
    return builder.build()
