"""
@file matcher.py
@brief Evaluates parsed selectors against a UiTree snapshot.
"""

from __future__ import annotations

from typing import List, Optional

from .selector import CompoundSelector, Selector, SelectorList
from .tree import UiNode, UiTree


def matches_compound(tree: UiTree, node: UiNode, compound: CompoundSelector) -> bool:
    """Check one node against an AND-group, ignoring its ancestors."""
    if not all(a.test(node.attributes) for a in compound.assertions):
        return False
    if compound.has is not None:
        if not any(matches(tree, d, compound.has) for d in tree.descendants(node)):
            return False
    if compound.not_ is not None:
        if matches(tree, node, compound.not_):
            return False
    return True


def matches_selector(tree: UiTree, node: UiNode, selector: Selector) -> bool:
    """
    Walk a ``c0 > c1 > ... > cN`` chain upwards from ``node``.

    ``node`` must satisfy cN, its parent c(N-1), and so on. A missing ancestor
    or a failing compound ends the walk; there is no backtracking.
    """
    current: Optional[UiNode] = node
    for compound in reversed(selector.compounds):
        if current is None:
            return False
        if not matches_compound(tree, current, compound):
            return False
        current = tree.parent_of(current)
    return True


def matches(tree: UiTree, node: UiNode, selector_list: SelectorList) -> bool:
    """True if any alternative of ``selector_list`` matches ``node``."""
    return any(matches_selector(tree, node, s) for s in selector_list.selectors)


def match_all(tree: UiTree, selector_list: SelectorList) -> List[UiNode]:
    """All matching nodes in pre-order (document order), root included."""
    return [node for node in tree if matches(tree, node, selector_list)]


def first_match(tree: UiTree, selector_list: SelectorList) -> Optional[UiNode]:
    """The first node in document order that matches, or None."""
    for node in tree:
        if matches(tree, node, selector_list):
            return node
    return None
