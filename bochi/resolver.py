"""
@file resolver.py
@brief Resolves selectors against freshly sampled snapshots under a deadline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import yaml

from .config import TimeConfig
from .context import ActionContextManager
from .exceptions import NotFoundError, WaitTimeoutError
from .matcher import first_match
from .selector import SelectorList, parse_selector
from .snapshot import SnapshotSource
from .tree import UiNode, UiTree
from .waits import Deadline, wait_until

SelectorLike = Union[str, SelectorList]


def as_selector(selector: SelectorLike) -> SelectorList:
    """Parse selector text; pass parsed selectors through."""
    if isinstance(selector, SelectorList):
        return selector
    return parse_selector(selector)


@dataclass(frozen=True)
class ResolvedMatch:
    """
    A matched node together with the snapshot it came from.

    Only valid for that snapshot; never keep one across polls.
    """
    node: UiNode
    tree: UiTree

    @property
    def tap_point(self) -> Optional[Tuple[int, int]]:
        return self.node.tap_point

    def subtree_yaml(self) -> str:
        """YAML rendering of the matched node and everything below it."""
        return yaml.safe_dump(self.tree.to_dict(self.node), sort_keys=False, allow_unicode=True)

    def __str__(self) -> str:
        return self.node.describe()


class Resolver:
    """
    Samples snapshots from a SnapshotSource until a selector matches.

    Strictly sequential: one snapshot is acquired and matched at a time.
    """

    def __init__(self, source: SnapshotSource, config: Optional[TimeConfig] = None):
        """
        @param source Supplier of fresh UiTree snapshots
        @param config Timing configuration (poll interval, default timeout)
        """
        self.source = source
        self.config = config or TimeConfig()

    @property
    def timeout(self) -> float:
        """Default timeout when the caller gives neither timeout nor deadline."""
        return self.config.resolve.timeout

    @property
    def interval(self) -> float:
        """Polling interval between snapshots."""
        return self.config.resolve.interval

    def sample(self, selector: SelectorLike) -> Tuple[UiTree, Optional[ResolvedMatch]]:
        """
        Acquire one snapshot and match against it.

        @return The snapshot and its first match in document order (or None)
        @throws SnapshotError if the snapshot cannot be acquired
        """
        selector_list = as_selector(selector)
        tree = self.source.acquire()
        node = first_match(tree, selector_list)
        if node is None:
            return tree, None
        return tree, ResolvedMatch(node=node, tree=tree)

    def resolve(
        self,
        selector: SelectorLike,
        timeout: Optional[float] = None,
        *,
        deadline: Optional[Deadline] = None,
    ) -> ResolvedMatch:
        """
        Resolve a selector to the first matching node of a fresh snapshot.

        @param selector Selector text or parsed SelectorList
        @param timeout Seconds to keep polling; zero or negative means one attempt
        @param deadline Shared deadline; takes precedence over ``timeout``
        @return ResolvedMatch from the first snapshot that matched
        @throws NotFoundError if the deadline passes without a match
        @throws SnapshotError if a snapshot cannot be acquired (not retried)
        """
        selector_list = as_selector(selector)
        if deadline is None:
            deadline = Deadline.after(timeout if timeout is not None else self.timeout)

        text = selector_list.text
        with ActionContextManager.action("resolve", selector=text):
            try:
                return wait_until(
                    lambda: self.sample(selector_list)[1],
                    deadline,
                    interval=self.interval,
                    description=f"selector {text}",
                    stage="resolve",
                )
            except WaitTimeoutError as e:
                raise NotFoundError(
                    text,
                    timeout=deadline.timeout,
                    attempt_count=e.attempt_count,
                    elapsed_time=e.elapsed_time,
                ) from e
