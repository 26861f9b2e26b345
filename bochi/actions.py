"""
@file actions.py
@brief Command dispatcher: resolves a selector and performs the device action.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .actionlogger import ACTION_LOGGER
from .config import TimeConfig
from .context import tracked_action
from .device import Device
from .exceptions import ActionFailure, BochiError, NotFoundError
from .matcher import first_match
from .resolver import ResolvedMatch, Resolver, SelectorLike, as_selector
from .selector import SelectorList
from .waits import Deadline, pause

COMMANDS = ("waitFor", "tap", "inputText", "longTap", "doubleTap", "scrollUp", "scrollDown")

LONG_TAP_DURATION_MS = 1000

# Fractions of the container height used as swipe endpoints.
SCROLL_NEAR = 0.25
SCROLL_FAR = 0.75


@dataclass
class CommandResult:
    """Outcome of one successfully executed command."""
    command: str
    selector: str
    match: Optional[ResolvedMatch] = None
    scrolls: int = 0
    dump: Optional[str] = None
    duration_sec: float = 0.0


def _tap_point(match: ResolvedMatch, action: str) -> Tuple[int, int]:
    point = match.tap_point
    if point is None:
        raise ActionFailure(action, details=f"matched node has no bounds: {match}")
    return point


def is_text_target(match: ResolvedMatch) -> bool:
    """True when the node can take keyboard focus."""
    node = match.node
    return node.get("focusable") == "true" or "EditText" in (node.get("class") or "")


class Actions:
    """
    Keyword command library.

    Every command resolves its selector through the Resolver, then issues
    device actions on the first match. Device errors are wrapped in
    ActionFailure; BochiError subclasses propagate unchanged.
    """

    def __init__(self, resolver: Resolver, device: Device, config: Optional[TimeConfig] = None):
        """
        @param resolver Resolver sampling the device's UI
        @param device Actuator for taps, swipes and text
        @param config Timing configuration; defaults to the resolver's
        """
        self.resolver = resolver
        self.device = device
        self.config = config or resolver.config
        self._handlers: Dict[str, Callable[..., CommandResult]] = {
            "waitFor": self.wait_for,
            "tap": self.tap,
            "doubleTap": self.double_tap,
            "longTap": self.long_tap,
            "inputText": self.input_text,
            "scrollUp": self.scroll_up,
            "scrollDown": self.scroll_down,
        }

    def execute(
        self,
        command: str,
        selector: SelectorLike,
        timeout: Optional[float] = None,
        **params: Any,
    ) -> CommandResult:
        """
        Run one command by name.

        @param command One of COMMANDS
        @param selector Selector text or parsed SelectorList
        @param timeout Overall timeout in seconds (shared by every step)
        @param params Command parameters: ``dump`` (waitFor), ``text`` (inputText),
                      ``target`` (scrollUp/scrollDown)
        @throws SelectorSyntaxError before any polling if a selector is malformed
        """
        handler = self._handlers.get(command)
        if handler is None:
            raise ActionFailure(
                command,
                details=f"Unknown command: {command}. Supported: {', '.join(COMMANDS)}",
            )
        selector_list = as_selector(selector)
        start = time.monotonic()
        result = handler(selector_list, timeout=timeout, **params)
        result.duration_sec = time.monotonic() - start
        return result

    def _deadline(self, timeout: Optional[float]) -> Deadline:
        return Deadline.after(timeout if timeout is not None else self.resolver.timeout)

    @tracked_action("waitFor")
    def wait_for(
        self,
        selector: SelectorLike,
        timeout: Optional[float] = None,
        dump: bool = False,
    ) -> CommandResult:
        """Succeed once the selector matches; optionally serialize the subtree."""
        selector_list = as_selector(selector)
        match = self.resolver.resolve(selector_list, timeout)
        return CommandResult(
            command="waitFor",
            selector=selector_list.text,
            match=match,
            dump=match.subtree_yaml() if dump else None,
        )

    @tracked_action("tap")
    def tap(self, selector: SelectorLike, timeout: Optional[float] = None) -> CommandResult:
        """Tap the center of the first match."""
        selector_list = as_selector(selector)
        match = self.resolver.resolve(selector_list, timeout)
        x, y = _tap_point(match, "tap")
        try:
            self.device.tap(x, y)
        except BochiError:
            raise
        except Exception as e:
            raise ActionFailure("tap", details=str(match), cause=e) from e
        return CommandResult(command="tap", selector=selector_list.text, match=match)

    @tracked_action("doubleTap")
    def double_tap(self, selector: SelectorLike, timeout: Optional[float] = None) -> CommandResult:
        """Two taps at the same point, separated by ``double_tap_pause``."""
        selector_list = as_selector(selector)
        match = self.resolver.resolve(selector_list, timeout)
        x, y = _tap_point(match, "doubleTap")
        try:
            self.device.tap(x, y)
            pause(self.config.double_tap_pause)
            self.device.tap(x, y)
        except BochiError:
            raise
        except Exception as e:
            raise ActionFailure("doubleTap", details=str(match), cause=e) from e
        return CommandResult(command="doubleTap", selector=selector_list.text, match=match)

    @tracked_action("longTap")
    def long_tap(self, selector: SelectorLike, timeout: Optional[float] = None) -> CommandResult:
        """Press and hold for a fixed 1000 ms (zero-distance swipe)."""
        selector_list = as_selector(selector)
        match = self.resolver.resolve(selector_list, timeout)
        x, y = _tap_point(match, "longTap")
        try:
            self.device.swipe(x, y, x, y, LONG_TAP_DURATION_MS)
        except BochiError:
            raise
        except Exception as e:
            raise ActionFailure("longTap", details=str(match), cause=e) from e
        return CommandResult(command="longTap", selector=selector_list.text, match=match)

    @tracked_action("inputText")
    def input_text(
        self,
        selector: SelectorLike,
        text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Focus the matched field with a tap, then type ``text`` literally."""
        if text is None:
            raise ActionFailure("inputText", details="inputText requires a text parameter")
        selector_list = as_selector(selector)
        match = self.resolver.resolve(selector_list, timeout)
        if not is_text_target(match):
            raise ActionFailure(
                "inputText", details=f"matched node is not focusable: {match}"
            )
        x, y = _tap_point(match, "inputText")
        try:
            self.device.tap(x, y)
            pause(self.config.focus_pause)
            if text:
                self.device.input_text(text)
        except BochiError:
            raise
        except Exception as e:
            raise ActionFailure("inputText", details=str(match), cause=e) from e
        return CommandResult(command="inputText", selector=selector_list.text, match=match)

    @tracked_action("scrollUp")
    def scroll_up(
        self,
        selector: SelectorLike,
        target: Optional[SelectorLike] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Scroll the matched container up until ``target`` is visible."""
        return self._scroll("scrollUp", selector, target, timeout)

    @tracked_action("scrollDown")
    def scroll_down(
        self,
        selector: SelectorLike,
        target: Optional[SelectorLike] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Scroll the matched container down until ``target`` is visible."""
        return self._scroll("scrollDown", selector, target, timeout)

    def _swipe(self, command: str, container: ResolvedMatch) -> None:
        bounds = container.node.bounds
        if bounds is None:
            raise ActionFailure(command, details=f"scroll container has no bounds: {container}")
        left, top, right, bottom = bounds
        x = (left + right) // 2
        height = bottom - top
        near = top + int(height * SCROLL_NEAR)
        far = top + int(height * SCROLL_FAR)
        y1, y2 = (far, near) if command == "scrollDown" else (near, far)
        try:
            self.device.swipe(x, y1, x, y2, int(round(self.config.swipe_duration * 1000)))
        except BochiError:
            raise
        except Exception as e:
            raise ActionFailure(command, details=str(container), cause=e) from e

    def _scroll(
        self,
        command: str,
        selector: SelectorLike,
        target: Optional[SelectorLike],
        timeout: Optional[float],
    ) -> CommandResult:
        """
        Swipe the container, then sample one snapshot for the target.

        The container is re-located in each sampled snapshot so its bounds are
        never reused across snapshots. One deadline covers the initial
        container resolution and every iteration.
        """
        if target is None:
            raise ActionFailure(command, details=f"{command} requires a target selector")
        container_list = as_selector(selector)
        target_list: SelectorList = as_selector(target)
        deadline = self._deadline(timeout)

        container = self.resolver.resolve(container_list, deadline=deadline)
        scrolls = 0
        while True:
            self._swipe(command, container)
            scrolls += 1
            pause(self.config.scroll_settle_pause)

            tree, hit = self.resolver.sample(target_list)
            ACTION_LOGGER.log(
                action=command,
                selector=target_list.text,
                status="ok" if hit is not None else "info",
                attempt=scrolls,
                phase="scroll",
                event="scroll_step",
            )
            if hit is not None:
                return CommandResult(
                    command=command,
                    selector=container_list.text,
                    match=hit,
                    scrolls=scrolls,
                )
            if deadline.expired():
                raise NotFoundError(
                    target_list.text,
                    timeout=deadline.timeout,
                    attempt_count=scrolls,
                    elapsed_time=deadline.elapsed(),
                )

            node = first_match(tree, container_list)
            if node is None:
                raise ActionFailure(
                    command,
                    details=f"scroll container no longer present: {container_list.text}",
                )
            container = ResolvedMatch(node=node, tree=tree)
