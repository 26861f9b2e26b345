"""
@file context.py
@brief Nested command/resolution contexts for error traces and action logs.

A dispatcher command opens a context, resolution opens a child, and every
poll attempt made by ``wait_until`` is counted on every open context so a
failure trace shows how many snapshots each step consumed.
"""

from __future__ import annotations

import functools
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional
from uuid import uuid4

from .exceptions import BochiError


@dataclass
class ActionContext:
    """One entry of the context stack."""
    action_name: str
    selector: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent_context: Optional["ActionContext"] = None
    action_id: str = field(default_factory=lambda: uuid4().hex[:8])
    start_time: float = field(default_factory=time.monotonic)
    attempts: int = 0

    @property
    def description(self) -> str:
        if self.selector:
            return f"{self.action_name} on '{self.selector}'"
        return self.action_name

    @property
    def elapsed_time(self) -> float:
        return time.monotonic() - self.start_time

    def chain(self) -> Iterator["ActionContext"]:
        """Yield this context and its ancestors, innermost first."""
        ctx: Optional[ActionContext] = self
        while ctx is not None:
            yield ctx
            ctx = ctx.parent_context

    def format_trace(self) -> str:
        lines = ["Action trace (most recent first):"]
        for depth, ctx in enumerate(self.chain()):
            marker = "  X " if depth == 0 else "  -> "
            suffix = ""
            if ctx.attempts:
                suffix = f", {ctx.attempts} attempt" + ("s" if ctx.attempts != 1 else "")
            lines.append(f"{marker}{ctx.description} [{ctx.elapsed_time:.2f}s{suffix}]")
        return "\n".join(lines)


class ActionContextManager:
    """Per-thread stack of ActionContext entries."""

    _local = threading.local()

    @classmethod
    def _stack(cls) -> List[ActionContext]:
        stack = getattr(cls._local, "stack", None)
        if stack is None:
            stack = cls._local.stack = []
        return stack

    @classmethod
    def current(cls) -> Optional[ActionContext]:
        stack = cls._stack()
        return stack[-1] if stack else None

    @classmethod
    def record_attempt(cls) -> None:
        """Count one poll attempt against every open context."""
        for ctx in cls._stack():
            ctx.attempts += 1

    @classmethod
    @contextmanager
    def action(cls, action_name: str, selector: Optional[str] = None, **metadata: Any) -> Iterator[ActionContext]:
        stack = cls._stack()
        ctx = ActionContext(action_name, selector, metadata, parent_context=stack[-1] if stack else None)
        stack.append(ctx)
        try:
            yield ctx
        except BochiError as exc:
            if exc.action_trace is None:
                exc.action_trace = ctx.format_trace()
            raise
        finally:
            stack.pop()

    @classmethod
    def clear(cls) -> None:
        cls._local.stack = []


def _selector_text(value: Any) -> Optional[str]:
    # Selector objects keep their source in ``.text``; raw strings pass through.
    if value is None:
        return None
    return getattr(value, "text", None) or str(value)


def tracked_action(action_name: Optional[str] = None) -> Callable:
    """
    Decorate an ``Actions`` method so it runs inside its own context and
    emits one ``action_finish`` event with status ``ok`` or ``error``.

    The selector is taken from the ``selector`` keyword or the first
    positional argument after ``self``; all other keywords become event
    metadata.
    """
    def decorator(func: Callable) -> Callable:
        name = action_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            from .actionlogger import ACTION_LOGGER

            selector = kwargs.get("selector", args[1] if len(args) > 1 else None)
            selector_text = _selector_text(selector)
            metadata = {k: v for k, v in kwargs.items() if k != "selector"}

            with ActionContextManager.action(name, selector=selector_text) as ctx:
                error: Optional[BaseException] = None
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    error = exc
                    raise
                finally:
                    ACTION_LOGGER.log(
                        action=name,
                        selector=selector_text,
                        status="error" if error is not None else "ok",
                        duration_ms=int(ctx.elapsed_time * 1000),
                        metadata=metadata,
                        exception=error,
                        action_id=ctx.action_id,
                        phase="execute",
                        attempt=ctx.attempts or None,
                        event="action_finish",
                    )

        return wrapper

    return decorator
