"""
@file waits.py
@brief Deadline and polling primitives.

A single ``Deadline`` is created per invocation and threaded through every
call that may wait, so nested loops share one time budget instead of each
starting a fresh timeout.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from .context import ActionContextManager
from .exceptions import WaitTimeoutError
from .timinglogger import TIMING_LOGGER

T = TypeVar("T")


def _now() -> float:
    """Monotonic time source for deterministic timeout calculations."""
    return time.monotonic()


def pause(seconds: float) -> None:
    """Explicit settle pause between device actions."""
    if seconds > 0:
        time.sleep(seconds)


class Deadline:
    """
    A fixed point on the monotonic clock.

    A zero or negative timeout yields a deadline that is already expired, so
    callers still get exactly one attempt.
    """

    def __init__(self, timeout: float, start: Optional[float] = None):
        self.timeout = float(timeout)
        self.start = _now() if start is None else start
        self.end = self.start + max(self.timeout, 0.0)

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(seconds)

    def elapsed(self) -> float:
        return _now() - self.start

    def remaining(self) -> float:
        return max(0.0, self.end - _now())

    def expired(self) -> bool:
        return _now() >= self.end

    def __repr__(self) -> str:
        return f"Deadline(timeout={self.timeout}, remaining={self.remaining():.3f})"


def _log_poll_attempt(description: str, attempt: int, stage: Optional[str]) -> None:
    """Emit sampled poll attempt events to the action logger if enabled."""
    from .actionlogger import ACTION_LOGGER

    if not ACTION_LOGGER.is_enabled():
        return
    if not ACTION_LOGGER.should_log_retry_attempt(attempt):
        return

    ACTION_LOGGER.log(
        action="poll_attempt",
        status="info",
        metadata={"description": description},
        attempt=attempt,
        phase=stage or "resolve",
        event="poll_attempt",
    )


def wait_until(
    predicate: Callable[[], T],
    deadline: Deadline,
    interval: float = 0.5,
    description: str = "condition",
    stage: Optional[str] = None,
) -> T:
    """
    Run ``predicate`` until it returns a truthy value or ``deadline`` passes.

    The predicate always runs at least once, even on an expired deadline.
    Between attempts the loop sleeps ``min(interval, remaining)``. Exceptions
    raised by the predicate propagate immediately.

    @return The first truthy predicate result
    @throws WaitTimeoutError once the deadline has passed without success
    """
    attempt_count = 0

    if TIMING_LOGGER.is_enabled():
        TIMING_LOGGER.wait_started(description, deadline, interval, stage)

    while True:
        attempt_count += 1
        ActionContextManager.record_attempt()
        _log_poll_attempt(description, attempt_count, stage)

        result = predicate()
        if result:
            if TIMING_LOGGER.is_enabled():
                TIMING_LOGGER.wait_finished(description, deadline, attempt_count, stage, success=True)
            return result

        if deadline.expired():
            break

        sleep_time = min(interval, deadline.remaining())
        if sleep_time > 0:
            time.sleep(sleep_time)

    elapsed = deadline.elapsed()
    if TIMING_LOGGER.is_enabled():
        TIMING_LOGGER.wait_finished(description, deadline, attempt_count, stage, success=False)

    raise WaitTimeoutError(
        description,
        timeout=deadline.timeout,
        attempt_count=attempt_count,
        elapsed_time=elapsed,
    )
