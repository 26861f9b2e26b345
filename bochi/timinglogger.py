"""
@file timinglogger.py
@brief Deadline-centric log of polling loops.

Every ``wait_until`` call produces a ``wait_start`` event and then exactly one
of ``wait_success`` or ``wait_timeout``, each carrying the deadline budget, the
attempt count and the elapsed monotonic time.
"""

from __future__ import annotations

import os
import sys
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .waits import Deadline

STATUS_BY_EVENT = {
    "wait_start": "info",
    "wait_success": "success",
    "wait_timeout": "error",
}


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".") or "0"
    return str(value)


class TimingLogger:
    """Writes one ``key=value`` line per polling event to stderr and/or a file."""

    def __init__(self) -> None:
        self._enabled = False
        self.configure()

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        level: str = "INFO",
    ) -> None:
        self._console = bool(console)
        self._file_path = file_path
        self._level = level.upper()

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def wait_started(
        self, description: str, deadline: "Deadline", interval: float, stage: Optional[str] = None
    ) -> None:
        self.log(
            event="wait_start",
            description=description,
            metadata={"stage": stage, "timeout_s": deadline.timeout, "interval_s": interval},
        )

    def wait_finished(
        self,
        description: str,
        deadline: "Deadline",
        attempts: int,
        stage: Optional[str] = None,
        *,
        success: bool,
    ) -> None:
        self.log(
            event="wait_success" if success else "wait_timeout",
            description=description,
            metadata={
                "stage": stage,
                "timeout_s": deadline.timeout,
                "attempts": attempts,
                "elapsed_s": deadline.elapsed(),
            },
        )

    def log(
        self,
        *,
        event: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit one event; ``None`` metadata values are left out."""
        if not self._enabled:
            return

        status = status or STATUS_BY_EVENT.get(event, "info")
        fields = [f"[{status}]", "[timing]", f"time={time.strftime('%H:%M:%S')}", f"event={event}"]
        if description:
            fields.append(f"description={description}")
        fields.extend(
            f"{key}={_format_value(value)}"
            for key, value in (metadata or {}).items()
            if value is not None
        )
        self._write(" ".join(fields))

    def _write(self, line: str) -> None:
        if self._console:
            print(line, file=sys.stderr, flush=True)
        if not self._file_path:
            return
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)), exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            pass


TIMING_LOGGER = TimingLogger()
