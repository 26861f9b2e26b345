"""
@file actionlogger.py
@brief Per-command event log for device actions and snapshot polling.

Each dispatcher command emits one ``action_finish`` event; polling loops add
sampled ``poll_attempt`` events and scroll loops add ``scroll_step`` events.
Output goes to stderr (stdout is reserved for ``--dump``) and optionally to a
file, as ``line`` or ``jsonl``.
"""

from __future__ import annotations

import json
import os
import sys
import time
import traceback
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

FORMATS = ("line", "jsonl")

# Actions whose ``text`` metadata is what the user typed.
TEXT_ACTIONS = {"inputText", "input_text"}

SENSITIVE_KEYS = {"password", "passwd", "secret", "token"}


def mask_text(text: str) -> str:
    """Hide typed text; keep only its length."""
    return f"***({len(text)} chars)"


def redact_metadata(action: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    redacted: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key.lower() in SENSITIVE_KEYS:
            redacted[key] = "***"
        elif key == "text" and action in TEXT_ACTIONS:
            redacted[key] = mask_text(str(value))
        else:
            redacted[key] = value
    return redacted


def describe_exception(exc: BaseException, limit: int) -> Dict[str, Any]:
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).strip()
    if len(tb) > limit:
        tb = tb[:limit] + "...<truncated>"
    cause = exc.__cause__
    return {
        "type": type(exc).__name__,
        "message": str(exc),
        "traceback": tb,
        "cause_type": type(cause).__name__ if cause is not None else None,
        "cause_message": str(cause) if cause is not None else None,
    }


@dataclass
class ActionEvent:
    """One log record."""
    action: str
    event: str = "action"
    status: str = "ok"
    level: str = "INFO"
    selector: Optional[str] = None
    action_id: Optional[str] = None
    phase: Optional[str] = None
    attempt: Optional[int] = None
    duration_ms: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Dict[str, Any]] = None
    ts: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    )

    def to_json(self) -> str:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)

    def to_line(self) -> str:
        parts = [time.strftime("%H:%M:%S"), self.level, self.action, f"event={self.event}"]
        if self.action_id:
            parts.append(f"action_id={self.action_id}")
        if self.selector:
            parts.append(f"selector='{self.selector}'")
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.attempt is not None:
            parts.append(f"attempt={self.attempt}")
        parts.append(f"status={self.status}")
        if self.duration_ms is not None:
            parts.append(f"duration_ms={self.duration_ms}")
        parts.extend(f"{key}={value}" for key, value in self.metadata.items())
        if self.exception:
            parts.append(f"exc_type={self.exception['type']}")
            parts.append(f"exc_message={self.exception['message']}")
            if self.exception.get("cause_type"):
                parts.append(f"cause_type={self.exception['cause_type']}")
        return " | ".join(parts)


class ActionLogger:
    """Opt-in event log; disabled until ``enable`` is called."""

    def __init__(self) -> None:
        self._enabled = False
        self.configure()

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        level: str = "INFO",
        format: str = "line",
        max_traceback_chars: int = 4000,
        sample_retry_events: int = 1,
    ) -> None:
        """
        @param console Write events to stderr
        @param file_path Also append events to this file
        @param format ``line`` or ``jsonl``
        @param sample_retry_events Log only every Nth poll attempt (the first is always logged)
        @throws ValueError on an unknown format
        """
        fmt = (format or "line").lower()
        if fmt not in FORMATS:
            raise ValueError("ActionLogger format must be 'line' or 'jsonl'")
        self._console = bool(console)
        self._file_path = file_path
        self._level = level.upper()
        self._format = fmt
        self._max_traceback_chars = max(256, int(max_traceback_chars))
        self._sample_retry_events = max(1, int(sample_retry_events))

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def should_log_retry_attempt(self, attempt: int) -> bool:
        if attempt <= 1:
            return True
        return attempt % self._sample_retry_events == 0

    def log(
        self,
        *,
        action: str,
        selector: Optional[str] = None,
        status: str = "ok",
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        action_id: Optional[str] = None,
        phase: Optional[str] = None,
        attempt: Optional[int] = None,
        event: Optional[str] = None,
    ) -> None:
        if not self._enabled:
            return

        record = ActionEvent(
            action=action,
            event=event or "action",
            status=status,
            level=self._level,
            selector=selector,
            action_id=action_id,
            phase=phase,
            attempt=attempt,
            duration_ms=duration_ms,
            metadata=redact_metadata(action, dict(metadata or {})),
            exception=(
                describe_exception(exception, self._max_traceback_chars)
                if exception is not None else None
            ),
        )
        self._emit(record.to_json() if self._format == "jsonl" else record.to_line())

    def _emit(self, line: str) -> None:
        if self._console:
            print(line, file=sys.stderr, flush=True)
        if self._file_path:
            self._append(line)

    def _append(self, line: str) -> None:
        # A broken log file must never change the outcome of a command.
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)), exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            pass


ACTION_LOGGER = ActionLogger()
