"""
@file device.py
@brief Device actuator interface and its adb implementation.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from .exceptions import ActionFailure, AdbError

_SHELL_SPECIAL = set("\\\"'`$()<>|;&*~?#!{}[]")


def escape_input_text(text: str) -> str:
    """
    Escape text for ``adb shell input text``.

    Spaces become ``%s`` and characters the device shell would interpret are
    backslash-escaped. Nothing else is transformed.
    """
    out: List[str] = []
    for ch in text:
        if ch == " ":
            out.append("%s")
        elif ch in _SHELL_SPECIAL:
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


class Device(ABC):
    """
    Abstract actuator for pointer and keyboard actions.

    Coordinates are absolute screen pixels.
    """

    @abstractmethod
    def tap(self, x: int, y: int) -> None:
        pass

    @abstractmethod
    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int) -> None:
        """Swipe between two points; identical points produce a long press."""
        pass

    @abstractmethod
    def input_text(self, text: str) -> None:
        """Type ``text`` into the focused field."""
        pass


class AdbDevice(Device):
    """
    Drives a device through the ``adb`` binary.

    Each call is one blocking ``subprocess.run``.
    """

    def __init__(
        self,
        serial: Optional[str] = None,
        adb_path: str = "adb",
        command_timeout: float = 20.0,
    ):
        """
        @param serial Device serial passed as ``-s``; None uses adb's default device
        @param adb_path adb executable name or path
        @param command_timeout Seconds before a single adb call is abandoned
        """
        self.serial = serial
        self.adb_path = adb_path
        self.command_timeout = command_timeout

    def command(self, *args: str) -> List[str]:
        cmd = [self.adb_path]
        if self.serial:
            cmd += ["-s", self.serial]
        cmd += list(args)
        return cmd

    def run(self, *args: str) -> str:
        """
        Run one adb command and return its stdout.

        @throws AdbError if adb is missing, times out, or exits non-zero
        """
        cmd = self.command(*args)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.command_timeout,
            )
        except FileNotFoundError as e:
            raise AdbError("adb is not available in the $PATH directories") from e
        except subprocess.TimeoutExpired as e:
            raise AdbError(
                f"adb command timed out after {self.command_timeout}s: {' '.join(cmd)}"
            ) from e
        except OSError as e:
            raise AdbError(f"Failed to execute adb: {e}") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise AdbError(
                f"{' '.join(cmd)} failed (exit {proc.returncode}): {stderr}",
                returncode=proc.returncode,
                stderr=stderr,
            )
        return proc.stdout or ""

    def shell(self, *args: str) -> str:
        return self.run("shell", *args)

    def _input(self, action: str, *args: str) -> None:
        try:
            self.shell("input", *args)
        except AdbError as e:
            raise ActionFailure(action, details=str(e), cause=e) from e

    def tap(self, x: int, y: int) -> None:
        self._input("tap", "tap", str(x), str(y))

    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int) -> None:
        self._input("swipe", "swipe", str(x1), str(y1), str(x2), str(y2), str(int(duration_ms)))

    def input_text(self, text: str) -> None:
        self._input("input_text", "text", escape_input_text(text))

    def __repr__(self) -> str:
        return f"AdbDevice(serial={self.serial!r}, adb_path={self.adb_path!r})"
