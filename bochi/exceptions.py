"""
@file exceptions.py
@brief Exception hierarchy for selector parsing, resolution and device actions.
"""

from __future__ import annotations
from typing import Optional


class BochiError(Exception):
    """
    Base exception for the tool.

    Attributes:
        action_trace: Context trace captured where the error left the innermost action
    """
    action_trace: Optional[str] = None


class ConfigError(BochiError):
    """Raised when a YAML config file, preset or override is invalid."""
    pass


class SelectorSyntaxError(BochiError):
    """
    Raised when selector text does not follow the grammar.

    Attributes:
        reason: What was wrong at the offending position
        position: 0-based character offset into the selector text
        source: The full selector text being parsed
    """

    def __init__(self, reason: str, position: int, source: str = ""):
        self.reason = reason
        self.position = position
        self.source = source
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"Invalid selector at position {self.position}: {self.reason}"
        if not self.source:
            return base
        caret = " " * self.position + "^"
        return f"{base}\n  {self.source}\n  {caret}"


class WaitTimeoutError(BochiError):
    """
    Raised when a polling loop reaches its deadline.

    Attributes:
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of attempts made
        elapsed_time: Actual elapsed time in seconds
    """

    def __init__(
        self,
        description: str,
        timeout: float,
        attempt_count: Optional[int] = None,
        elapsed_time: Optional[float] = None,
    ):
        self.description = description
        self.timeout = timeout
        self.attempt_count = attempt_count
        self.elapsed_time = elapsed_time
        super().__init__(self.__str__())

    def _headline(self) -> str:
        return f"Timed out waiting for {self.description} after {self.timeout}s"

    def __str__(self) -> str:
        details = []
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")
        if details:
            return f"{self._headline()} [{', '.join(details)}]"
        return self._headline()


class NotFoundError(WaitTimeoutError):
    """
    Raised when no snapshot within the timeout window matched the selector.

    Attributes:
        selector: Selector text that was being resolved
    """

    def __init__(
        self,
        selector: str,
        timeout: float,
        attempt_count: Optional[int] = None,
        elapsed_time: Optional[float] = None,
    ):
        self.selector = selector
        super().__init__(
            f"selector {selector}",
            timeout,
            attempt_count=attempt_count,
            elapsed_time=elapsed_time,
        )

    def _headline(self) -> str:
        return f"Timeout waiting for element with selector: {self.selector} (timeout={self.timeout}s)"


class ActionFailure(BochiError):
    """
    Raised when a device action could not be performed.

    Contains the action name, optional details and the underlying cause.
    """

    def __init__(
        self,
        action: str,
        details: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.action = action
        self.details = details
        self.cause = cause
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"Action '{self.action}' failed"
        if self.details:
            base += f": {self.details}"
        if self.cause:
            base += f" (cause: {type(self.cause).__name__}: {self.cause})"
        return base


class AdbError(BochiError):
    """Raised when an adb invocation cannot be started or exits non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class SnapshotError(BochiError):
    """Raised when the UI hierarchy could not be dumped, read or parsed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
