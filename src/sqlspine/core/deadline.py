"""Deadlines and cancellation for migration runs.

A run checks its deadline and cancel token before every step and every
statement.  Statements already sent to the database are not interrupted;
the check happens between them, and a tripped check rolls back the
in-flight step exactly like a failing statement would.

Examples:
    >>> deadline = Deadline(30.0, operation="migrate up")
    >>> deadline.remaining() > 0
    True
    >>> deadline.check()          # raises DeadlineExpired once 30s passed

Tags:
    timeout, deadline, cancellation, sqlspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field


class DeadlineExpired(TimeoutError):
    """Raised when an operation exceeds its deadline.

    Inherits from built-in TimeoutError for broad exception handling.
    """

    def __init__(self, timeout: float, elapsed: float | None = None, operation: str = "operation"):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"
        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"
        super().__init__(msg)


class Cancelled(Exception):
    """Raised when a cancel token is set."""


@dataclass
class Deadline:
    """Absolute deadline on the monotonic clock.

    Attributes:
        timeout_seconds: Original timeout value in seconds
        operation: Name/description of the operation
        start_time: When the deadline started
    """

    timeout_seconds: float
    operation: str = "operation"
    start_time: float = field(default_factory=time.monotonic)

    @property
    def deadline(self) -> float:
        return self.start_time + self.timeout_seconds

    def remaining(self) -> float:
        """Seconds until the deadline; negative once expired."""
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def is_expired(self) -> bool:
        return time.monotonic() >= self.deadline

    def check(self, op_name: str | None = None) -> None:
        """Raise :class:`DeadlineExpired` if the deadline has passed."""
        if self.is_expired():
            raise DeadlineExpired(
                timeout=self.timeout_seconds,
                elapsed=self.elapsed,
                operation=op_name or self.operation,
            )


def check_interrupt(
    deadline: Deadline | None,
    cancel: threading.Event | None,
    op_name: str | None = None,
) -> None:
    """Raise if the run was cancelled or ran out of time."""
    if cancel is not None and cancel.is_set():
        raise Cancelled(f"Operation '{op_name or 'operation'}' cancelled")
    if deadline is not None:
        deadline.check(op_name)


__all__ = ["Deadline", "DeadlineExpired", "Cancelled", "check_interrupt"]
