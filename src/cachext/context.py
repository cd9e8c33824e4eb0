"""Operation context: cancellation and deadlines for backend calls.

Every backend operation takes an optional ``ctx`` keyword. The in-memory engine
only checks it on entry (its calls never suspend); networked engines also check
it between batch chunks and bound socket waits by :meth:`remaining`.

Contexts nest: a child built with ``with_timeout(seconds, parent=ctx)`` expires
no later than its parent and observes the parent's cancellation.

Example:
    >>> ctx = OperationContext.with_timeout(0.5)
    >>> backend.get("user:42", ctx=ctx)
    >>> ctx.cancel()
    >>> backend.get("user:42", ctx=ctx)
    Traceback (most recent call last):
    ...
    cachext.errors.OperationCancelled: Operation 'get' was cancelled

Tags:
    cancellation, deadline, timeout, cachext

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from cachext.errors import DeadlineExceeded, OperationCancelled


@dataclass
class OperationContext:
    """Cancellation flag plus optional absolute deadline.

    Attributes:
        deadline: Absolute deadline on the monotonic clock, or None for no limit
        timeout_seconds: Original timeout used to build the deadline
        parent: Enclosing context whose cancellation/deadline also applies
    """

    deadline: float | None = None
    timeout_seconds: float | None = None
    parent: OperationContext | None = None
    _cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def background(cls) -> OperationContext:
        """A context that is never cancelled and has no deadline."""
        return cls()

    @classmethod
    def with_timeout(
        cls, seconds: float, parent: OperationContext | None = None
    ) -> OperationContext:
        """Build a context expiring ``seconds`` from now (or earlier, with its parent)."""
        if seconds < 0:
            raise ValueError(f"Timeout must be non-negative, got {seconds}")

        deadline = time.monotonic() + seconds
        if parent is not None and parent.effective_deadline() is not None:
            deadline = min(deadline, parent.effective_deadline())
        return cls(deadline=deadline, timeout_seconds=seconds, parent=parent)

    def cancel(self) -> None:
        """Cancel this context and every child derived from it."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        if self._cancel_event.is_set():
            return True
        return self.parent is not None and self.parent.cancelled

    def effective_deadline(self) -> float | None:
        deadlines = [self.deadline]
        if self.parent is not None:
            deadlines.append(self.parent.effective_deadline())
        known = [d for d in deadlines if d is not None]
        return min(known) if known else None

    def remaining(self) -> float | None:
        """Seconds left before the deadline (negative once passed), None if unbounded."""
        deadline = self.effective_deadline()
        if deadline is None:
            return None
        return deadline - time.monotonic()

    def is_expired(self) -> bool:
        deadline = self.effective_deadline()
        return deadline is not None and time.monotonic() >= deadline

    def check(self, operation: str = "operation") -> None:
        """Raise if the caller no longer wants this operation to run.

        Raises:
            OperationCancelled: If this context (or a parent) was cancelled
            DeadlineExceeded: If the deadline has passed
        """
        if self.cancelled:
            raise OperationCancelled(operation)
        if self.is_expired():
            raise DeadlineExceeded(operation, timeout=self.timeout_seconds)


def check_context(ctx: OperationContext | None, operation: str) -> None:
    """``ctx.check(operation)`` that tolerates ``ctx=None``."""
    if ctx is not None:
        ctx.check(operation)


__all__ = [
    "OperationContext",
    "check_context",
]
