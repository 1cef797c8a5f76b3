"""
Execution context - deadline plus cancellation signal.

One context is passed into each remote execution. The executor waits on it
instead of on the network so a caller can always bound or abort a call.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class ExecutionContext:
    """
    Cancellable, optionally time-bounded execution budget.

    Usage:
        ctx = ExecutionContext.with_timeout(120)
        executor.execute(ctx, handle, script)

        # from another thread
        ctx.cancel()
    """

    def __init__(self, deadline: Optional[float] = None, parent: Optional[ExecutionContext] = None) -> None:
        """
        Initialize the context.

        Args:
            deadline: Absolute time.monotonic() value after which the context
                      counts as expired (None for no deadline)
            parent: Context whose cancellation and deadline also apply here
        """
        self._event = threading.Event()
        self._parent = parent
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline
        self.reason = ""

    @classmethod
    def with_timeout(cls, seconds: float, parent: Optional[ExecutionContext] = None) -> ExecutionContext:
        """Create a context that expires ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    @classmethod
    def background(cls) -> ExecutionContext:
        """Create a context with no deadline (cancellable only)."""
        return cls()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Signal cancellation to whoever is waiting on this context."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() was called here or on a parent."""
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        """Whether the deadline has passed."""
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def done(self) -> bool:
        """Cancelled or expired."""
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: float) -> bool:
        """
        Block up to ``timeout`` seconds or until cancelled.

        Returns:
            True if the context is done when the wait ends
        """
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        self._event.wait(timeout)
        return self.done

    def describe(self) -> str:
        """Human-readable reason the context is done."""
        if self.cancelled:
            if self._event.is_set():
                return self.reason
            if self._parent is not None:
                return self._parent.describe()
        if self.expired:
            return "execution deadline exceeded"
        return "active"
