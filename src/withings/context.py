"""
Cancellation and deadline handling for Withings API calls.

Every network operation in this package accepts an optional Context.
A Context can be cancelled explicitly or expire at a deadline; once done,
it reports why through err() and wakes up anything waiting on it.
"""

import threading
import time
from typing import List, Optional

from .exceptions import Canceled, ContextError, DeadlineExceeded


class Context:
    """
    Cancellation signal with an optional deadline.

    Example:
        ctx = Context.with_timeout(10)
        client.measure.getmeas([MeasureType.WEIGHT], Category.REAL, ctx=ctx)

        # From another thread
        ctx.cancel("user navigated away")
    """

    def __init__(self, deadline: Optional[float] = None):
        """
        Initialize context.

        Args:
            deadline: Absolute time.monotonic() value after which the
                      context is done (None for no deadline)
        """
        self._deadline = deadline
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()
        self._listeners: List[threading.Event] = []

    @classmethod
    def background(cls) -> "Context":
        """Context that is never cancelled and has no deadline."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        """Context that expires the given number of seconds from now."""
        return cls(deadline=time.monotonic() + seconds)

    @classmethod
    def with_deadline(cls, deadline: float) -> "Context":
        """Context that expires at an absolute time.monotonic() value."""
        return cls(deadline=deadline)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Cancel the context.

        Cancelling twice keeps the first reason.
        """
        with self._lock:
            if self._cancelled.is_set():
                return
            self._reason = reason
            self._cancelled.set()
            listeners = list(self._listeners)

        for event in listeners:
            event.set()

    def notify(self, event: threading.Event) -> None:
        """
        Set event when the context is cancelled.

        The event is set immediately if the context is already cancelled.
        Deadlines do not set the event; wait with remaining() as timeout.
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._listeners.append(event)
                return
        event.set()

    def stop_notify(self, event: threading.Event) -> None:
        """Undo notify()."""
        with self._lock:
            if event in self._listeners:
                self._listeners.remove(event)

    def remaining(self) -> Optional[float]:
        """
        Seconds left until the deadline.

        Returns:
            Remaining seconds (never negative), or None without a deadline
        """
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def done(self) -> bool:
        """Whether the context was cancelled or its deadline has passed."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def err(self) -> Optional[ContextError]:
        """
        Why the context is done.

        Returns:
            Canceled or DeadlineExceeded, or None while the context is live
        """
        if self._cancelled.is_set():
            message = "context canceled"
            if self._reason:
                message = f"{message}: {self._reason}"
            return Canceled(message, reason=self._reason)
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded("context deadline exceeded")
        return None

    def raise_if_done(self) -> None:
        """Raise the context error if the context is done."""
        error = self.err()
        if error is not None:
            raise error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is done or the timeout elapses.

        Args:
            timeout: Maximum seconds to wait (None waits until done)

        Returns:
            True if the context is done
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._cancelled.wait(timeout)
        return self.done()

    def timeout(self, default: Optional[float] = None) -> Optional[float]:
        """
        Request timeout bounded by the deadline.

        Args:
            default: Timeout to use when it is shorter than the deadline

        Returns:
            The smaller of default and the remaining time
        """
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)

    def __repr__(self) -> str:
        state = "done" if self.done() else "active"
        return f"Context(deadline={self._deadline!r}, state={state})"
