"""
Render context: cancellation and deadlines for template execution.

A ``RenderContext`` is handed to ``Handler.render`` and consulted at
every write boundary. It can be cancelled from any thread, may carry
an absolute deadline (``time.monotonic`` clock), and may be derived
from a parent so that cancelling the parent cancels every child.

Example:
    ctx = RenderContext.with_timeout(2.0)
    handler.render(ctx, sink, data)

    # From another thread
    ctx.cancel()
"""

from __future__ import annotations

import threading
import time
from typing import Optional

_PARENT_POLL_INTERVAL = 0.05


class ContextError(Exception):
    """Base class for the reasons a render context is done."""


class Canceled(ContextError):
    def __init__(self) -> None:
        super().__init__("context canceled")


class DeadlineExceeded(ContextError, TimeoutError):
    def __init__(self) -> None:
        super().__init__("context deadline exceeded")


class RenderContext:
    """
    Thread-safe cancellation token with an optional deadline.

    Thread Safety:
        All methods may be called from any thread.
    """

    def __init__(
        self,
        *,
        deadline: Optional[float] = None,
        parent: Optional["RenderContext"] = None,
    ) -> None:
        self._parent = parent
        self._deadline = deadline
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._err: Optional[ContextError] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def background(cls) -> "RenderContext":
        """A context that is never done unless cancelled explicitly."""
        return cls()

    @classmethod
    def with_cancel(cls, parent: Optional["RenderContext"] = None) -> "RenderContext":
        return cls(parent=parent)

    @classmethod
    def with_deadline(
        cls,
        deadline: float,
        parent: Optional["RenderContext"] = None,
    ) -> "RenderContext":
        """``deadline`` is an absolute ``time.monotonic()`` value."""
        return cls(deadline=deadline, parent=parent)

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        parent: Optional["RenderContext"] = None,
    ) -> "RenderContext":
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Request cancellation. Idempotent; the first reason sticks."""
        with self._lock:
            if self._err is None:
                self._err = Canceled()
        self._event.set()

    @property
    def deadline(self) -> Optional[float]:
        """The earliest deadline in the parent chain, if any."""
        parent_deadline = self._parent.deadline if self._parent else None
        if self._deadline is None:
            return parent_deadline
        if parent_deadline is None:
            return self._deadline
        return min(self._deadline, parent_deadline)

    def err(self) -> Optional[ContextError]:
        """
        Return why the context is done, or ``None`` while it is live.

        Once an error is observed it is recorded, so repeated calls
        return the same instance.
        """
        with self._lock:
            if self._err is not None:
                return self._err

        parent_err = self._parent.err() if self._parent else None

        with self._lock:
            if self._err is None:
                if parent_err is not None:
                    self._err = parent_err
                elif self._deadline is not None and time.monotonic() >= self._deadline:
                    self._err = DeadlineExceeded()
            err = self._err

        if err is not None:
            self._event.set()
        return err

    @property
    def done(self) -> bool:
        return self.err() is not None

    def raise_if_done(self) -> None:
        err = self.err()
        if err is not None:
            raise err

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is done or ``timeout`` elapses.

        Returns True if the context is done.
        """
        end = None if timeout is None else time.monotonic() + timeout
        while True:
            if self.err() is not None:
                return True

            now = time.monotonic()
            if end is not None and now >= end:
                return False

            limits = [t - now for t in (end, self.deadline) if t is not None]
            if self._parent is not None:
                # Parents do not signal children, so poll.
                limits.append(_PARENT_POLL_INTERVAL)
            self._event.wait(timeout=max(min(limits), 0.0) if limits else None)
