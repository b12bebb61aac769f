"""
CheckContext: cancellation and deadline carrier for compatibility checks.

Every compatibility check receives the same CheckContext. The registry
never cancels it or times anything out itself; the caller cancels it (or
gives it a deadline) and checks are expected to notice and return early.

- cancel(): cancel this context and every context derived from it
- cancelled / reason: current state ('cancelled' or 'deadlineExceeded')
- wait(timeout): block a thread until cancelled (for synchronous checks)
- await done(): same, on the event loop (for async checks)

Thread-safe: synchronous checks run in worker threads and may wait on the
context while the caller cancels it from the event loop.

Property of Uncompromising Sensors LLC.
"""

# Imports
import asyncio, threading, time, weakref
from typing import Optional


# Constants
CANCELLED = 'cancelled'
DEADLINE_EXCEEDED = 'deadlineExceeded'


def _resolveWaiter(fut: asyncio.Future):
    if not fut.done():
        fut.set_result(None)


class CheckContext:
    """CheckContext(timeout=None, parent=None) -> cancellable context with optional deadline"""

    def __init__(self, timeout: Optional[float] = None, parent: Optional['CheckContext'] = None):
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")

        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._waiters = []
        self._children = weakref.WeakSet()
        self.parent = parent

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if parent is not None:
            parent._adopt(self)


    @classmethod
    def background(cls) -> 'CheckContext':
        """Root context that is never cancelled unless cancel() is called"""
        return cls()


    def withCancel(self) -> 'CheckContext':
        return CheckContext(parent=self)


    def withTimeout(self, timeout: float) -> 'CheckContext':
        return CheckContext(timeout=timeout, parent=self)


    # ===== State =====
    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel(DEADLINE_EXCEEDED)
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        """None while active, else 'cancelled' or 'deadlineExceeded'"""
        return self._reason if self.cancelled else None

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline (0.0 once passed), None without a deadline"""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())


    def cancel(self, reason: str = CANCELLED):
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            waiters, self._waiters = self._waiters, []
            children = list(self._children)

        for loop, fut in waiters:
            try:
                loop.call_soon_threadsafe(_resolveWaiter, fut)
            except RuntimeError:
                pass  # loop already closed, nobody is waiting anymore

        for child in children:
            child.cancel(reason)


    # ===== Waiting =====
    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled, the deadline passes or timeout elapses. Returns cancelled state."""
        end = time.monotonic() + timeout if timeout is not None else None
        while not self.cancelled:
            limits = [limit for limit in (self.remaining(), None if end is None else end - time.monotonic())
                      if limit is not None]
            if limits and min(limits) <= 0:
                break
            # Re-checked after every wake-up
            self._event.wait(min(limits) if limits else None)
        return self.cancelled


    async def done(self):
        """Return once this context is cancelled or its deadline passes"""
        if self.cancelled:
            return

        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        with self._lock:
            if self._event.is_set():
                return
            self._waiters.append((loop, fut))

        try:
            finished, _ = await asyncio.wait({fut}, timeout=self.remaining())
            if not finished:
                self.cancel(DEADLINE_EXCEEDED)
        finally:
            with self._lock:
                if (loop, fut) in self._waiters:
                    self._waiters.remove((loop, fut))
            if not fut.done():
                fut.cancel()


    # ===== Internals =====
    def _adopt(self, child: 'CheckContext'):
        with self._lock:
            reason = self._reason if self._event.is_set() else None
            if reason is None:
                self._children.add(child)
        if reason is not None:
            child.cancel(reason)


    def __enter__(self) -> 'CheckContext':
        return self

    def __exit__(self, excType, excValue, tb):
        self.cancel()
        return False

    def __repr__(self) -> str:
        state = self.reason or 'active'
        return f"CheckContext(state={state!r}, remaining={self.remaining()!r})"
