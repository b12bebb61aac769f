"""
CheckContext Tests

Tests for cancellation, deadlines, derived contexts and waiting from both
threads and the event loop.

Run: python -m pytest test/test_context.py -v
"""

import asyncio
import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from registrar.context import CheckContext, CANCELLED, DEADLINE_EXCEEDED


class TestCancellation:
    """Test cancel() and derived contexts"""

    def test_background_is_active(self):
        """Background context is never cancelled on its own"""
        ctx = CheckContext.background()
        assert not ctx.cancelled
        assert ctx.reason is None
        assert ctx.remaining() is None

    def test_cancel(self):
        """cancel() flips state once, first reason wins"""
        ctx = CheckContext.background()
        ctx.cancel()
        ctx.cancel(DEADLINE_EXCEEDED)
        assert ctx.cancelled
        assert ctx.reason == CANCELLED

    def test_cancel_propagates_to_children(self):
        """Children follow their parent, parents ignore children"""
        parent = CheckContext.background()
        child = parent.withCancel()
        grandchild = child.withTimeout(60)
        sibling = parent.withCancel()

        child.cancel()
        assert child.cancelled and grandchild.cancelled
        assert not parent.cancelled and not sibling.cancelled

        parent.cancel()
        assert sibling.cancelled

    def test_child_of_cancelled_parent(self):
        """Deriving from a cancelled context yields a cancelled context"""
        parent = CheckContext.background()
        parent.cancel()
        assert parent.withCancel().cancelled

    def test_context_manager_cancels_on_exit(self):
        """with-block cancels the context when it ends"""
        with CheckContext(timeout=60) as ctx:
            assert not ctx.cancelled
        assert ctx.reason == CANCELLED

    def test_negative_timeout_rejected(self):
        """Timeouts must be non-negative"""
        with pytest.raises(ValueError):
            CheckContext(timeout=-1)


class TestDeadline:
    """Test deadlines"""

    def test_deadline_expires(self):
        """Passing the deadline cancels with deadlineExceeded"""
        ctx = CheckContext(timeout=0.01)
        time.sleep(0.02)
        assert ctx.cancelled
        assert ctx.reason == DEADLINE_EXCEEDED
        assert ctx.remaining() == 0.0

    def test_child_deadline_capped_by_parent(self):
        """A child never outlives its parent's deadline"""
        parent = CheckContext(timeout=1)
        child = parent.withTimeout(60)
        assert child.deadline == parent.deadline

        shorter = parent.withTimeout(0.1)
        assert shorter.deadline < parent.deadline

    def test_zero_timeout_is_expired(self):
        """timeout=0 is already past its deadline"""
        assert CheckContext(timeout=0).cancelled


class TestWaiting:
    """Test wait() and done()"""

    def test_wait_times_out_while_active(self):
        """wait(timeout) returns False if nothing happened"""
        ctx = CheckContext.background()
        assert ctx.wait(0.01) is False

    def test_wait_returns_on_cancel_from_other_thread(self):
        """A blocked thread wakes up when another thread cancels"""
        ctx = CheckContext.background()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        try:
            start = time.monotonic()
            assert ctx.wait(5) is True
            assert time.monotonic() - start < 2
        finally:
            timer.cancel()

    def test_wait_returns_at_deadline(self):
        """wait() without timeout still ends at the deadline"""
        ctx = CheckContext(timeout=0.05)
        assert ctx.wait() is True
        assert ctx.reason == DEADLINE_EXCEEDED

    @pytest.mark.asyncio
    async def test_done_on_cancel(self):
        """done() resolves once the context is cancelled"""
        ctx = CheckContext.background()
        asyncio.get_running_loop().call_later(0.05, ctx.cancel)
        await asyncio.wait_for(ctx.done(), timeout=2)
        assert ctx.reason == CANCELLED

    @pytest.mark.asyncio
    async def test_done_on_deadline(self):
        """done() resolves at the deadline"""
        ctx = CheckContext(timeout=0.05)
        await asyncio.wait_for(ctx.done(), timeout=2)
        assert ctx.reason == DEADLINE_EXCEEDED

    @pytest.mark.asyncio
    async def test_done_on_cancel_from_thread(self):
        """Cancelling from a worker thread wakes an awaiting task"""
        ctx = CheckContext.background()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        try:
            await asyncio.wait_for(ctx.done(), timeout=2)
        finally:
            timer.cancel()
        assert ctx.cancelled

    @pytest.mark.asyncio
    async def test_done_already_cancelled(self):
        """done() returns immediately on a cancelled context"""
        ctx = CheckContext.background()
        ctx.cancel()
        await asyncio.wait_for(ctx.done(), timeout=0.5)

    @pytest.mark.asyncio
    async def test_abandoned_waiter_is_removed(self):
        """Cancelling the awaiting task leaves no waiter behind"""
        ctx = CheckContext.background()
        task = asyncio.create_task(ctx.done())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert ctx._waiters == []
