"""Tests for cooperative cancel scopes."""

import asyncio
import time

import pytest

from reconnector.domain.exceptions import DeadlineExceededError, ScopeCancelledError
from reconnector.infrastructure.concurrency import CancelScope


class TestCancelScope:
    """Test cancellation, deadlines and propagation."""

    def test_new_scope_is_live(self):
        """Test a scope starts live with no reason."""
        scope = CancelScope()
        assert not scope.cancelled
        assert scope.reason is None

    def test_cancel_is_terminal(self):
        """Test cancel only takes effect once."""
        scope = CancelScope()

        assert scope.cancel("shutdown")
        assert not scope.cancel("again")
        assert scope.cancelled
        assert scope.reason == "shutdown"

    def test_default_reason(self):
        """Test cancel without reason uses the default message."""
        scope = CancelScope()
        scope.cancel()

        err = scope.error()
        assert isinstance(err, ScopeCancelledError)
        assert not isinstance(err, DeadlineExceededError)
        assert str(err) == "scope cancelled"

    def test_error_requires_cancelled_scope(self):
        """Test error() on a live scope is a programming error."""
        with pytest.raises(RuntimeError):
            CancelScope().error()

    def test_parent_cancel_propagates(self):
        """Test cancelling a parent cancels its children."""
        parent = CancelScope()
        child = parent.child()
        grandchild = child.child()

        parent.cancel("parent gone")

        assert child.cancelled
        assert grandchild.cancelled
        assert grandchild.reason == "parent gone"

    def test_child_cancel_leaves_parent(self):
        """Test cancelling a child does not touch the parent."""
        parent = CancelScope()
        child = parent.child()
        sibling = parent.child()

        child.cancel()

        assert not parent.cancelled
        assert not sibling.cancelled
        assert "children=1" in repr(parent)

    def test_child_of_cancelled_parent(self):
        """Test a child derived from a cancelled scope starts cancelled."""
        parent = CancelScope()
        parent.cancel("late")

        child = parent.child()

        assert child.cancelled
        assert child.reason == "late"

    @pytest.mark.asyncio
    async def test_deadline_cancels_scope(self):
        """Test a timeout cancels with a deadline error."""
        scope = CancelScope(timeout=0.02)

        await asyncio.wait_for(scope.wait(), timeout=1.0)

        err = scope.error()
        assert isinstance(err, DeadlineExceededError)
        assert isinstance(err, TimeoutError)
        assert "deadline exceeded" in str(err)

    @pytest.mark.asyncio
    async def test_deadline_propagates_to_children(self):
        """Test children of an expired scope report the deadline."""
        parent = CancelScope(timeout=0.02)
        child = parent.child()

        await asyncio.wait_for(child.wait(), timeout=1.0)

        assert isinstance(child.error(), DeadlineExceededError)

    @pytest.mark.asyncio
    async def test_cancel_before_deadline(self):
        """Test explicit cancel wins over a pending deadline."""
        scope = CancelScope(timeout=0.05)
        scope.cancel("manual")

        await asyncio.sleep(0.08)

        assert scope.reason == "manual"
        assert not isinstance(scope.error(), DeadlineExceededError)

    @pytest.mark.asyncio
    async def test_sleep_full_delay(self):
        """Test sleep returns True when not interrupted."""
        scope = CancelScope()
        assert await scope.sleep(0.01)

    @pytest.mark.asyncio
    async def test_sleep_interrupted_by_cancel(self):
        """Test sleep returns False as soon as the scope is cancelled."""
        scope = CancelScope()
        loop = asyncio.get_running_loop()
        loop.call_later(0.02, scope.cancel)

        started = time.monotonic()
        completed = await scope.sleep(5.0)

        assert not completed
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_sleep_on_cancelled_scope(self):
        """Test sleep on a cancelled scope returns immediately."""
        scope = CancelScope()
        scope.cancel()
        assert not await scope.sleep(5.0)
