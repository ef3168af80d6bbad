"""Cooperative cancellation scopes.

A scope is cancelled once and stays cancelled. Work running under a scope
notices at its next wait point (wait() or sleep()); nothing is interrupted
preemptively. Scopes form a tree: cancelling a parent cancels every live
child, cancelling a child leaves the parent alone.
"""

import asyncio
import logging
from typing import List, Optional

from ...const import DEADLINE_EXCEEDED_MESSAGE, SCOPE_CANCELLED_MESSAGE
from ...domain.exceptions import DeadlineExceededError, ScopeCancelledError

_LOGGER = logging.getLogger(__name__)


class CancelScope:
    """Cancellable unit of lifetime.

    Attributes:
        _parent: Scope this one was derived from, while still attached
        _children: Live scopes derived from this one
        _event: Set once the scope is cancelled
        _reason: Cancellation reason, None while live
        _deadline_handle: Timer that cancels the scope on timeout

    Example:
        >>> scope = CancelScope(timeout=5.0)
        >>> child = scope.child()
        >>> scope.cancel()
        >>> child.cancelled
        True
        >>> child.error()
        ScopeCancelledError('scope cancelled')
    """

    def __init__(
        self,
        parent: Optional["CancelScope"] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize scope.

        Args:
            parent: Scope whose cancellation propagates to this one
            timeout: Seconds until the scope cancels itself with a deadline
                error. Requires a running event loop.
        """
        self._parent: Optional[CancelScope] = None
        self._children: List[CancelScope] = []
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._deadline_exceeded = False
        self._deadline_handle: Optional[asyncio.TimerHandle] = None

        if parent is not None:
            parent._attach(self)

        if timeout is not None and not self.cancelled:
            loop = asyncio.get_running_loop()
            self._deadline_handle = loop.call_later(timeout, self._expire)

    @property
    def cancelled(self) -> bool:
        """Whether the scope has been cancelled."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Cancellation reason, None while the scope is live."""
        return self._reason

    def child(self, timeout: Optional[float] = None) -> "CancelScope":
        """Derive a scope that is cancelled along with this one."""
        return CancelScope(parent=self, timeout=timeout)

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Cancel this scope and all of its children.

        Args:
            reason: Message carried by error(); defaults to "scope cancelled"

        Returns:
            False if the scope was already cancelled
        """
        if self.cancelled:
            return False
        self._finish(reason or SCOPE_CANCELLED_MESSAGE, deadline=False)
        return True

    def error(self) -> ScopeCancelledError:
        """Exception describing why the scope ended.

        Raises:
            RuntimeError: If the scope is still live
        """
        if not self.cancelled:
            raise RuntimeError("Scope is not cancelled")
        if self._deadline_exceeded:
            return DeadlineExceededError(self._reason)
        return ScopeCancelledError(self._reason)

    async def wait(self) -> None:
        """Wait until the scope is cancelled."""
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for delay seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the scope was cancelled
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    def _attach(self, child: "CancelScope") -> None:
        child._parent = self
        if self.cancelled:
            child._finish(self._reason, deadline=self._deadline_exceeded)
            return
        self._children.append(child)

    def _detach(self, child: "CancelScope") -> None:
        try:
            self._children.remove(child)
        except ValueError:
            pass

    def _expire(self) -> None:
        if not self.cancelled:
            _LOGGER.debug("Scope deadline reached")
            self._finish(DEADLINE_EXCEEDED_MESSAGE, deadline=True)

    def _finish(self, reason: str, deadline: bool) -> None:
        self._reason = reason
        self._deadline_exceeded = deadline
        self._event.set()

        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

        if self._parent is not None:
            self._parent._detach(self)
            self._parent = None

        children, self._children = self._children, []
        for child in children:
            child._parent = None
            if not child.cancelled:
                child._finish(reason, deadline)

    def __repr__(self) -> str:
        state = f"cancelled={self._reason!r}" if self.cancelled else "live"
        return f"CancelScope({state}, children={len(self._children)})"
