"""IConnectionManager interface for connection lifecycle management."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ...infrastructure.concurrency import CancelScope


class IConnectionManager(ABC):
    """Interface for connection lifecycle management.

    The connection manager adds supervision on top of a single-shot
    transport:
    - Automatic reconnection after disconnects and dial errors
    - Connection state tracking
    - Awaitable connect operations bounded by a scope or a timeout

    This separates reconnection policy from transport implementation.

    Example:
        >>> manager = ConnectionManager(TcpTransport("127.0.0.1", 9000))
        >>> await manager.connect_with_timeout(5.0)
        >>> # Connection is automatically maintained until stop()
        >>> await manager.stop()
    """

    @abstractmethod
    async def start(self, scope: Optional["CancelScope"] = None) -> None:
        """Start supervising the transport in the background.

        Returns once the supervisor task is running. The connection may not
        be established yet.

        Args:
            scope: Parent scope; cancelling it stops the supervisor
        """

    @abstractmethod
    async def connect(self, scope: Optional["CancelScope"] = None) -> None:
        """Start and wait until connected or the scope is cancelled.

        Raises:
            ScopeCancelledError: If the scope is cancelled first
        """

    @abstractmethod
    async def connect_with_timeout(self, timeout: Optional[float] = None) -> None:
        """Start and wait until connected or the timeout elapses.

        Args:
            timeout: Seconds to wait; None uses the configured default

        Raises:
            ConnectTimeoutError: If the timeout elapses first; the manager
                is stopped before raising
        """

    @abstractmethod
    async def stop(self) -> None:
        """Cancel the active scope and wait for the supervisor to finish."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the last lifecycle event was a connection."""
