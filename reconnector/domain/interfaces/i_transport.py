"""ITransport interface for supervised transports."""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .i_connection import IConnection

ConnectionHook = Callable[[IConnection], None]


class ITransport(ABC):
    """Interface for a single-shot network client.

    A transport dials one endpoint in the background and reports what
    happens through two lifecycle hooks and an error stream. It never
    retries on its own: that policy belongs to the connection manager.

    Connection lifecycle:
        1. start() → schedules a dial attempt and returns
        2. on success → connection-established hook(conn)
        3. on dial failure → exception put on error_stream()
        4. on peer loss or stop() → connection-lost hook(conn)
        5. restart() → stop() then start()

    Hooks are invoked on the event loop. They must not block.

    Example:
        >>> transport = TcpTransport("127.0.0.1", 9000)
        >>> transport.set_on_connection_established(lambda conn: print("up"))
        >>> await transport.start()
    """

    @abstractmethod
    async def start(self) -> None:
        """Begin an asynchronous dial attempt.

        Returns as soon as the attempt is scheduled. A no-op when an attempt
        or a connection is already active.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Terminate the current connection or dial attempt.

        Idempotent. Fires the connection-lost hook if a connection was open.
        """

    @abstractmethod
    async def restart(self) -> None:
        """Tear down whatever is active and dial again."""

    @abstractmethod
    def set_on_connection_established(self, hook: Optional[ConnectionHook]) -> None:
        """Register the hook called with the connection once it is up."""

    @abstractmethod
    def set_on_connection_lost(self, hook: Optional[ConnectionHook]) -> None:
        """Register the hook called with the connection once it is gone."""

    @abstractmethod
    def error_stream(self) -> "asyncio.Queue[Exception]":
        """Queue of asynchronous dial failures."""

    @property
    @abstractmethod
    def current_connection(self) -> Optional[IConnection]:
        """Live connection handle, or None when not connected."""

    @property
    @abstractmethod
    def target(self) -> str:
        """Human-readable dial target, used in log messages."""
