"""IConnection interface for live connection handles."""

from abc import ABC, abstractmethod
from typing import Optional


class IConnection(ABC):
    """Handle to one established connection.

    Transports pass the handle to the lifecycle hooks. The connection manager
    treats it as opaque and only reads the addresses for diagnostics.
    """

    @property
    @abstractmethod
    def local_address(self) -> Optional[str]:
        """Local endpoint as "host:port", or None if the transport has none."""

    @property
    @abstractmethod
    def remote_address(self) -> Optional[str]:
        """Remote endpoint as "host:port" or device address."""

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Write raw bytes to the remote endpoint.

        Raises:
            TransportError: If the connection is closed or the write fails
        """

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Idempotent."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Whether close() was called or the peer went away."""
