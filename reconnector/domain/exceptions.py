"""Custom exceptions for the reconnector package.

Only cancellation and timeout ever reach the caller of the connection
manager. Transport errors are reported on the transport's error stream and
consumed by the supervisor loop.
"""

from typing import Optional

from ..const import (
    CONNECT_TIMEOUT_MESSAGE,
    DEADLINE_EXCEEDED_MESSAGE,
    SCOPE_CANCELLED_MESSAGE,
)


class ReconnectorError(Exception):
    """Base class for all reconnector errors."""


class TransportError(ReconnectorError):
    """Transport-level failure (dial, send, teardown)."""


class TransportDialError(TransportError):
    """A dial attempt failed.

    Pushed onto the transport's error stream, never raised to the caller of
    the connection manager.

    Attributes:
        address: Target the transport tried to reach
        cause: Underlying exception, if any

    Example:
        >>> err = TransportDialError("127.0.0.1:9000", ConnectionRefusedError())
        >>> str(err)
        'dial 127.0.0.1:9000 failed: ConnectionRefusedError()'
    """

    def __init__(
        self,
        address: str,
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
    ):
        self.address = address
        self.cause = cause
        super().__init__(message or f"dial {address} failed: {cause!r}")


class DeviceNotFoundError(TransportDialError):
    """BLE device was not discovered before the discovery timeout."""

    def __init__(self, address: str):
        super().__init__(address, message=f"device {address} not found")


class ScopeCancelledError(ReconnectorError):
    """A cancel scope was cancelled.

    Raised by `ConnectionManager.connect` when the scope it waits on is
    cancelled before a connection is established.
    """

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or SCOPE_CANCELLED_MESSAGE
        super().__init__(self.reason)


class DeadlineExceededError(ScopeCancelledError, TimeoutError):
    """A cancel scope reached its deadline."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or DEADLINE_EXCEEDED_MESSAGE)


class ConnectTimeoutError(ReconnectorError, TimeoutError):
    """`connect_with_timeout` gave up before a connection was established.

    The message always starts with "connect timeout" so callers that only
    see the text can still tell it apart from other failures.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"{CONNECT_TIMEOUT_MESSAGE} after {timeout}s")
