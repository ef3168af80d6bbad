"""Supervised, auto-reconnecting connections over single-shot transports.

Example:
    >>> from reconnector import ConnectionManager, CancelScope
    >>> manager = ConnectionManager.from_address("127.0.0.1", 9000)
    >>> await manager.connect(CancelScope(timeout=10.0))
"""

from .config_loader import (
    ManagerConfig,
    build_transport,
    load_manager_config,
    parse_manager_config,
)
from .domain.exceptions import (
    ConnectTimeoutError,
    DeadlineExceededError,
    DeviceNotFoundError,
    ReconnectorError,
    ScopeCancelledError,
    TransportDialError,
    TransportError,
)
from .domain.interfaces import IConnection, IConnectionManager, ITransport
from .infrastructure.concurrency import CancelScope, SignalChannel
from .infrastructure.transport import (
    BLETransport,
    ConnectionManager,
    TcpConnection,
    TcpTransport,
)

__version__ = "0.1.0"

__all__ = [
    "BLETransport",
    "CancelScope",
    "ConnectTimeoutError",
    "ConnectionManager",
    "DeadlineExceededError",
    "DeviceNotFoundError",
    "IConnection",
    "IConnectionManager",
    "ITransport",
    "ManagerConfig",
    "ReconnectorError",
    "ScopeCancelledError",
    "SignalChannel",
    "TcpConnection",
    "TcpTransport",
    "TransportDialError",
    "TransportError",
    "build_transport",
    "load_manager_config",
    "parse_manager_config",
]
