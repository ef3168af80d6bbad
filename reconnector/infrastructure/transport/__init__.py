"""Transport implementations and the connection manager supervising them."""

from .tcp_transport import TcpTransport, TcpConnection
from .ble_transport import BLETransport, BleConnection
from .connection_manager import ConnectionManager

__all__ = [
    "TcpTransport",
    "TcpConnection",
    "BLETransport",
    "BleConnection",
    "ConnectionManager",
]
