"""Domain interfaces for the reconnector package.

This module defines the contracts (interfaces) that infrastructure implementations
must fulfill. Using these interfaces enables:
- Dependency Inversion: the supervisor doesn't depend on a concrete transport
- Testability: Easy to fake transports in tests
- Flexibility: Swap implementations (TCP → BLE, etc.) without changing the supervisor
"""

from .i_connection import IConnection
from .i_transport import ITransport, ConnectionHook
from .i_connection_manager import IConnectionManager

__all__ = [
    "IConnection",
    "ITransport",
    "ConnectionHook",
    "IConnectionManager",
]
