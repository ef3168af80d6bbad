"""Test doubles for unit testing.

Test doubles are fake implementations of interfaces used for testing.
They're faster and more reliable than mocking, and they implement the
actual interface contracts.

We primarily use Fakes because they:
- Actually implement the interface
- Can be reused across many tests
- Provide realistic behavior (asynchronous dials, lifecycle hooks)

Example:
    >>> from tests.doubles import FakeTransport
    >>> transport = FakeTransport()
    >>> transport.set_reachable(False)
    >>> await transport.start()
    >>> err = await transport.error_stream().get()
"""

from .fake_transport import FAST_INTERVAL, FakeConnection, FakeTransport
from .local_server import LocalServer, unused_port
from .polling import eventually

__all__ = [
    "FAST_INTERVAL",
    "FakeConnection",
    "FakeTransport",
    "LocalServer",
    "eventually",
    "unused_port",
]
