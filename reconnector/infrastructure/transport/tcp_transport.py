"""TCP transport implementation.

This module implements the ITransport interface on top of asyncio streams.
It dials once per start(), reads until the peer goes away and reports the
outcome through the lifecycle hooks and the error stream. Reconnection is
left to the ConnectionManager.
"""

import asyncio
import logging
from typing import Callable, Optional

from ...const import (
    DEFAULT_DIAL_TIMEOUT,
    ERROR_QUEUE_SIZE,
    TCP_READ_SIZE,
    TCP_WRITE_TIMEOUT,
)
from ...domain.exceptions import TransportDialError, TransportError
from ...domain.interfaces import ConnectionHook, IConnection, ITransport
from ..decorators import handle_transport_errors
from .error_stream import report_error

_LOGGER = logging.getLogger(__name__)

DataHandler = Callable[[IConnection, bytes], None]


def _format_address(sockaddr) -> Optional[str]:
    if not sockaddr:
        return None
    host, port = sockaddr[0], sockaddr[1]
    return f"{host}:{port}"


class TcpConnection(IConnection):
    """Connection handle over an asyncio stream pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer
        self._closed = False
        self._local_address = _format_address(writer.get_extra_info("sockname"))
        self._remote_address = _format_address(writer.get_extra_info("peername"))

    @property
    def local_address(self) -> Optional[str]:
        return self._local_address

    @property
    def remote_address(self) -> Optional[str]:
        return self._remote_address

    @property
    def reader(self) -> asyncio.StreamReader:
        return self._reader

    @property
    def is_closed(self) -> bool:
        return self._closed

    @handle_transport_errors("TCP send", timeout=TCP_WRITE_TIMEOUT)
    async def send(self, data: bytes) -> None:
        """Write data and wait for the buffer to drain.

        Raises:
            TransportError: If the connection is closed
            asyncio.TimeoutError: If the peer stops reading
            OSError: If the write fails
        """
        if self._closed:
            raise TransportError(f"Connection to {self._remote_address} is closed")
        self._writer.write(data)
        await asyncio.wait_for(self._writer.drain(), timeout=TCP_WRITE_TIMEOUT)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()

    def __repr__(self) -> str:
        return f"TcpConnection({self._local_address} -> {self._remote_address})"


class TcpTransport(ITransport):
    """Single-shot TCP client.

    Attributes:
        _host: Remote host
        _port: Remote port
        _dial_timeout: Seconds allowed for one dial
        _read_size: Maximum bytes per read
        _on_data: Optional handler for received bytes
        _errors: Dial failures, consumed by the supervisor
        _task: Dial-then-read task of the current attempt
        _connection: Live connection, None when not connected

    Example:
        >>> transport = TcpTransport("127.0.0.1", 9000, dial_timeout=2.0)
        >>> transport.set_on_connection_established(on_up)
        >>> await transport.start()
        >>> err = await transport.error_stream().get()  # if the dial fails
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        read_size: int = TCP_READ_SIZE,
        on_data: Optional[DataHandler] = None,
        error_queue_size: int = ERROR_QUEUE_SIZE,
    ):
        self._host = host
        self._port = port
        self._dial_timeout = dial_timeout
        self._read_size = read_size
        self._on_data = on_data
        self._errors: asyncio.Queue[Exception] = asyncio.Queue(maxsize=error_queue_size)
        self._task: Optional[asyncio.Task] = None
        self._connection: Optional[TcpConnection] = None
        self._on_established: Optional[ConnectionHook] = None
        self._on_lost: Optional[ConnectionHook] = None

    @property
    def target(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def current_connection(self) -> Optional[IConnection]:
        return self._connection

    def set_on_connection_established(self, hook: Optional[ConnectionHook]) -> None:
        self._on_established = hook

    def set_on_connection_lost(self, hook: Optional[ConnectionHook]) -> None:
        self._on_lost = hook

    def set_on_data(self, handler: Optional[DataHandler]) -> None:
        self._on_data = handler

    def error_stream(self) -> "asyncio.Queue[Exception]":
        return self._errors

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            _LOGGER.debug("Dial to %s already active", self.target)
            return
        _LOGGER.debug("Dialing %s", self.target)
        self._task = asyncio.create_task(self._run(), name=f"tcp-dial-{self.target}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as err:
            # Already surfaced as a dial error or a lost connection
            _LOGGER.debug("Dial task for %s ended with %r", self.target, err)

    async def restart(self) -> None:
        await self.stop()
        await self.start()

    async def _run(self) -> None:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._dial_timeout,
            )
        except (OSError, asyncio.TimeoutError) as err:
            _LOGGER.debug("Dial to %s failed: %s", self.target, err)
            report_error(self._errors, TransportDialError(self.target, err))
            return
        except Exception as err:
            # e.g. UnicodeError from an unencodable host name
            _LOGGER.warning("Dial to %s failed unexpectedly: %r", self.target, err)
            report_error(self._errors, TransportDialError(self.target, err))
            return

        conn = TcpConnection(reader, writer)
        self._connection = conn
        _LOGGER.info("TCP transport connected %s -> %s", conn.local_address, conn.remote_address)
        self._fire(self._on_established, conn, "connection established")

        try:
            await self._read_loop(conn)
        finally:
            self._connection = None
            conn.close()
            self._fire(self._on_lost, conn, "connection lost")

    async def _read_loop(self, conn: TcpConnection) -> None:
        try:
            while True:
                data = await conn.reader.read(self._read_size)
                if not data:
                    _LOGGER.warning("Peer %s closed the connection", conn.remote_address)
                    return
                if self._on_data is not None:
                    self._fire_data(conn, data)
        except (ConnectionError, OSError) as err:
            _LOGGER.warning("Connection to %s lost: %s", conn.remote_address, err)

    def _fire(self, hook: Optional[ConnectionHook], conn: IConnection, what: str) -> None:
        if hook is None:
            return
        try:
            hook(conn)
        except Exception as err:
            _LOGGER.error("Error in %s hook: %s", what, err, exc_info=True)

    def _fire_data(self, conn: IConnection, data: bytes) -> None:
        try:
            self._on_data(conn, data)
        except Exception as err:
            _LOGGER.error("Error in data handler: %s", err, exc_info=True)
