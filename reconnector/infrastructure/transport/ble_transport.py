"""BLE transport implementation.

This module implements the ITransport interface for Bluetooth Low Energy
peripherals using bleak and bleak_retry_connector. One start() performs one
discovery-plus-connect attempt; reconnection is left to the
ConnectionManager.
"""

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import (
    close_stale_connections_by_address,
    establish_connection,
)

from ...const import (
    BLE_CONNECTION_TIMEOUT,
    BLE_DISCONNECT_TIMEOUT,
    BLE_DISCOVERY_TIMEOUT,
    BLE_MAX_ATTEMPTS,
    BLE_NOTIFY_SUBSCRIBE_TIMEOUT,
    BLE_WRITE_TIMEOUT,
    ERROR_QUEUE_SIZE,
)
from ...domain.exceptions import (
    DeviceNotFoundError,
    TransportDialError,
    TransportError,
)
from ...domain.interfaces import ConnectionHook, IConnection, ITransport
from ..decorators import handle_transport_errors
from .error_stream import report_error

_LOGGER = logging.getLogger(__name__)

NotificationHandler = Callable[[IConnection, bytes], None]


class BleConnection(IConnection):
    """Connection handle around a connected BleakClient."""

    def __init__(self, client: BleakClient, address: str, write_uuid: Optional[str]):
        self._client = client
        self._address = address
        self._write_uuid = write_uuid
        self._closed = False

    @property
    def client(self) -> BleakClient:
        return self._client

    @property
    def local_address(self) -> Optional[str]:
        return None

    @property
    def remote_address(self) -> Optional[str]:
        return self._address

    @property
    def is_closed(self) -> bool:
        return self._closed or not self._client.is_connected

    @handle_transport_errors("BLE send", timeout=BLE_WRITE_TIMEOUT)
    async def send(self, data: bytes) -> None:
        """Write data to the configured characteristic, waiting for the ACK.

        Raises:
            TransportError: If closed or no write characteristic configured
            asyncio.TimeoutError: If the write is not acknowledged in time
            BleakError: If the GATT write fails
        """
        if self.is_closed:
            raise TransportError(f"BLE connection to {self._address} is closed")
        if self._write_uuid is None:
            raise TransportError("No write characteristic configured")
        await asyncio.wait_for(
            self._client.write_gatt_char(self._write_uuid, data, response=True),
            timeout=BLE_WRITE_TIMEOUT,
        )

    def close(self) -> None:
        # The transport owns the client; closing only invalidates the handle.
        self._closed = True

    def __repr__(self) -> str:
        return f"BleConnection({self._address})"


class BLETransport(ITransport):
    """Single-shot BLE client.

    This implementation handles:
    - Stale connection cleanup before dialing
    - Device discovery with a bounded wait
    - Connection via establish_connection (bounded internal attempts)
    - Optional notification subscription
    - Mapping bleak's disconnect callback to the connection-lost hook

    Attributes:
        _address: Device BLE MAC address
        _client: Connected BleakClient, None when not connected
        _connection: Live connection handle
        _errors: Dial failures, consumed by the supervisor
        _task: Current dial attempt

    Example:
        >>> transport = BLETransport("AA:BB:CC:DD:EE:FF", notify_uuid=NOTIFY_UUID)
        >>> manager = ConnectionManager(transport)
        >>> await manager.connect_with_timeout(30.0)
    """

    def __init__(
        self,
        address: str,
        *,
        write_uuid: Optional[str] = None,
        notify_uuid: Optional[str] = None,
        on_notification: Optional[NotificationHandler] = None,
        discovery_timeout: float = BLE_DISCOVERY_TIMEOUT,
        connect_timeout: float = BLE_CONNECTION_TIMEOUT,
        max_attempts: int = BLE_MAX_ATTEMPTS,
        error_queue_size: int = ERROR_QUEUE_SIZE,
    ):
        self._address = address
        self._write_uuid = write_uuid
        self._notify_uuid = notify_uuid
        self._on_notification = on_notification
        self._discovery_timeout = discovery_timeout
        self._connect_timeout = connect_timeout
        self._max_attempts = max_attempts
        self._errors: asyncio.Queue[Exception] = asyncio.Queue(maxsize=error_queue_size)
        self._task: Optional[asyncio.Task] = None
        self._client: Optional[BleakClient] = None
        self._connection: Optional[BleConnection] = None
        self._on_established: Optional[ConnectionHook] = None
        self._on_lost: Optional[ConnectionHook] = None

    @property
    def target(self) -> str:
        return self._address

    @property
    def current_connection(self) -> Optional[IConnection]:
        return self._connection

    def set_on_connection_established(self, hook: Optional[ConnectionHook]) -> None:
        self._on_established = hook

    def set_on_connection_lost(self, hook: Optional[ConnectionHook]) -> None:
        self._on_lost = hook

    def error_stream(self) -> "asyncio.Queue[Exception]":
        return self._errors

    async def start(self) -> None:
        if self._connection is not None:
            _LOGGER.debug("Already connected to %s", self._address)
            return
        if self._task is not None and not self._task.done():
            _LOGGER.debug("Dial to %s already active", self._address)
            return
        self._task = asyncio.create_task(self._dial(), name=f"ble-dial-{self._address}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as err:
                # Dial failures were already put on the error stream
                _LOGGER.debug("Dial task for %s ended with %r", self._address, err)

        conn, client = self._connection, self._client
        self._connection = None
        self._client = None
        if conn is None:
            return

        conn.close()
        try:
            if self._notify_uuid is not None and client.is_connected:
                await asyncio.wait_for(
                    client.stop_notify(self._notify_uuid),
                    timeout=BLE_DISCONNECT_TIMEOUT,
                )
            await asyncio.wait_for(client.disconnect(), timeout=BLE_DISCONNECT_TIMEOUT)
            _LOGGER.debug("BLE connection to %s closed", self._address)
        except (BleakError, asyncio.TimeoutError) as err:
            _LOGGER.warning("Error during disconnect from %s: %s", self._address, err)
        finally:
            self._fire(self._on_lost, conn, "connection lost")

    async def restart(self) -> None:
        await self.stop()
        await self.start()

    async def _dial(self) -> None:
        # Close any stale connections first; a zombie connection makes the
        # device refuse new ones.
        _LOGGER.debug("Closing stale connections for %s", self._address)
        try:
            await close_stale_connections_by_address(self._address)
            device = await BleakScanner.find_device_by_address(
                self._address, timeout=self._discovery_timeout
            )
        except BleakError as err:
            report_error(self._errors, TransportDialError(self._address, err))
            return
        except Exception as err:
            _LOGGER.warning("Discovery of %s failed unexpectedly: %r", self._address, err)
            report_error(self._errors, TransportDialError(self._address, err))
            return

        if device is None:
            _LOGGER.debug(
                "BLE device %s not found after %.1fs discovery wait",
                self._address,
                self._discovery_timeout,
            )
            report_error(self._errors, DeviceNotFoundError(self._address))
            return

        try:
            client = await asyncio.wait_for(
                establish_connection(
                    BleakClient,
                    device,
                    self._address,
                    disconnected_callback=self._handle_disconnect,
                    max_attempts=self._max_attempts,
                ),
                timeout=self._connect_timeout,
            )
        except (BleakError, asyncio.TimeoutError) as err:
            _LOGGER.debug("Failed to establish connection: %s", err)
            report_error(self._errors, TransportDialError(self._address, err))
            return
        except Exception as err:
            _LOGGER.warning("Connecting to %s failed unexpectedly: %r", self._address, err)
            report_error(self._errors, TransportDialError(self._address, err))
            return

        conn = BleConnection(client, self._address, self._write_uuid)

        if self._notify_uuid is not None:
            try:
                await asyncio.wait_for(
                    client.start_notify(
                        self._notify_uuid,
                        lambda _sender, data: self._handle_notification(conn, data),
                    ),
                    timeout=BLE_NOTIFY_SUBSCRIBE_TIMEOUT,
                )
            except asyncio.CancelledError:
                await self._abandon(client)
                raise
            except Exception as err:
                _LOGGER.debug("Notify subscription on %s failed: %s", self._notify_uuid, err)
                await self._abandon(client)
                report_error(self._errors, TransportDialError(self._address, err))
                return

        self._client = client
        self._connection = conn
        _LOGGER.info("BLE transport connected to %s", self._address)
        self._fire(self._on_established, conn, "connection established")

    async def _abandon(self, client: BleakClient) -> None:
        """Disconnect a client that never became the current connection."""
        with contextlib.suppress(BleakError, asyncio.TimeoutError):
            await asyncio.wait_for(client.disconnect(), timeout=BLE_DISCONNECT_TIMEOUT)

    def _handle_disconnect(self, client: BleakClient) -> None:
        """Handle unexpected BLE disconnect event.

        Called by bleak on the event loop. Disconnects initiated by stop()
        are ignored here because stop() already detached the connection.
        """
        conn = self._connection
        if conn is None or conn.client is not client:
            return

        _LOGGER.warning("BLE disconnect callback triggered - Address: %s", self._address)
        self._connection = None
        self._client = None
        conn.close()
        self._fire(self._on_lost, conn, "connection lost")

    def _handle_notification(self, conn: IConnection, data: bytearray) -> None:
        _LOGGER.debug("Notification received: %d bytes from %s", len(data), self._address)
        if self._on_notification is None:
            return
        try:
            self._on_notification(conn, bytes(data))
        except Exception as err:
            _LOGGER.error("Error in notification handler: %s", err, exc_info=True)

    def _fire(self, hook: Optional[ConnectionHook], conn: IConnection, what: str) -> None:
        if hook is None:
            return
        try:
            hook(conn)
        except Exception as err:
            _LOGGER.error("Error in %s hook: %s", what, err, exc_info=True)
