"""Connection manager supervising a single transport.

This module implements connection lifecycle management with:
- Automatic reconnection after disconnects and dial errors
- Fixed reconnect interval, unlimited retries until cancelled
- Connection state tracking driven by transport lifecycle hooks
- Awaitable connect operations bounded by a scope or a timeout
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Set

from ...const import DEFAULT_CONNECT_TIMEOUT, DEFAULT_RECONNECT_INTERVAL
from ...domain.exceptions import ConnectTimeoutError
from ...domain.interfaces import (
    ConnectionHook,
    IConnection,
    IConnectionManager,
    ITransport,
)
from ..concurrency import CancelScope, SignalChannel
from ..state_machines import (
    SupervisorEvent,
    SupervisorState,
    SupervisorStateMachine,
)
from .error_stream import clear_errors, report_error
from .tcp_transport import TcpTransport

if TYPE_CHECKING:
    from ...config_loader import ManagerConfig

_LOGGER = logging.getLogger(__name__)


class ConnectionManager(IConnectionManager):
    """Keeps one transport connected until told to stop.

    The transport reports lifecycle events through two hooks. The manager
    turns those into a connected flag plus two single-slot signal channels,
    and runs one background supervisor task that restarts the transport
    after every disconnect or dial error.

    The reconnect interval must be set before the manager is started; it is
    read by the supervisor without synchronization. Starting the same
    manager concurrently from two call sites is not supported.

    Attributes:
        _transport: Supervised transport
        _scope: Scope of the current session, replaced on every start
        _parent_scope: Caller scope the current session was derived from
        _supervisor_task: Background supervisor, None before first start
        _connected: Last lifecycle event was a connection
        _connect_ok_signal: Posted on every established connection
        _disconnect_signal: Posted on every lost connection
        _reconnect_interval: Seconds to wait before each restart

    Example:
        >>> manager = ConnectionManager.from_address("127.0.0.1", 9000)
        >>> manager.set_reconnect_interval(0.5)
        >>> manager.set_on_connection_established(lambda conn: print("up"))
        >>> await manager.connect_with_timeout(5.0)
        >>> assert manager.is_connected
        >>> await manager.stop()
    """

    def __init__(
        self,
        transport: ITransport,
        reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        """Initialize connection manager.

        Args:
            transport: Transport to supervise
            reconnect_interval: Seconds to wait before each restart
            connect_timeout: Bound used by connect_with_timeout() when the
                caller passes none
        """
        if connect_timeout <= 0:
            raise ValueError(f"Connect timeout must be > 0, got {connect_timeout}")
        self._transport = transport
        self._scope: Optional[CancelScope] = None
        self._parent_scope: Optional[CancelScope] = None
        self._supervisor_task: Optional[asyncio.Task] = None
        self._connected = False
        self._connect_ok_signal = SignalChannel("connect_ok")
        self._disconnect_signal = SignalChannel("disconnect")
        self._reconnect_interval = reconnect_interval
        self._connect_timeout = connect_timeout
        self._user_on_established: Optional[ConnectionHook] = None
        self._user_on_lost: Optional[ConnectionHook] = None
        self._last_connection: Optional[IConnection] = None
        self._last_error: Optional[Exception] = None
        self._restart_count = 0
        self._state_machine = SupervisorStateMachine()

        self._state_machine.on_state(SupervisorState.RUNNING, self._on_running)
        self._state_machine.on_state(SupervisorState.STOPPED, self._on_stopped)

        transport.set_on_connection_established(self._dispatch_established)
        transport.set_on_connection_lost(self._dispatch_lost)

    @classmethod
    def from_address(
        cls, host: str, port: int, **transport_options: Any
    ) -> "ConnectionManager":
        """Create a manager over a TcpTransport.

        Args:
            host: Remote host
            port: Remote port
            **transport_options: Passed unchanged to TcpTransport
        """
        return cls(TcpTransport(host, port, **transport_options))

    @classmethod
    def from_config(cls, config: "ManagerConfig") -> "ConnectionManager":
        """Create a manager and its transport from a validated config."""
        from ...config_loader import build_transport

        options: Dict[str, Any] = {"reconnect_interval": config.reconnect_interval}
        if config.connect_timeout is not None:
            options["connect_timeout"] = config.connect_timeout
        return cls(build_transport(config), **options)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def reconnect_interval(self) -> float:
        return self._reconnect_interval

    @property
    def connect_timeout(self) -> float:
        return self._connect_timeout

    def set_reconnect_interval(self, interval: float) -> None:
        """Set the wait before each restart. Call before start()."""
        if interval < 0:
            raise ValueError(f"Reconnect interval must be >= 0, got {interval}")
        self._reconnect_interval = interval

    def set_on_connection_established(self, handler: Optional[ConnectionHook]) -> None:
        """Register a handler run after the manager's own bookkeeping.

        Replaces any handler registered before. None removes it.
        """
        self._user_on_established = handler

    def set_on_connection_lost(self, handler: Optional[ConnectionHook]) -> None:
        """Register a handler run after the manager's own bookkeeping.

        Replaces any handler registered before. None removes it.
        """
        self._user_on_lost = handler

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def supervisor_state(self) -> str:
        """Supervisor state: "idle", "running" or "stopped"."""
        return self._state_machine.state.name.lower()

    @property
    def transport(self) -> ITransport:
        return self._transport

    @property
    def current_connection(self) -> Optional[IConnection]:
        return self._transport.current_connection

    def get_status(self) -> Dict[str, Any]:
        """Get current supervision info.

        Returns:
            Dictionary with connection and supervisor statistics

        Example:
            >>> status = manager.get_status()
            >>> print(f"Restarts: {status['restart_count']}")
        """
        return {
            "connected": self._connected,
            "state": self.supervisor_state,
            "target": self._transport.target,
            "restart_count": self._restart_count,
            "last_error": str(self._last_error) if self._last_error else None,
            "reconnect_interval": self._reconnect_interval,
        }

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def _on_connection_established(self, conn: IConnection) -> None:
        self._connected = True
        self._last_connection = conn
        self._connect_ok_signal.notify()

    def _on_connection_lost(self, conn: IConnection) -> None:
        self._connected = False
        self._last_connection = conn
        # Success from the connection that just went away is already stale
        self._connect_ok_signal.drain()
        self._disconnect_signal.notify()

    def _dispatch_established(self, conn: IConnection) -> None:
        self._on_connection_established(conn)
        self._call_user_handler(self._user_on_established, conn, "connection established")

    def _dispatch_lost(self, conn: IConnection) -> None:
        self._on_connection_lost(conn)
        self._call_user_handler(self._user_on_lost, conn, "connection lost")

    def _call_user_handler(
        self, handler: Optional[ConnectionHook], conn: IConnection, what: str
    ) -> None:
        if handler is None:
            return
        try:
            handler(conn)
        except Exception as err:
            _LOGGER.error("Error in %s handler: %s", what, err, exc_info=True)

    def _on_running(self):
        _LOGGER.info("Supervising connection to %s", self._transport.target)

    def _on_stopped(self):
        _LOGGER.info("Stopped supervising connection to %s", self._transport.target)

    # ------------------------------------------------------------------
    # Asynchronous start / stop
    # ------------------------------------------------------------------

    @property
    def _supervisor_active(self) -> bool:
        return self._supervisor_task is not None and not self._supervisor_task.done()

    async def start(self, scope: Optional[CancelScope] = None) -> None:
        """Start supervising under a fresh session scope.

        Idempotent when already running under the same caller scope. Any
        other active session is stopped first, so there is never more than
        one supervisor task.

        Args:
            scope: Caller scope; cancelling it ends the session. None gives
                the session a scope only stop() can cancel.
        """
        if self._supervisor_active:
            if scope is not None and scope is self._parent_scope:
                _LOGGER.debug("Already supervising under this scope")
                return
            await self.stop()

        # Events left over from a previous session must not leak into this one
        self._connect_ok_signal.drain()
        self._disconnect_signal.drain()
        clear_errors(self._transport.error_stream())

        self._parent_scope = scope
        self._scope = scope.child() if scope is not None else CancelScope()
        session = self._scope

        self._state_machine.transition(SupervisorEvent.START)
        await self._call_transport(self._transport.start)
        self._supervisor_task = asyncio.create_task(
            self._supervise(session), name=f"supervisor-{self._transport.target}"
        )

    async def stop(self) -> None:
        """Cancel the session and wait until the transport is stopped."""
        if self._scope is not None:
            self._scope.cancel()
        task = self._supervisor_task
        if task is not None and task is not asyncio.current_task():
            await task

    # ------------------------------------------------------------------
    # Supervisor loop
    # ------------------------------------------------------------------

    async def _supervise(self, scope: CancelScope) -> None:
        errors = self._transport.error_stream()
        error_get: Optional[asyncio.Task] = None
        try:
            while True:
                if error_get is None:
                    error_get = asyncio.ensure_future(errors.get())
                await self._wait_for_event(scope, error_get)

                if scope.cancelled:
                    return

                if self._disconnect_signal.drain():
                    await self._handle_disconnect(scope)
                elif error_get.done():
                    err = error_get.result()
                    error_get = None
                    await self._handle_dial_error(scope, err)
        finally:
            if error_get is not None and not error_get.done():
                error_get.cancel()
            await self._call_transport(self._transport.stop)
            self._state_machine.transition(SupervisorEvent.CANCELLED)

    async def _wait_for_event(self, scope: CancelScope, error_get: asyncio.Task) -> None:
        """Wait for cancellation, a disconnect signal or a dial error."""
        waiters: Set[asyncio.Future] = {
            asyncio.ensure_future(scope.wait()),
            asyncio.ensure_future(self._disconnect_signal.wait()),
        }
        try:
            await asyncio.wait(
                waiters | {error_get}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def _handle_disconnect(self, scope: CancelScope) -> None:
        if self._connected:
            # Signal coalesced from a connection that was already replaced
            _LOGGER.debug("Ignoring stale disconnect signal, connection is up")
            return
        conn = self._last_connection
        _LOGGER.warning(
            "%s -> %s disconnected, reconnecting in %.2fs",
            conn.local_address if conn else None,
            conn.remote_address if conn else self._transport.target,
            self._reconnect_interval,
        )
        # A success signal from the lost connection must not satisfy a
        # waiter expecting the next one.
        self._connect_ok_signal.drain()
        await self._backoff_and_restart(scope)

    async def _handle_dial_error(self, scope: CancelScope, err: Exception) -> None:
        self._last_error = err
        _LOGGER.warning(
            "Dial error: %s, reconnecting in %.2fs", err, self._reconnect_interval
        )
        await self._backoff_and_restart(scope)

    async def _backoff_and_restart(self, scope: CancelScope) -> None:
        if not await scope.sleep(self._reconnect_interval):
            return
        self._restart_count += 1
        await self._call_transport(self._transport.restart)

    async def _call_transport(self, operation: Callable[[], Awaitable[None]]) -> None:
        """Run a transport operation, feeding failures back as dial errors.

        A failed start or restart then gets retried by the supervisor like
        any other dial error instead of ending supervision.
        """
        try:
            await operation()
        except Exception as err:
            _LOGGER.error(
                "Transport %s on %s failed: %s",
                getattr(operation, "__name__", "operation"),
                self._transport.target,
                err,
                exc_info=True,
            )
            report_error(self._transport.error_stream(), err)

    # ------------------------------------------------------------------
    # Synchronous facade
    # ------------------------------------------------------------------

    async def connect(self, scope: Optional[CancelScope] = None) -> None:
        """Start and wait until connected or the scope is cancelled.

        Retries are left to the supervisor; this only waits for the first
        connect-ok signal.

        Args:
            scope: Caller scope bounding the wait and the session

        Raises:
            ScopeCancelledError: If the session scope is cancelled first
                (DeadlineExceededError when a scope deadline was reached)
        """
        await self.start(scope)
        session = self._scope
        if self._connected and not session.cancelled:
            # Already up under this scope; its success signal may be consumed
            return
        if not await self._wait_for_connect(session):
            raise session.error()

    async def connect_with_timeout(self, timeout: Optional[float] = None) -> None:
        """Start and wait until connected or timeout seconds elapse.

        The session runs under an internal scope. On timeout the manager is
        stopped before raising, so no supervisor outlives the call.

        Args:
            timeout: Seconds to wait; None uses the manager's connect_timeout

        Raises:
            ConnectTimeoutError: If the timeout elapses first
            ScopeCancelledError: If stop() is called during the wait
        """
        if timeout is None:
            timeout = self._connect_timeout
        await self.start()
        session = self._scope
        try:
            connected = await asyncio.wait_for(
                self._wait_for_connect(session), timeout=timeout
            )
        except asyncio.TimeoutError:
            _LOGGER.warning(
                "No connection to %s within %.2fs, stopping",
                self._transport.target,
                timeout,
            )
            await self.stop()
            raise ConnectTimeoutError(timeout) from None
        if not connected:
            raise session.error()

    async def _wait_for_connect(self, scope: CancelScope) -> bool:
        """Wait for a connect-ok signal or cancellation of scope.

        The signal is only consumed once it is known the scope is still
        live, so a cancelled wait never swallows a success.

        Returns:
            True when connected, False when the scope was cancelled first
        """
        while True:
            posted = asyncio.ensure_future(self._connect_ok_signal.wait())
            cancelled = asyncio.ensure_future(scope.wait())
            try:
                await asyncio.wait({posted, cancelled}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                posted.cancel()
                cancelled.cancel()
            if scope.cancelled:
                return False
            # Another waiter may have taken the signal first
            if self._connect_ok_signal.drain():
                return True
