"""End-to-end reconnect scenarios over real loopback sockets."""

import asyncio
from unittest.mock import Mock

import pytest

from reconnector import (
    CancelScope,
    ConnectionManager,
    ConnectTimeoutError,
    ScopeCancelledError,
)
from tests.doubles import LocalServer, eventually, unused_port

RECONNECT_INTERVAL = 0.05


@pytest.mark.asyncio
async def test_reconnects_after_server_restart():
    """Test connected -> disconnected -> connected as the server bounces."""
    server = LocalServer()
    await server.start()
    manager = ConnectionManager.from_address("127.0.0.1", server.port)
    manager.set_reconnect_interval(RECONNECT_INTERVAL)
    on_established = Mock()
    on_lost = Mock()
    manager.set_on_connection_established(on_established)
    manager.set_on_connection_lost(on_lost)
    scope = CancelScope()

    await manager.start(scope)
    assert await eventually(lambda: manager.is_connected)
    on_established.assert_called_once()

    await server.stop()
    assert await eventually(lambda: not manager.is_connected)
    on_lost.assert_called_once()

    await server.start()
    assert await eventually(lambda: manager.is_connected, timeout=RECONNECT_INTERVAL * 20)
    assert on_established.call_count == 2
    assert manager.get_status()["restart_count"] >= 1

    scope.cancel()
    assert await eventually(lambda: manager.supervisor_state == "stopped")
    assert not manager.is_connected
    await server.stop()


@pytest.mark.asyncio
async def test_connect_with_timeout_against_closed_port():
    """Test the timeout error is recognizable when nothing listens."""
    manager = ConnectionManager.from_address("127.0.0.1", unused_port(), dial_timeout=0.5)
    manager.set_reconnect_interval(RECONNECT_INTERVAL)

    with pytest.raises(ConnectTimeoutError, match="connect timeout"):
        await manager.connect_with_timeout(0.1)

    assert not manager.is_connected
    assert manager.supervisor_state == "stopped"


@pytest.mark.asyncio
async def test_connect_with_timeout_succeeds():
    """Test connect_with_timeout returns once the server accepts."""
    server = LocalServer()
    await server.start()
    manager = ConnectionManager.from_address("127.0.0.1", server.port)

    await manager.connect_with_timeout(1.0)

    assert manager.is_connected
    assert manager.current_connection.remote_address == f"127.0.0.1:{server.port}"
    await manager.stop()
    await server.stop()


@pytest.mark.asyncio
async def test_connect_under_deadline_scope():
    """Test connect under a scope with a deadline succeeds when reachable."""
    server = LocalServer()
    await server.start()
    manager = ConnectionManager.from_address("127.0.0.1", server.port)

    await manager.connect(CancelScope(timeout=1.0))

    assert manager.is_connected
    await manager.stop()
    await server.stop()


@pytest.mark.asyncio
async def test_connect_cancelled_against_closed_port():
    """Test cancelling the caller scope ends connect with a cancellation error."""
    manager = ConnectionManager.from_address("127.0.0.1", unused_port())
    manager.set_reconnect_interval(RECONNECT_INTERVAL)
    scope = CancelScope()
    asyncio.get_running_loop().call_later(0.1, scope.cancel)

    with pytest.raises(ScopeCancelledError, match="scope cancelled"):
        await manager.connect(scope)

    assert await eventually(lambda: manager.supervisor_state == "stopped")


@pytest.mark.asyncio
async def test_stop_disconnects():
    """Test stop closes the live connection."""
    server = LocalServer()
    await server.start()
    manager = ConnectionManager.from_address("127.0.0.1", server.port)
    await manager.start()
    assert await eventually(lambda: manager.is_connected)
    conn = manager.current_connection

    await manager.stop()

    assert not manager.is_connected
    assert conn.is_closed
    assert manager.current_connection is None
    await server.stop()


@pytest.mark.asyncio
async def test_send_through_manager_connection():
    """Test the supervised connection carries data."""
    server = LocalServer()
    await server.start()
    manager = ConnectionManager.from_address("127.0.0.1", server.port)
    await manager.connect_with_timeout(1.0)

    await manager.current_connection.send(b"hello")

    assert await eventually(lambda: bytes(server.received) == b"hello")
    await manager.stop()
    await server.stop()
